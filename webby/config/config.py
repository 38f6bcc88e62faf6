import os
from typing import Mapping

from pydantic import BaseModel, ConfigDict

_FALSY = {"0", "false", "no", "off"}


def read_env(
	name: str,
	default: str | None = None,
	required: bool = False,
	environ: Mapping[str, str] | None = None,
) -> str | None:
	env = os.environ if environ is None else environ
	value = env.get(name, default)
	if required and (value is None or value == ""):
		raise RuntimeError(f"Missing required environment variable: {name}")
	return value


def read_first(names: tuple[str, ...], default: str | None = None, environ: Mapping[str, str] | None = None) -> str | None:
	"""
	Returns the first non-empty value among *names*, else *default*.
	"""
	for name in names:
		value = read_env(name, environ=environ)
		if value:
			return value
	return default


def read_flag(name: str, default: bool, environ: Mapping[str, str] | None = None) -> bool:
	raw = read_env(name, environ=environ)
	if raw is None or not raw.strip():
		return default
	return raw.strip().lower() not in _FALSY


class HttpConfig(BaseModel):
	model_config = ConfigDict(frozen=True)

	auth_user: str | None = None
	auth_password: str | None = None
	static_dir: str | None = None
	port: int = 8080
	bind_address: str = "0.0.0.0"
	advertise_powered_by: bool = True
	keepalive_url: str | None = None

	@property
	def auth_enabled(self) -> bool:
		return bool(self.auth_user and self.auth_password)

	@classmethod
	def from_env(cls, environ: Mapping[str, str] | None = None) -> "HttpConfig":
		raw_port = read_first(("EXPRESS_PORT", "PORT"), "8080", environ=environ) or "8080"
		try:
			port = int(raw_port)
		except ValueError:
			raise RuntimeError(f"Invalid port: {raw_port!r}") from None
		return cls(
			auth_user=read_env("EXPRESS_USER", environ=environ) or None,
			auth_password=read_env("EXPRESS_PASSWORD", environ=environ) or None,
			static_dir=read_env("EXPRESS_STATIC", environ=environ) or None,
			port=port,
			bind_address=read_first(("EXPRESS_BIND_ADDRESS", "BIND_ADDRESS"), "0.0.0.0", environ=environ) or "0.0.0.0",
			advertise_powered_by=read_flag("EXPRESS_XPOWEREDBY", True, environ=environ),
			keepalive_url=read_env("HEROKU_URL", environ=environ) or None,
		)


class AppConfig:
	def __init__(self, environ: Mapping[str, str] | None = None) -> None:
		self.name = read_env("ROBOT_NAME", "Hubot", environ=environ) or "Hubot"
		self.disable_httpd = read_flag("DISABLE_HTTPD", False, environ=environ)
		self.log_level = (read_env("LOG_LEVEL", "INFO", environ=environ) or "INFO").upper()
		self.http = HttpConfig.from_env(environ)
