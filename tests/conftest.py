import socket
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so `import webby` works under pytest
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
	sys.path.insert(0, str(ROOT_DIR))

_HTTP_ENV = (
	"EXPRESS_USER",
	"EXPRESS_PASSWORD",
	"EXPRESS_STATIC",
	"EXPRESS_PORT",
	"PORT",
	"EXPRESS_BIND_ADDRESS",
	"BIND_ADDRESS",
	"EXPRESS_XPOWEREDBY",
	"HEROKU_URL",
	"ROBOT_NAME",
	"DISABLE_HTTPD",
)


@pytest.fixture(autouse=True)
def clean_http_env(monkeypatch):
	for name in _HTTP_ENV:
		monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_client():
	"""
	Builds the middleware pipeline for an HttpConfig made of *overrides* and
	returns (app, client). Routes may be registered on app afterwards.
	"""
	from webby.config.config import HttpConfig
	from webby.server.bootstrap import build_app

	def _make(name: str = "testbot", raise_server_exceptions: bool = True, **overrides):
		app = build_app(HttpConfig(**overrides), name)
		client = TestClient(app, raise_server_exceptions=raise_server_exceptions)
		return app, client

	return _make


@pytest.fixture
def busy_port():
	sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
	sock.bind(("127.0.0.1", 0))
	sock.listen(1)
	yield sock.getsockname()[1]
	sock.close()
