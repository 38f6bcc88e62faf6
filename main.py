import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from webby.config.config import AppConfig
from webby.config.logging_config import configure_logging
from webby.robot import Robot
from webby.server.http import register_builtin_routes

_LOGGER = configure_logging()


def cmd_serve(args: argparse.Namespace) -> None:
	cfg = AppConfig()
	logging.getLogger().setLevel(cfg.log_level)
	name = args.name or cfg.name
	disable_httpd = args.disable_httpd or cfg.disable_httpd
	robot = Robot(name, cfg.http, logger=logging.getLogger("webby"))
	router = robot.setup_router(disable_httpd)
	if not disable_httpd:
		register_builtin_routes(router)
	try:
		robot.run()
	finally:
		robot.shutdown()


def cmd_show_config(args: argparse.Namespace) -> None:
	cfg = AppConfig()
	http = cfg.http
	print(f"name\t{cfg.name}")
	print(f"disable_httpd\t{cfg.disable_httpd}")
	print(f"listen\t{http.bind_address}:{http.port}")
	print(f"basic_auth\t{'on (user ' + str(http.auth_user) + ')' if http.auth_enabled else 'off'}")
	print(f"static_dir\t{http.static_dir or '-'}")
	print(f"x_powered_by\t{http.advertise_powered_by}")
	print(f"keepalive_url\t{http.keepalive_url or '-'}")


def build_arg_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description="Bot HTTP listener")
	sub = parser.add_subparsers(dest="command", required=True)

	p_srv = sub.add_parser("serve", help="Start the HTTP listener and serve until signalled")
	p_srv.add_argument("--name", help="Robot name used in the X-Powered-By header (default: ROBOT_NAME or Hubot)")
	p_srv.add_argument("--disable-httpd", action="store_true", help="Do not start the HTTP server")
	p_srv.set_defaults(func=cmd_serve)

	p_cfg = sub.add_parser("show-config", help="Print the effective HTTP configuration")
	p_cfg.set_defaults(func=cmd_show_config)
	return parser


def main() -> None:
	parser = build_arg_parser()
	args = parser.parse_args()
	func = getattr(args, "func", None)
	if func is None:
		parser.print_help(sys.stderr)
		sys.exit(2)
	func(args)


if __name__ == "__main__":
	main()
