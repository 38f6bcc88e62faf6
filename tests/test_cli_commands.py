import argparse

import pytest
from fastapi.testclient import TestClient

import main


def test_serve_registers_builtin_routes(monkeypatch):
	monkeypatch.setenv("EXPRESS_BIND_ADDRESS", "127.0.0.1")
	monkeypatch.setenv("EXPRESS_PORT", "0")
	monkeypatch.setenv("ROBOT_NAME", "marvin")
	served = []
	monkeypatch.setattr(main.Robot, "run", lambda self: served.append(self))

	main.cmd_serve(argparse.Namespace(name=None, disable_httpd=False))

	robot = served[0]
	assert robot.name == "marvin"
	r = TestClient(robot.router).get("/health")
	assert r.json() == {"status": "ok"}
	assert r.headers["x-powered-by"] == "webby/marvin"


def test_serve_name_flag_overrides_env(monkeypatch):
	monkeypatch.setenv("EXPRESS_BIND_ADDRESS", "127.0.0.1")
	monkeypatch.setenv("EXPRESS_PORT", "0")
	monkeypatch.setenv("ROBOT_NAME", "marvin")
	served = []
	monkeypatch.setattr(main.Robot, "run", lambda self: served.append(self))
	main.cmd_serve(argparse.Namespace(name="eddie", disable_httpd=False))
	assert served[0].name == "eddie"


def test_serve_with_httpd_disabled(monkeypatch):
	served = []
	monkeypatch.setattr(main.Robot, "run", lambda self: served.append(self))
	main.cmd_serve(argparse.Namespace(name=None, disable_httpd=True))
	assert served[0].server is None


def test_serve_exits_when_port_is_taken(monkeypatch, busy_port):
	monkeypatch.setenv("EXPRESS_BIND_ADDRESS", "127.0.0.1")
	monkeypatch.setenv("EXPRESS_PORT", str(busy_port))
	with pytest.raises(SystemExit) as exc_info:
		main.cmd_serve(argparse.Namespace(name=None, disable_httpd=False))
	assert exc_info.value.code == 1


def test_show_config_masks_password(monkeypatch, capsys):
	monkeypatch.setenv("EXPRESS_USER", "admin")
	monkeypatch.setenv("EXPRESS_PASSWORD", "hunter2")
	monkeypatch.setenv("HEROKU_URL", "https://bot.example.com")
	main.cmd_show_config(argparse.Namespace())
	out = capsys.readouterr().out
	assert "basic_auth\ton (user admin)" in out
	assert "hunter2" not in out
	assert "keepalive_url\thttps://bot.example.com" in out


def test_command_is_required(monkeypatch):
	monkeypatch.setattr("sys.argv", ["main.py"])
	with pytest.raises(SystemExit) as exc_info:
		main.main()
	assert exc_info.value.code == 2
