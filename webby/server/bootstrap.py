import logging
import os
import socket
import sys
import traceback
from dataclasses import dataclass
from typing import Optional, Union

import httpx
import uvicorn
from fastapi import FastAPI
from starlette.middleware import Middleware

from ..config.config import HttpConfig
from ..infra.keepalive import KeepAlive
from ..middleware.basic_auth import BasicAuthMiddleware
from ..middleware.parsers import MAX_UPLOAD_SIZE, BodyParserMiddleware, MultipartMiddleware, QueryParserMiddleware
from ..middleware.powered_by import PoweredByMiddleware
from ..middleware.static import StaticFallback

PRODUCT = "webby"
LISTEN_BACKLOG = 2048

_LOGGER = logging.getLogger(__name__)


def powered_by_value(name: str) -> str:
    return f"{PRODUCT}/{name}"


def build_middleware(config: HttpConfig, name: str) -> list[Middleware]:
    # Outermost first; auth must run before any body is read
    stages: list[Middleware] = []
    if config.advertise_powered_by:
        stages.append(Middleware(PoweredByMiddleware, value=powered_by_value(name)))
    if config.auth_enabled:
        stages.append(Middleware(BasicAuthMiddleware, username=config.auth_user, password=config.auth_password))
    stages.append(Middleware(QueryParserMiddleware))
    stages.append(Middleware(BodyParserMiddleware))
    stages.append(Middleware(MultipartMiddleware, max_size=MAX_UPLOAD_SIZE))
    return stages


def build_app(config: HttpConfig, name: str, logger: Optional[logging.Logger] = None) -> FastAPI:
    logger = logger or _LOGGER
    app = FastAPI(
        title=f"{name} HTTP",
        middleware=build_middleware(config, name),
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    if config.static_dir:
        if os.path.isdir(config.static_dir):
            app.router.default = StaticFallback(config.static_dir, app.router.default)
        else:
            logger.warning("Static directory %s does not exist, not serving static files", config.static_dir)
    return app


def bind_socket(address: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in address else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((address, port))
        sock.listen(LISTEN_BACKLOG)
    except BaseException:
        sock.close()
        raise
    return sock


class HttpServer:
    """Serves an ASGI app with uvicorn on an already bound socket."""

    def __init__(self, app: FastAPI, sock: socket.socket, server_header: bool = True) -> None:
        self.app = app
        self.socket = sock
        self._server = uvicorn.Server(
            uvicorn.Config(app, log_config=None, server_header=server_header, lifespan="on")
        )

    @property
    def address(self) -> tuple[str, int]:
        host, port = self.socket.getsockname()[:2]
        return host, port

    def serve(self) -> None:
        self._server.run(sockets=[self.socket])

    def stop(self) -> None:
        self._server.should_exit = True

    def close(self) -> None:
        self.socket.close()


@dataclass
class ServerStarted:
    router: FastAPI
    server: HttpServer
    keepalive: Optional[KeepAlive] = None


@dataclass
class BindFailed:
    address: str
    port: int
    error: Exception
    trace: str


BootstrapResult = Union[ServerStarted, BindFailed]


def bootstrap(
    config: HttpConfig,
    name: str,
    logger: Optional[logging.Logger] = None,
    http_client: Optional[httpx.Client] = None,
) -> BootstrapResult:
    logger = logger or _LOGGER
    app = build_app(config, name, logger=logger)

    keepalive: Optional[KeepAlive] = None
    if config.keepalive_url:
        keepalive = KeepAlive(config.keepalive_url, logger=logger, client=http_client)
        keepalive.start()

    try:
        sock = bind_socket(config.bind_address, config.port)
    except (OSError, OverflowError) as exc:
        trace = traceback.format_exc()
        logger.error("Error trying to start HTTP server: %s\n%s", exc, trace)
        if keepalive is not None:
            keepalive.stop(timeout=1.0)
        return BindFailed(address=config.bind_address, port=config.port, error=exc, trace=trace)

    server = HttpServer(app, sock, server_header=not config.advertise_powered_by)
    host, port = server.address
    logger.info("HTTP server listening on %s:%s", host, port)
    return ServerStarted(router=app, server=server, keepalive=keepalive)


def start_http(
    config: HttpConfig,
    name: str,
    logger: Optional[logging.Logger] = None,
    http_client: Optional[httpx.Client] = None,
) -> ServerStarted:
    """
    Like ``bootstrap`` but exits the process with status 1 when the socket
    cannot be bound. A robot that asked for HTTP is useless without it.
    """
    result = bootstrap(config, name, logger=logger, http_client=http_client)
    if isinstance(result, BindFailed):
        sys.exit(1)
    return result
