import logging
from typing import Optional

import httpx

from .config.config import HttpConfig
from .infra.keepalive import KeepAlive
from .server.bootstrap import HttpServer, start_http
from .server.router import NullRouter, Router


class Robot:
    """
    Owns the HTTP side of a bot process: the router scripts register on,
    the listening server and the keep-alive pinger.
    """

    def __init__(
        self,
        name: str,
        config: HttpConfig,
        logger: Optional[logging.Logger] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.name = name
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._http_client = http_client
        self.router: Optional[Router] = None
        self.server: Optional[HttpServer] = None
        self.keepalive: Optional[KeepAlive] = None

    def setup_router(self, disable_httpd: bool = False) -> Router:
        if self.router is not None:
            return self.router
        if disable_httpd:
            self.router = NullRouter(self.logger)
            return self.router
        started = start_http(self.config, self.name, logger=self.logger, http_client=self._http_client)
        self.router = started.router
        self.server = started.server
        self.keepalive = started.keepalive
        return self.router

    def run(self) -> None:
        if self.server is None:
            self.logger.info("HTTP server disabled, nothing to serve")
            return
        self.server.serve()

    def shutdown(self) -> None:
        if self.keepalive is not None:
            self.keepalive.stop(timeout=1.0)
        if self.server is not None:
            self.server.stop()
            self.server.close()
