import logging
import secrets

from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

REALM_HEADER = 'Basic realm="Authorization Required"'


def _matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


class BasicAuthMiddleware:
    def __init__(self, app: ASGIApp, username: str, password: str) -> None:
        self.app = app
        self.username = username
        self.password = password
        self.security = HTTPBasic(auto_error=False)

    async def _credentials(self, scope: Scope) -> HTTPBasicCredentials | None:
        # HTTPBasic raises on undecodable credentials even with auto_error off
        try:
            return await self.security(Request(scope))
        except HTTPException:
            return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        credentials = await self._credentials(scope)
        if (
            credentials is not None
            and credentials.username
            and credentials.password
            and _matches(credentials.username, self.username)
            and _matches(credentials.password, self.password)
        ):
            await self.app(scope, receive, send)
            return

        logger.debug("Rejected unauthenticated request to %s", scope.get("path"))
        response = Response(status_code=401, headers={"WWW-Authenticate": REALM_HEADER})
        await response(scope, receive, send)
