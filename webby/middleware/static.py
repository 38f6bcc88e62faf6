from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send


class StaticFallback:
    """
    Router default that serves files from *directory* for GET and HEAD
    requests no route matched. Everything else goes to *not_found*.
    """

    def __init__(self, directory: str, not_found: ASGIApp) -> None:
        self.directory = directory
        self.files = StaticFiles(directory=directory, html=True)
        self.not_found = not_found

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] in ("GET", "HEAD"):
            await self.files(scope, receive, send)
            return
        await self.not_found(scope, receive, send)
