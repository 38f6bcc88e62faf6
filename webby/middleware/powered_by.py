from starlette.datastructures import MutableHeaders
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class PoweredByMiddleware:
    """
    Replaces the identifying response headers with ``X-Powered-By: <value>``.
    """

    def __init__(self, app: ASGIApp, value: str) -> None:
        self.app = app
        self.value = value

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                del headers["server"]
                headers["X-Powered-By"] = self.value
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            # ServerErrorMiddleware skips its own 500 once a response has started
            if not started:
                response = PlainTextResponse("Internal Server Error", status_code=500)
                await response(scope, receive, send_wrapper)
            raise
