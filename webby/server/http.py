from fastapi.responses import PlainTextResponse

from .models import StatusResponse
from .router import Router


def register_builtin_routes(router: Router) -> None:
    @router.get("/health", response_model=StatusResponse)
    async def health() -> StatusResponse:
        return StatusResponse(status="ok")

    # Target of the keep-alive pings
    @router.post("/hubot/ping", response_class=PlainTextResponse)
    async def ping() -> str:
        return "PONG"
