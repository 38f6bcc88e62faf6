import logging
from typing import Any, Callable, Protocol, TypeVar

Handler = TypeVar("Handler", bound=Callable[..., Any])

DISABLED_MESSAGE = (
    "A script has tried registering a HTTP route while the HTTP "
    "server is disabled with --disabled-httpd."
)


class Router(Protocol):
    """Something scripts can register verb/path handlers on."""

    def get(self, path: str, *args: Any, **kwargs: Any) -> Callable[[Handler], Handler]: ...

    def post(self, path: str, *args: Any, **kwargs: Any) -> Callable[[Handler], Handler]: ...

    def put(self, path: str, *args: Any, **kwargs: Any) -> Callable[[Handler], Handler]: ...

    def delete(self, path: str, *args: Any, **kwargs: Any) -> Callable[[Handler], Handler]: ...


def _passthrough(handler: Handler) -> Handler:
    return handler


class NullRouter:
    """
    Router used when the HTTP server is disabled.

    Registration calls only log a warning; decorated handlers are handed back
    untouched and never receive a request.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def _refuse(self, path: str, *args: Any, **kwargs: Any) -> Callable[[Handler], Handler]:
        self._logger.warning(DISABLED_MESSAGE)
        return _passthrough

    get = _refuse
    post = _refuse
    put = _refuse
    delete = _refuse
