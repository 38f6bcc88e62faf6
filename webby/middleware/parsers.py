"""
Request parsing stages.

Each stage stores what it parsed on ``request.state``: the query string on
``state.query``, url-encoded, JSON and multipart fields on ``state.body`` and
multipart uploads on ``state.files``. Values of repeated keys become lists.
"""

import json
import logging
from typing import Any

from starlette.datastructures import Headers, ImmutableMultiDict, QueryParams, UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect, Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

DEFAULT_BODY_LIMIT = 100 * 1024
MAX_UPLOAD_SIZE = 100 * 1024 * 1024
# Room for boundaries, part headers and plain fields on top of the file bytes
MULTIPART_OVERHEAD = 16 * 1024 * 1024

JSON_TYPE = "application/json"
URLENCODED_TYPE = "application/x-www-form-urlencoded"
MULTIPART_TYPE = "multipart/form-data"


class PayloadTooLarge(Exception):
    pass


def _state(scope: Scope) -> dict[str, Any]:
    return scope.setdefault("state", {})


def _collapse(values: list[Any]) -> Any:
    return values[0] if len(values) == 1 else values


def _to_dict(items: ImmutableMultiDict) -> dict[str, Any]:
    return {key: _collapse(items.getlist(key)) for key in items.keys()}


def _media_type(headers: Headers) -> str:
    return headers.get("content-type", "").split(";", 1)[0].strip().lower()


def _declared_length(headers: Headers) -> int | None:
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _is_json(media_type: str) -> bool:
    return media_type == JSON_TYPE or media_type.endswith("+json")


async def _read_body(receive: Receive, limit: int, declared: int | None) -> bytes:
    if declared is not None and declared > limit:
        raise PayloadTooLarge()
    chunks: list[bytes] = []
    size = 0
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            raise ClientDisconnect()
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > limit:
            raise PayloadTooLarge()
        chunks.append(chunk)
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


def _too_large() -> PlainTextResponse:
    return PlainTextResponse("Payload Too Large", status_code=413)


class QueryParserMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            query = QueryParams(scope.get("query_string", b""))
            _state(scope)["query"] = _to_dict(query)
        await self.app(scope, receive, send)


class BodyParserMiddleware:
    """
    Parses url-encoded and JSON bodies up to *limit* bytes.

    The raw body is replayed downstream so handlers may still read it.
    """

    def __init__(self, app: ASGIApp, limit: int = DEFAULT_BODY_LIMIT) -> None:
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = _state(scope)
        state.setdefault("body", {})
        headers = Headers(scope=scope)
        media_type = _media_type(headers)
        if media_type != URLENCODED_TYPE and not _is_json(media_type):
            await self.app(scope, receive, send)
            return

        try:
            body = await _read_body(receive, self.limit, _declared_length(headers))
        except PayloadTooLarge:
            await _too_large()(scope, receive, send)
            return
        except ClientDisconnect:
            logger.debug("Client disconnected while sending body to %s", scope.get("path"))
            return

        if media_type == URLENCODED_TYPE:
            form = await Request(scope, _replay(body, receive)).form()
            state["body"] = _to_dict(form)
        elif body.strip():
            try:
                state["body"] = json.loads(body)
            except ValueError:
                response = PlainTextResponse("Invalid JSON body", status_code=400)
                await response(scope, receive, send)
                return

        await self.app(scope, _replay(body, receive), send)


class _UploadAborted(MultiPartException):
    """Raised from the receive channel so the form parser closes its spooled files."""


class MultipartMiddleware:
    """
    Parses multipart/form-data requests.

    Uploaded file bytes are capped at *max_size*; the whole request at
    *max_request_size*, which leaves room for boundaries and plain fields.
    """

    def __init__(self, app: ASGIApp, max_size: int = MAX_UPLOAD_SIZE, max_request_size: int | None = None) -> None:
        self.app = app
        self.max_size = max_size
        self.max_request_size = max_request_size if max_request_size is not None else max_size + MULTIPART_OVERHEAD

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if _media_type(headers) != MULTIPART_TYPE:
            await self.app(scope, receive, send)
            return

        declared = _declared_length(headers)
        if declared is not None and declared > self.max_request_size:
            await _too_large()(scope, receive, send)
            return

        received = 0
        aborted: str | None = None

        async def counting_receive() -> Message:
            nonlocal received, aborted
            message = await receive()
            if message["type"] == "http.disconnect":
                aborted = "disconnect"
                raise _UploadAborted("Client disconnected")
            received += len(message.get("body", b""))
            if received > self.max_request_size:
                aborted = "too_large"
                raise _UploadAborted("Payload Too Large")
            return message

        try:
            form = await Request(scope, counting_receive).form()
        except (MultiPartException, HTTPException) as exc:
            # Request.form() re-raises parser errors as HTTPException inside an app
            if aborted == "too_large":
                await _too_large()(scope, receive, send)
            elif aborted == "disconnect":
                logger.debug("Client disconnected during upload to %s", scope.get("path"))
            else:
                detail = getattr(exc, "message", None) or getattr(exc, "detail", "Invalid multipart body")
                await PlainTextResponse(str(detail), status_code=400)(scope, receive, send)
            return

        try:
            fields: dict[str, Any] = {}
            files: dict[str, Any] = {}
            uploaded = 0
            for key in form.keys():
                values = form.getlist(key)
                uploads = [value for value in values if isinstance(value, UploadFile)]
                plain = [value for value in values if not isinstance(value, UploadFile)]
                if uploads:
                    files[key] = _collapse(uploads)
                    uploaded += sum(upload.size or 0 for upload in uploads)
                if plain:
                    fields[key] = _collapse(plain)

            if uploaded > self.max_size:
                await _too_large()(scope, receive, send)
                return

            state = _state(scope)
            state["body"] = fields
            state["files"] = files
            await self.app(scope, _replay(b"", receive), send)
        finally:
            await form.close()
