"""Request body ceiling.

Learn: Uploads are read fully into memory, so the only protection against a
huge request is refusing it. Two checks:
1. A declared Content-Length above the limit gets 413 before any handler runs.
2. Bodies without a usable Content-Length (chunked uploads) are counted as
   they are received; once the running total passes the limit, the receive
   channel raises a 413 HTTPException and the handler never sees the rest.

This is a plain ASGI middleware rather than BaseHTTPMiddleware, because it
has to wrap the receive channel.
"""

import structlog
from fastapi import HTTPException
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = structlog.get_logger()

TOO_LARGE = "Request body exceeds allowed size"


class BodySizeLimitMiddleware:
    """Reject request bodies larger than max_bytes."""

    def __init__(self, app: ASGIApp, max_bytes: int = 20 * 1024 * 1024) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        size = _declared_length(scope)
        if size is not None and size > self.max_bytes:
            logger.warning(
                "docshelf.body_too_large",
                path=path,
                size=size,
                limit=self.max_bytes,
            )
            response = JSONResponse(status_code=413, content={"detail": TOO_LARGE})
            await response(scope, receive, send)
            return

        received = 0

        async def _counting_receive() -> Message:
            nonlocal received
            message = await receive()
            if message.get("type") == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    logger.warning(
                        "docshelf.body_too_large",
                        path=path,
                        size=received,
                        limit=self.max_bytes,
                    )
                    raise HTTPException(status_code=413, detail=TOO_LARGE)
            return message

        await self.app(scope, _counting_receive, send)


def _declared_length(scope: Scope) -> int | None:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None
