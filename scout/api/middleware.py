from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

log = logging.getLogger("scout.api")


class PayloadTooLarge(HTTPException):
    def __init__(self, max_bytes: int) -> None:
        super().__init__(status_code=413, detail=f"request body exceeds {max_bytes} bytes")


async def request_logging_middleware(request: Request, call_next: Callable) -> Response:
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        log.info(
            "request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "latency_ms": round((time.perf_counter() - start) * 1000.0, 2),
            },
        )


class BodySizeLimitMiddleware:
    """Caps request bodies at `max_bytes`.

    A declared Content-Length over the cap is refused before the app runs.
    Bodies without one (chunked uploads) are counted as they are received;
    the read that crosses the cap raises PayloadTooLarge, which the app
    turns into a 413.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None:
            try:
                too_large = int(declared) > self.max_bytes
            except ValueError:
                await JSONResponse(status_code=400, content={"error": "invalid_content_length"})(scope, receive, send)
                return
            if too_large:
                log.warning("payload_too_large", extra={"path": scope.get("path"), "content_length": declared})
                await payload_too_large_response()(scope, receive, send)
                return

        received = 0

        async def counting_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    log.warning("payload_too_large", extra={"path": scope.get("path"), "received": received})
                    raise PayloadTooLarge(self.max_bytes)
            return message

        await self.app(scope, counting_receive, send)


def payload_too_large_response() -> JSONResponse:
    return JSONResponse(status_code=413, content={"error": "payload_too_large"})
