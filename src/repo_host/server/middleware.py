"""ASGI middleware for transparent gzip request bodies.

Response compression is handled by Starlette's ``GZipMiddleware``; this
module covers the inbound direction, which Starlette does not provide.
Bodies are inflated incrementally and rejected with 413 once the inflated
size passes ``max_size``.
"""

from __future__ import annotations

import logging
import zlib

from starlette.datastructures import Headers
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

__all__ = ["DEFAULT_MAX_REQUEST_BYTES", "GzipRequestMiddleware"]

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUEST_BYTES = 1024 * 1024
_GZIP_WBITS = 16 + zlib.MAX_WBITS


class _BodyTooLarge(Exception):
    pass


class GzipRequestMiddleware:
    """Decompress ``Content-Encoding: gzip`` request bodies before routing."""

    def __init__(self, app: ASGIApp, max_size: int = DEFAULT_MAX_REQUEST_BYTES) -> None:
        self.app = app
        self.max_size = max_size

    def _inflate(
        self, decoder: zlib._Decompress, data: bytes, parts: list[bytes], total: int
    ) -> int:
        """Feed *data* to *decoder*, appending output to *parts*; return new total."""
        while data:
            piece = decoder.decompress(data, self.max_size - total + 1)
            total += len(piece)
            if total > self.max_size:
                raise _BodyTooLarge
            parts.append(piece)
            data = decoder.unconsumed_tail
        return total

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        headers = Headers(scope=scope)
        if headers.get("content-encoding", "").strip().lower() != "gzip":
            await self.app(scope, receive, send)
            return

        decoder = zlib.decompressobj(_GZIP_WBITS)
        parts: list[bytes] = []
        total = 0
        more_body = True
        try:
            while more_body:
                message = await receive()
                total = self._inflate(decoder, message.get("body", b""), parts, total)
                more_body = message.get("more_body", False)
            if not decoder.eof:
                raise zlib.error("truncated gzip stream")
        except _BodyTooLarge:
            logger.debug("Rejecting gzip body inflating past %d bytes", self.max_size)
            response = PlainTextResponse("request body too large", status_code=413)
            await response(scope, receive, send)
            return
        except zlib.error as exc:
            logger.debug("Rejecting malformed gzip body: %s", exc)
            response = PlainTextResponse("invalid gzip request body", status_code=400)
            await response(scope, receive, send)
            return

        body = b"".join(parts)
        raw_headers = [
            (key, value)
            for key, value in scope["headers"]
            if key not in (b"content-encoding", b"content-length")
        ]
        raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
        scope = dict(scope, headers=raw_headers)

        delivered = False

        async def receive_decoded() -> Message:
            nonlocal delivered
            if not delivered:
                delivered = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, receive_decoded, send)
