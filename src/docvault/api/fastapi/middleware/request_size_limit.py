from __future__ import annotations

from fastapi import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors.handlers import problem_response


class BodyTooLarge(HTTPException):
    # An HTTPException so FastAPI re-raises it from body parsing instead of
    # turning it into a generic 400.
    code = "PAYLOAD_TOO_LARGE"

    def __init__(self) -> None:
        super().__init__(status_code=413, detail="Request body exceeds allowed size.")


class RequestSizeLimitMiddleware:
    """
    Rejects request bodies larger than ``max_bytes`` with 413 Problem+JSON.

    A declared Content-Length over the limit is refused before anything is
    read. Otherwise body bytes are counted as they arrive and reading stops
    as soon as the running total passes the limit, so an oversized upload is
    never buffered in full.
    """

    def __init__(self, app: ASGIApp, max_bytes: int = 1_000_000) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        length = None
        for name, value in scope.get("headers") or []:
            if name == b"content-length":
                try:
                    length = int(value)
                except ValueError:
                    length = None
                break
        if length is not None and length > self.max_bytes:
            await self._reject(scope, receive, send)
            return

        received = 0
        response_started = False

        async def _counting_receive() -> Message:
            nonlocal received
            message = await receive()
            if message.get("type") == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise BodyTooLarge()
            return message

        async def _tracking_send(message: Message) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, _counting_receive, _tracking_send)
        except BodyTooLarge:
            if not response_started:
                await self._reject(scope, receive, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        resp = problem_response(
            status=413,
            title="Payload Too Large",
            detail="Request body exceeds allowed size.",
            code="PAYLOAD_TOO_LARGE",
            instance=scope.get("path"),
        )
        await resp(scope, receive, send)
