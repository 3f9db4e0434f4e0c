from __future__ import annotations

import asyncio

from fastapi import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors.handlers import problem_response

DEFAULT_READ_TIMEOUT_SECONDS = 20
DEFAULT_WRITE_TIMEOUT_SECONDS = 120


def _trace_id(scope: Scope) -> str | None:
    headers = dict(scope.get("headers") or [])
    for h in (b"x-request-id", b"x-correlation-id", b"x-trace-id"):
        v = headers.get(h)
        if v:
            return v.decode("latin-1")
    return None


class HandlerTimeoutMiddleware:
    """
    Caps total handler execution time, response streaming included.
    If exceeded before the response has started, returns 504 Problem+JSON;
    afterwards the response is simply cut off.
    """

    def __init__(self, app: ASGIApp, timeout_seconds: int | None = None) -> None:
        self.app = app
        self.timeout_seconds = timeout_seconds or DEFAULT_WRITE_TIMEOUT_SECONDS

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def _tracking_send(message: Message) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, _tracking_send), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            if response_started:
                return
            resp = problem_response(
                status=504,
                title="Gateway Timeout",
                detail="The request took too long to complete.",
                code="GATEWAY_TIMEOUT",
                instance=scope.get("path"),
                trace_id=_trace_id(scope),
            )
            await resp(scope, receive, send)


class BodyReadTimeout(HTTPException):
    code = "REQUEST_TIMEOUT"

    def __init__(self) -> None:
        super().__init__(status_code=408, detail="Timed out while reading request body.")


class BodyReadTimeoutMiddleware:
    """
    Enforces a timeout on each read of the request body to mitigate slowloris.
    If the body does not make progress within the timeout, returns 408 Problem+JSON.
    Reads after the body is complete (disconnect listening) are not limited.
    """

    def __init__(self, app: ASGIApp, timeout_seconds: int | None = None) -> None:
        self.app = app
        self.timeout_seconds = timeout_seconds or DEFAULT_READ_TIMEOUT_SECONDS

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        body_complete = False
        response_started = False

        async def _timeout_receive() -> Message:
            nonlocal body_complete
            if body_complete:
                return await receive()
            try:
                message = await asyncio.wait_for(receive(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                raise BodyReadTimeout() from None
            if message.get("type") != "http.request" or not message.get("more_body", False):
                body_complete = True
            return message

        async def _tracking_send(message: Message) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, _timeout_receive, _tracking_send)
        except BodyReadTimeout:
            if response_started:
                return
            resp = problem_response(
                status=408,
                title="Request Timeout",
                detail="Timed out while reading request body.",
                code="REQUEST_TIMEOUT",
                instance=scope.get("path"),
                trace_id=_trace_id(scope),
            )
            await resp(scope, receive, send)
