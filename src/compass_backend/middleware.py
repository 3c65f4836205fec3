from __future__ import annotations

import uuid
from typing import cast

from starlette.types import ASGIApp, Message, Receive, Scope, Send

_HEADER = b"x-request-id"


def _inbound_request_id(scope: Scope) -> bytes | None:
    for key, value in cast(list[tuple[bytes, bytes]], scope.get("headers") or []):
        if key.lower() == _HEADER:
            return value.strip() or None
    return None


class RequestIdMiddleware:
    """Echo ``X-Request-Id`` (or mint one) and expose it as ``request.state.request_id``.

    Error responses carry the same id in their body, so a client report can be
    matched to the server log line.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app: ASGIApp = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        raw = _inbound_request_id(scope) or uuid.uuid4().hex.encode("ascii")
        # latin-1 maps every byte to one code point.
        scope.setdefault("state", {})["request_id"] = raw.decode("latin-1")

        async def send_with_id(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers = [
                    (k, v)
                    for k, v in cast(list[tuple[bytes, bytes]], message.get("headers", []))
                    if k.lower() != _HEADER
                ]
                headers.append((_HEADER, raw))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_id)
