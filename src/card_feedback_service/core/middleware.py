"""ASGI middleware limiting card action request bodies."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

CARD_ACTION_PATH = "/api/card"


class BodySizeLimitMiddleware:
    """
    Buffers the body of ``POST /api/card`` and rejects it with 413 once it
    grows past ``max_body_size``.

    Content type and credentials are not inspected here; the card action
    handler checks them in order so unauthenticated callers always get 401.
    """

    def __init__(self, app: ASGIApp, max_body_size: int) -> None:
        self.app = app
        self.max_body_size = max_body_size

    def _applies(self, scope: Scope) -> bool:
        return (
            scope["type"] == "http"
            and scope.get("method") == "POST"
            and scope.get("path") == CARD_ACTION_PATH
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self._applies(scope):
            await self.app(scope, receive, send)
            return

        chunks: list[bytes] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            chunk = cast("bytes", message.get("body", b""))
            received += len(chunk)
            if received > self.max_body_size:
                response = JSONResponse(
                    status_code=413,
                    content={
                        "error": "PAYLOAD_TOO_LARGE",
                        "message": f"Request body exceeds {self.max_body_size} bytes",
                        "details": {"max_body_size": self.max_body_size},
                    },
                )
                await response(scope, receive, send)
                return
            chunks.append(chunk)
            more_body = bool(message.get("more_body", False))

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if replayed:
                return {"type": "http.disconnect"}
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}

        await self.app(scope, replay, send)
