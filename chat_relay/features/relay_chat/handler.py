# chat_relay/features/relay_chat/handler.py
from typing import Any

from fastapi import Depends
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from chat_relay.shared.dependencies import get_upstream_client, get_validator

from .client import UpstreamChatClient
from .validator import ConversationValidator

STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

class RelayChatHandler:
    def __init__(
        self,
        validator: ConversationValidator = Depends(get_validator),
        upstream_client: UpstreamChatClient = Depends(get_upstream_client)
    ):
        self._validator = validator
        self._client = upstream_client

    async def handle(self, body: Any) -> StreamingResponse:
        payload = self._validator.validate(body)
        upstream_resp = await self._client.open_stream(payload)

        # aclose is idempotent; the background task also runs when the client
        # disconnects while the forward loop is parked between chunks.
        return StreamingResponse(
            self._client.iter_chunks(upstream_resp),
            status_code=200,
            headers=STREAM_HEADERS,
            background=BackgroundTask(upstream_resp.aclose),
        )
