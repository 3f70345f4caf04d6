from typing import Any

from chat_relay.shared.config import UpstreamConfig
from chat_relay.shared.errors import InvalidRequest

from .command import ChatMessage, OutboundPayload

class ConversationValidator:
    """
    Checks the shape of an inbound chat body and builds the upstream payload.
    The system directive always comes from configuration, never from the client.
    """

    def __init__(self, upstream: UpstreamConfig):
        self._upstream = upstream

    def system_message(self) -> dict:
        return ChatMessage(role="system", content=self._upstream.system_prompt).model_dump()

    def validate(self, body: Any) -> OutboundPayload:
        if not isinstance(body, dict):
            raise InvalidRequest()
        conversation = body.get("conversation")
        if not isinstance(conversation, list):
            raise InvalidRequest()

        return OutboundPayload(
            model=self._upstream.model,
            messages=[self.system_message(), *conversation],
            stream=True,
        )
