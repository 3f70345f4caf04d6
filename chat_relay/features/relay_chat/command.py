from pydantic import BaseModel
from typing import Any, List, Literal

class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str

class OutboundPayload(BaseModel):
    model: str
    # Client turns are forwarded as received, so they stay untyped here.
    messages: List[Any]
    stream: bool = True
