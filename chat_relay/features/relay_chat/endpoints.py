from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from .handler import RelayChatHandler

router = APIRouter()

@router.post("/chat", response_model=None)
async def relay_chat(
    request: Request,
    handler: RelayChatHandler = Depends(RelayChatHandler)
) -> StreamingResponse:
    """Streams the assistant's reply to the posted conversation."""
    try:
        body = await request.json()
    except ValueError:
        # Unparsable bodies are reported like any other malformed conversation.
        body = None
    response = await handler.handle(body)
    request.state.relay_outcome = "streaming"
    return response
