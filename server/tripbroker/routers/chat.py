"""Proxy chat router."""

from fastapi import APIRouter

from ..schemas.chat import FormatMessageRequest, FormatMessageResponse
from ..services.proxy_chat_formatter import format_forwarded_message

router = APIRouter(prefix="/v1/chat", tags=["chat"])


@router.post("/format", response_model=FormatMessageResponse)
async def format_message(request: FormatMessageRequest) -> FormatMessageResponse:
    """Render a relayed chat message with its state header."""
    return FormatMessageResponse(
        text=format_forwarded_message(
            sender_type=request.sender_type,
            sender_label=request.sender_label,
            is_manager=request.is_manager,
            content=request.content,
            content_type=request.content_type,
            chat_state=request.chat_state,
            agency_name=request.agency_name,
            language=request.language,
        )
    )
