"""Proxy chat formatting Pydantic schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from ..services.proxy_chat_formatter import ChatState, ContentType, Language, SenderType


class FormatMessageRequest(BaseModel):
    """Request schema for rendering a relayed chat message."""

    sender_type: SenderType = Field(..., description="Who sent the message")
    sender_label: str = Field(..., max_length=255, description="Display label of the sender")
    is_manager: bool = Field(False, description="Whether the sender is an operator")
    content: str = Field("", description="Message text or file reference")
    content_type: ContentType = Field(ContentType.TEXT, description="Content type")
    chat_state: ChatState = Field(..., description="Current chat state")
    agency_name: str = Field(..., max_length=255, description="Agency in the conversation")
    language: Optional[Language] = Field(None, description="Header language, English when absent")


class FormatMessageResponse(BaseModel):
    """Response schema with the rendered message."""

    text: str = Field(..., description="Formatted message")
