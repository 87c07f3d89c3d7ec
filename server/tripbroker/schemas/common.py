"""Common Pydantic schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class Money(BaseModel):
    """Money representation with amount in minor units."""

    amount: int = Field(..., ge=0, description="Amount in minor units (e.g., cents)")
    currency: str = Field(..., min_length=3, max_length=3, pattern=r"^[A-Z]{3}$", description="ISO 4217 currency code")
    display: str = Field(..., description="Amount with thousands separators, e.g. 1,500")


class ButtonSchema(BaseModel):
    """Actionable choice shown beside a chat message."""

    label: str = Field(..., description="Button caption")
    callback_data: str = Field(..., description="Action token sent back when pressed")


class NotificationSchema(BaseModel):
    """Rendered message addressed to one chat."""

    address: str = Field(..., description="Recipient chat address")
    text: str = Field(..., description="Message text")
    buttons: List[ButtonSchema] = Field(default_factory=list, description="Action buttons")


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="JSON path to the invalid field")
    message: str = Field(..., description="Validation error message")


class Problem(BaseModel):
    """RFC 9457 Problem Details response."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    code: Optional[str] = Field(None, description="Application-specific error code")
    retryable: Optional[bool] = Field(None, description="Whether the operation can be retried")
    violations: Optional[List[Violation]] = Field(None, description="Validation errors")
