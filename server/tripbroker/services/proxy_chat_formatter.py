"""Status-tagged rendering of messages relayed through a proxy chat."""

from enum import Enum


class ChatState(str, Enum):
    """Proxy chat state enumeration."""
    OPEN = "OPEN"
    REPLY_ONLY = "REPLY_ONLY"
    PAUSED = "PAUSED"
    ESCALATED = "ESCALATED"
    CLOSED = "CLOSED"


class SenderType(str, Enum):
    """Who sent a relayed message."""
    USER = "USER"
    AGENCY = "AGENCY"
    SYSTEM = "SYSTEM"


class ContentType(str, Enum):
    """Relayed message content type."""
    TEXT = "TEXT"
    PHOTO = "PHOTO"
    DOCUMENT = "DOCUMENT"


class Language(str, Enum):
    """Languages the chat header is localized into."""
    EN = "EN"
    RU = "RU"
    AM = "AM"


DEFAULT_LANGUAGE = Language.EN

SEPARATOR = "━━━━━━━━━━━━━━━━━"

STATE_LABELS: dict[ChatState, dict[Language, str]] = {
    ChatState.OPEN: {Language.EN: "🟢 OPEN", Language.RU: "🟢 ОТКРЫТ", Language.AM: "🟢 OPEN"},
    ChatState.REPLY_ONLY: {Language.EN: "📋 REPLY ONLY", Language.RU: "📋 ТОЛЬКО ОТВЕТ", Language.AM: "📋 REPLY ONLY"},
    ChatState.PAUSED: {Language.EN: "⏸ PAUSED", Language.RU: "⏸ ПАУЗА", Language.AM: "⏸ PAUSED"},
    ChatState.ESCALATED: {Language.EN: "👤 ESCALATED", Language.RU: "👤 МЕНЕДЖЕР", Language.AM: "👤 ESCALATED"},
    ChatState.CLOSED: {Language.EN: "🔴 CLOSED", Language.RU: "🔴 ЗАКРЫТ", Language.AM: "🔴 CLOSED"},
}

# Binary content never reaches the text; it is replaced by these tokens
CONTENT_PLACEHOLDERS: dict[ContentType, str] = {
    ContentType.PHOTO: "[Photo]",
    ContentType.DOCUMENT: "[Document]",
}


def state_label(chat_state: ChatState, language: Language | str | None = None) -> str:
    """Icon and label of a chat state in the requested language, English when unknown."""
    labels = STATE_LABELS[ChatState(chat_state)]
    try:
        lang = Language(language) if language else DEFAULT_LANGUAGE
    except ValueError:
        lang = DEFAULT_LANGUAGE
    return labels[lang]


def sender_prefix(sender_type: SenderType, sender_label: str, is_manager: bool) -> str:
    if SenderType(sender_type) == SenderType.USER:
        return "💬 *Traveler:*"
    if is_manager:
        return "👤 *Manager:*"
    return f"🏢 *{sender_label}:*"


def format_forwarded_message(
    sender_type: SenderType,
    sender_label: str,
    is_manager: bool,
    content: str,
    content_type: ContentType,
    chat_state: ChatState,
    agency_name: str,
    language: Language | str | None = None,
) -> str:
    """
    Render a relayed chat message with a state header.

    Output:
        🟢 OPEN | TravelCo Agency
        ━━━━━━━━━━━━━━━━━
        💬 *Traveler:*
        Hello, I have a question
    """
    content_type = ContentType(content_type)
    body = content if content_type == ContentType.TEXT else CONTENT_PLACEHOLDERS[content_type]
    return (
        f"{state_label(chat_state, language)} | {agency_name}\n"
        f"{SEPARATOR}\n"
        f"{sender_prefix(sender_type, sender_label, is_manager)}\n"
        f"{body}"
    )
