"""User model definition."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class User(Base):
    """A traveler, agent or manager reachable over a chat channel."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Chat address used to deliver notifications; unset until the user links a channel
    channel_address: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    language: Mapped[str] = mapped_column(String(2), nullable=False, default="EN")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, display_name='{self.display_name}')>"
