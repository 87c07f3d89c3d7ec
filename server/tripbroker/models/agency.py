"""Agency and agency membership model definitions."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .user import User


class MembershipRole(str, Enum):
    """Role of a user inside an agency."""
    OWNER = "OWNER"
    AGENT = "AGENT"


class MembershipStatus(str, Enum):
    """Agency membership status enumeration."""
    ACTIVE = "ACTIVE"
    DISABLED = "DISABLED"


class Agency(Base):
    """Travel agency submitting offers to travel requests."""

    __tablename__ = "agencies"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Shared chat of the agency team, if one is linked
    group_channel_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

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

    # Relationships
    memberships: Mapped[list["AgencyMembership"]] = relationship(
        "AgencyMembership",
        back_populates="agency",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Agency(id={self.id}, name='{self.name}')>"


class AgencyMembership(Base):
    """Link between an agent user and the agency they act for."""

    __tablename__ = "agency_memberships"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    agency_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    role: Mapped[MembershipRole] = mapped_column(
        String(20),
        nullable=False,
        default=MembershipRole.AGENT
    )
    status: Mapped[MembershipStatus] = mapped_column(
        String(20),
        nullable=False,
        default=MembershipStatus.ACTIVE,
        index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("agency_id", "user_id", name="uq_agency_membership_user"),
    )

    # Relationships
    agency: Mapped["Agency"] = relationship("Agency", back_populates="memberships")
    user: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return (
            f"<AgencyMembership(id={self.id}, agency_id={self.agency_id}, "
            f"user_id={self.user_id}, role={self.role}, status={self.status})>"
        )
