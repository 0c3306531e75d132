"""User accounts and API access tokens."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, PortableUUID, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from .profile import PatissierProfile


class UserRole(str, Enum):
    """Roles a user account can hold."""

    PATISSIER = "patissier"
    CLIENT = "client"
    SUPERADMIN = "superadmin"


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A person who can sign in: shop owner, client or platform staff."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.CLIENT.value)
    suspended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    suspended_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    profile: Mapped["PatissierProfile | None"] = relationship(
        back_populates="user", uselist=False, lazy="raise"
    )

    @property
    def is_suspended(self) -> bool:
        return self.suspended_at is not None

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN.value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class AccessToken(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Opaque bearer token issued at login.

    Only the SHA-256 digest of the token is stored.
    """

    __tablename__ = "access_tokens"

    user_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="login")
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<AccessToken(id={self.id}, user_id={self.user_id})>"
