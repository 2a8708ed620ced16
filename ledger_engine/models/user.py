"""
User model.

Only the parts of a platform user the engine needs: identity, activity flag
and the referral edge.
"""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base
from ledger_engine.models.types import UTCDateTime
from ledger_engine.utils.datetime_utils import utc_now


class User(Base):
    """User model - registered platform users."""

    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    username: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )

    # Referral edge: set once at registration, never changed
    referrer_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<User(id={self.id}, referrer_id={self.referrer_id})>"
