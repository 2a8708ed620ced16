"""
LedgerEntry model.

Append-only record of one money movement. The ledger is the single source
of truth for balances; wallets are rebuilt from it.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base
from ledger_engine.models.types import MoneyType, UTCDateTime
from ledger_engine.utils.datetime_utils import utc_now


class LedgerEntry(Base):
    """
    LedgerEntry entity.

    Rows are inserted once and never updated or deleted. A correction is a
    new entry of the same kind with the opposite sign.

    Attributes:
        id: Primary key
        user_id: Owner of the money movement
        kind: LedgerEntryKind value
        amount: Signed amount (credits positive, debits negative)
        currency: Currency code
        created_at: Insertion time
        entry_metadata: Optional context (network, tx hash, source user, level)
        idempotency_key: Optional unique key guarding against double posting
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("idx_ledger_entries_user_kind", "user_id", "kind"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    # "metadata" is reserved on declarative classes
    entry_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    idempotency_key: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerEntry(id={self.id}, user_id={self.user_id}, "
            f"kind={self.kind}, amount={self.amount})>"
        )
