"""
Ledger repository.

Append-only access to ledger entries. ``update`` and ``delete`` are
disabled: a correction is always a new offsetting entry.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.enums import LedgerEntryKind
from ledger_engine.models.ledger_entry import LedgerEntry
from ledger_engine.repositories.base import BaseRepository
from ledger_engine.utils.exceptions import LedgerIntegrityError


class LedgerRepository(BaseRepository[LedgerEntry]):
    """Ledger entry repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(LedgerEntry, session)

    async def append(
        self,
        user_id: int,
        kind: LedgerEntryKind,
        amount: Decimal,
        currency: str,
        metadata: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> LedgerEntry:
        """
        Append a new entry.

        The sign convention is enforced by LedgerPoster, not here.

        Args:
            user_id: Entry owner
            kind: Entry kind
            amount: Signed amount
            currency: Currency code
            metadata: Optional context
            idempotency_key: Optional unique key

        Returns:
            Created entry

        Raises:
            sqlalchemy.exc.IntegrityError: idempotency key already used
        """
        return await self.create(
            user_id=user_id,
            kind=kind.value,
            amount=amount,
            currency=currency,
            entry_metadata=metadata,
            idempotency_key=idempotency_key,
        )

    async def get_by_idempotency_key(self, key: str) -> LedgerEntry | None:
        """Get entry by idempotency key."""
        stmt = select(LedgerEntry).where(LedgerEntry.idempotency_key == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def sum_by_kind(self, user_id: int) -> dict[LedgerEntryKind, Decimal]:
        """
        Sum signed amounts per kind for one user.

        Kinds without entries are reported as zero.

        Args:
            user_id: User ID

        Returns:
            Mapping of every kind to its signed total
        """
        stmt = (
            select(LedgerEntry.kind, func.sum(LedgerEntry.amount))
            .where(LedgerEntry.user_id == user_id)
            .group_by(LedgerEntry.kind)
        )
        result = await self.session.execute(stmt)

        totals = {kind: Decimal("0") for kind in LedgerEntryKind}
        for kind, total in result.all():
            totals[LedgerEntryKind(kind)] = Decimal(str(total or 0))
        return totals

    async def get_user_entries(
        self,
        user_id: int,
        kind: LedgerEntryKind | None = None,
    ) -> list[LedgerEntry]:
        """Get a user's entries in insertion order, optionally by kind."""
        stmt = select(LedgerEntry).where(LedgerEntry.user_id == user_id)
        if kind is not None:
            stmt = stmt.where(LedgerEntry.kind == kind.value)
        stmt = stmt.order_by(LedgerEntry.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_user_ids_with_entries(self) -> list[int]:
        """Get IDs of all users that own at least one entry."""
        stmt = select(LedgerEntry.user_id).distinct().order_by(LedgerEntry.user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, id: int, **data: Any) -> LedgerEntry | None:
        raise LedgerIntegrityError(
            LedgerIntegrityError.IMMUTABLE_ENTRY,
            f"Ledger entry {id} cannot be updated; post an offsetting entry",
        )

    async def delete(self, id: int) -> bool:
        raise LedgerIntegrityError(
            LedgerIntegrityError.IMMUTABLE_ENTRY,
            f"Ledger entry {id} cannot be deleted; post an offsetting entry",
        )
