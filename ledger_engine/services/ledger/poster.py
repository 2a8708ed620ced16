"""
Ledger poster.

Single entry point for writing money movements: appends the entry with
the sign its kind requires, guards against double posting with the
idempotency key and rebuilds the owner's wallet from the ledger.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.config.constants import DEFAULT_CURRENCY
from ledger_engine.models.enums import DEBIT_KINDS, LedgerEntryKind
from ledger_engine.models.ledger_entry import LedgerEntry
from ledger_engine.models.wallet import Wallet
from ledger_engine.repositories.ledger_repository import LedgerRepository
from ledger_engine.services.base_service import BaseService
from ledger_engine.services.ledger.reconciler import BalanceReconciler
from ledger_engine.services.ledger.wallet_math import quantize_money
from ledger_engine.utils.exceptions import ConflictError, ValidationError


@dataclass
class PostResult:
    """Outcome of a ledger post."""

    entry: LedgerEntry
    created: bool  # False when the idempotency key was already used
    wallet: Wallet | None = None


class LedgerPoster(BaseService):
    """Appends ledger entries and keeps wallets in sync. Never commits."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.ledger_repo = LedgerRepository(session)
        self.reconciler = BalanceReconciler(session)

    async def post(
        self,
        user_id: int,
        kind: LedgerEntryKind,
        amount: Decimal,
        *,
        currency: str = DEFAULT_CURRENCY,
        metadata: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> PostResult:
        """
        Post a credit or debit.

        ``amount`` is a positive magnitude; WITHDRAWAL and VIP_PAYMENT are
        stored negated.

        Args:
            user_id: Entry owner
            kind: Entry kind
            amount: Positive amount
            currency: Currency code
            metadata: Optional context stored with the entry
            idempotency_key: Optional key; a second post with the same key
                returns the existing entry instead of writing

        Returns:
            PostResult

        Raises:
            ValidationError: Amount is not positive
        """
        if amount <= 0:
            raise ValidationError(
                ValidationError.INVALID_AMOUNT,
                f"Ledger amount must be positive, got {amount}",
            )
        signed = quantize_money(amount)
        if kind in DEBIT_KINDS:
            signed = -signed

        return await self._append(
            user_id, kind, signed, currency, metadata, idempotency_key
        )

    async def post_reversal(
        self,
        entry: LedgerEntry,
        *,
        idempotency_key: str,
        reason: str | None = None,
    ) -> PostResult:
        """
        Offset an earlier entry with a new one of the same kind and opposite sign.

        Args:
            entry: Entry to offset
            idempotency_key: Key guarding the reversal itself
            reason: Optional note stored in metadata

        Returns:
            PostResult for the offsetting entry
        """
        metadata: dict[str, Any] = {"reversal_of": entry.id}
        if reason:
            metadata["reason"] = reason

        return await self._append(
            entry.user_id,
            LedgerEntryKind(entry.kind),
            -entry.amount,
            entry.currency,
            metadata,
            idempotency_key,
        )

    async def _append(
        self,
        user_id: int,
        kind: LedgerEntryKind,
        signed_amount: Decimal,
        currency: str,
        metadata: dict[str, Any] | None,
        idempotency_key: str | None,
    ) -> PostResult:
        if idempotency_key:
            existing = await self.ledger_repo.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                self.logger.info(
                    "Ledger entry already posted, skipping",
                    extra={"idempotency_key": idempotency_key, "entry_id": existing.id},
                )
                return PostResult(entry=existing, created=False)

        # Lock before appending so the wallet rebuild sees a stable ledger
        user = await self.reconciler.user_repo.lock_user(user_id)
        if user is None:
            raise ValidationError(ValidationError.NOT_FOUND, f"User {user_id} not found")

        try:
            async with self.session.begin_nested():
                entry = await self.ledger_repo.append(
                    user_id=user_id,
                    kind=kind,
                    amount=signed_amount,
                    currency=currency,
                    metadata=metadata,
                    idempotency_key=idempotency_key,
                )
        except IntegrityError as e:
            # Lost a race on the idempotency key
            if idempotency_key:
                existing = await self.ledger_repo.get_by_idempotency_key(idempotency_key)
                if existing is not None:
                    return PostResult(entry=existing, created=False)
            raise ConflictError(
                ConflictError.DUPLICATE_ENTRY,
                f"Could not append {kind.value} entry for user {user_id}",
            ) from e

        wallet = await self.reconciler.rebuild_wallet(user_id)

        self.logger.info(
            "Ledger entry posted",
            extra={
                "entry_id": entry.id,
                "user_id": user_id,
                "kind": kind.value,
                "amount": str(signed_amount),
                "balance": str(wallet.balance),
            },
        )
        return PostResult(entry=entry, created=True, wallet=wallet)
