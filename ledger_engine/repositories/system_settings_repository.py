"""
System settings repository.

Reads the single ``system_settings`` row and the active fee tiers into an
EngineSettings snapshot.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.config.engine_settings import EngineSettings, FeeBand
from ledger_engine.config.settings import Settings, settings as app_settings
from ledger_engine.models.enums import Network
from ledger_engine.models.system_settings import SystemSettings
from ledger_engine.repositories.base import BaseRepository
from ledger_engine.repositories.fee_tier_repository import FeeTierRepository


class SystemSettingsRepository(BaseRepository[SystemSettings]):
    """System settings repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(SystemSettings, session)
        self.fee_tier_repo = FeeTierRepository(session)

    async def get_settings(self) -> SystemSettings | None:
        """
        Get the settings row.

        Returns:
            SystemSettings row, or None if admins never saved settings
        """
        stmt = select(SystemSettings).order_by(SystemSettings.id).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def load_snapshot(self, config: Settings | None = None) -> EngineSettings:
        """
        Build an immutable snapshot for one engine operation.

        Args:
            config: Process configuration (defaults to the global settings)

        Returns:
            EngineSettings snapshot
        """
        config = config or app_settings
        row = await self.get_settings()
        tiers = await self.fee_tier_repo.get_active_tiers()

        collection_addresses = {
            network: address
            for network, address in (
                (Network.BSC, config.bsc_collection_address),
                (Network.ETHEREUM, config.ethereum_collection_address),
                (Network.POLYGON, config.polygon_collection_address),
                (Network.TRON, config.tron_collection_address),
            )
            if address
        }

        admin_values = {}
        if row is not None:
            admin_values = {
                "referral_rates": (
                    row.referral_rate_level_1,
                    row.referral_rate_level_2,
                    row.referral_rate_level_3,
                ),
                "min_deposit_amount": row.min_deposit_amount,
                "min_withdrawal_amount": row.min_withdrawal_amount,
                "withdrawal_fee_percent": row.withdrawal_fee_percent,
                "withdrawal_fee_fixed": row.withdrawal_fee_fixed,
                "is_deposit_enabled": row.is_deposit_enabled,
                "is_withdrawal_enabled": row.is_withdrawal_enabled,
                "is_auto_confirm_enabled": row.is_auto_confirm_enabled,
            }

        return EngineSettings(
            **admin_values,
            fee_tiers=tuple(
                FeeBand(
                    min_amount=tier.min_amount,
                    max_amount=tier.max_amount,
                    percent=tier.percent,
                    tier_id=tier.id,
                )
                for tier in tiers
            ),
            session_duration_seconds=config.earning_session_duration_seconds,
            cycle_seconds=config.earning_cycle_seconds,
            earning_timezone=config.earning_timezone,
            auto_confirm_tolerance=config.auto_confirm_amount_tolerance,
            collection_addresses=collection_addresses,
            supported_tokens=config.stablecoin_contracts(),
        )
