"""Pytest configuration and shared fixtures for all tests."""

import asyncio
import os
import sys
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Minimal environment for tests: in-memory database, no log file
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE", "")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from ledger_engine.config.engine_settings import EngineSettings
from ledger_engine.database import create_session_maker
from ledger_engine.models import Base, User, UserVip, VipLevel
from ledger_engine.models.enums import Network
from ledger_engine.services.verification.cross_network_verifier import (
    CrossNetworkVerifier,
)
from ledger_engine.services.verification.networks import (
    NetworkLookup,
    TransferDetails,
)

COLLECTION_ADDRESS = "0x1111111111111111111111111111111111111111"
SENDER_ADDRESS = "0x2222222222222222222222222222222222222222"
TX_HASH = "0x" + "ab" * 32
BSC_USDT_CONTRACT = "0x55d398326f99059ff775485246999027b3197955"

# Wednesday noon UTC
WEDNESDAY = datetime(2026, 10, 21, 12, 0, tzinfo=UTC)


class FakeClock:
    """Controllable time source."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeLookup(NetworkLookup):
    """Network lookup answering from canned data."""

    def __init__(
        self,
        network: Network,
        details: TransferDetails | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.network = network
        self.details = details
        self.error = error
        self.delay = delay
        self.calls: list[str] = []
        self.closed = False

    async def get_transfer_by_hash(self, tx_hash: str) -> TransferDetails | None:
        self.calls.append(tx_hash)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.details

    async def close(self) -> None:
        self.closed = True


def transfer_to_platform(amount: str, confirmed: bool = True) -> TransferDetails:
    """Transfer of ``amount`` to the platform collection address."""
    return TransferDetails(
        recipient_address=COLLECTION_ADDRESS,
        sender_address=SENDER_ADDRESS,
        amount=Decimal(amount),
        token_contract=BSC_USDT_CONTRACT,
        token_symbol="USDT",
        block_number=100,
        is_confirmed=confirmed,
    )


def make_verifier(
    found_on: Network | None = None,
    details: TransferDetails | None = None,
    timeout: float = 1.0,
) -> CrossNetworkVerifier:
    """Verifier over fake lookups where only ``found_on`` knows the hash."""
    lookups = [
        FakeLookup(network, details if network == found_on else None)
        for network in (Network.BSC, Network.ETHEREUM, Network.POLYGON, Network.TRON)
    ]
    return CrossNetworkVerifier(lookups, timeout=timeout)


@pytest.fixture
def clock():
    """Clock fixed on a Wednesday."""
    return FakeClock(WEDNESDAY)


@pytest.fixture
def engine_settings():
    """Settings snapshot with a BSC collection address, BSC USDT and default rates."""
    return EngineSettings(
        collection_addresses={Network.BSC: COLLECTION_ADDRESS},
        supported_tokens={Network.BSC: {BSC_USDT_CONTRACT: "USDT"}},
    )


@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine with the full schema.

    pysqlite's own transaction handling breaks SAVEPOINT; the listeners
    hand BEGIN back to SQLAlchemy so nested transactions work.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine):
    """Async session bound to the test database."""
    session_maker = create_session_maker(db_engine)
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(session):
    """Factory creating committed users."""

    async def _make_user(username: str | None = None, referrer: User | None = None) -> User:
        user = User(username=username, referrer_id=referrer.id if referrer else None)
        session.add(user)
        await session.commit()
        return user

    return _make_user


@pytest.fixture
def make_vip_level(session):
    """Factory creating committed VIP levels."""

    async def _make_vip_level(
        name: str = "VIP 1",
        amount: str = "100",
        daily_earning: str = "5",
        is_active: bool = True,
    ) -> VipLevel:
        level = VipLevel(
            name=name,
            amount=Decimal(amount),
            daily_earning=Decimal(daily_earning),
            is_active=is_active,
        )
        session.add(level)
        await session.commit()
        return level

    return _make_vip_level


@pytest.fixture
def grant_vip(session):
    """Give a user an active membership without paying for it."""

    async def _grant_vip(user: User, level: VipLevel, is_active: bool = True) -> UserVip:
        membership = UserVip(user_id=user.id, vip_level_id=level.id, is_active=is_active)
        session.add(membership)
        await session.commit()
        return membership

    return _grant_vip


@pytest.fixture
def collection_address():
    return COLLECTION_ADDRESS


@pytest.fixture
def tx_hash():
    return TX_HASH


@pytest.fixture
def fake_lookup():
    """The FakeLookup class, for tests that assemble their own verifier."""
    return FakeLookup


@pytest.fixture
def platform_transfer():
    """Factory for transfers to the collection address."""
    return transfer_to_platform


@pytest.fixture
def build_verifier():
    """Factory for verifiers over fake lookups."""
    return make_verifier
