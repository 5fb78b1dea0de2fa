import random

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from scratchoff.models.db import Base
from scratchoff.models.grid import Peer
from scratchoff.services.claim_signing import LocalAccountSigner

# Throwaway key, never funded
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def file_engine(tmp_path):
    """SQLite engine on a temp file, so each session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cards.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(async_engine):
    """Provide a database session for tests."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture
def rng() -> random.Random:
    return random.Random(20240601)


@pytest.fixture
def peers() -> list[Peer]:
    return [
        Peer(id=101, display_name="alice", avatar_ref="https://pfp.example/alice.png"),
        Peer(id=202, display_name="bob", avatar_ref="https://pfp.example/bob.png"),
        Peer(id=303, display_name="carol", avatar_ref="https://pfp.example/carol.png"),
    ]


@pytest.fixture
def signer() -> LocalAccountSigner:
    return LocalAccountSigner(TEST_PRIVATE_KEY)
