"""Barcode Issuer — sequential, width-bounded, unique under concurrency.

Invariants:
    - Tokens are <prefix><zero-padded counter>, counter starting at 1
    - An exhausted width raises and leaves the counter where it was
    - Concurrent issue() calls on separate connections never collide

Design Decisions:
    - The concurrency test uses a temp-file database with one connection per
      session (NullPool); the in-memory database is a single shared connection
"""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from bibli.core.barcode_format import BarcodeFormat
from bibli.core.domain_types import CodeKind
from bibli.core.errors import ExhaustedSequenceError
from bibli.db.base import Base
from bibli.models.barcode_sequence import BarcodeSequence
from bibli.services.barcode_issuer import VOLUME_SEQUENCE, BarcodeIssuer


async def test_issue_is_sequential(test_db):
    issuer = BarcodeIssuer(test_db)
    assert await issuer.issue() == "VOL00000001"
    assert await issuer.issue() == "VOL00000002"


async def test_issue_uses_configured_format(test_db):
    issuer = BarcodeIssuer(test_db, BarcodeFormat(prefix="BK", width=3))
    assert await issuer.issue() == "BK001"


async def test_exhausted_width_raises_and_rolls_back(test_db, test_session_factory):
    issuer = BarcodeIssuer(test_db, BarcodeFormat(width=1))
    tokens = [await issuer.issue() for _ in range(9)]
    assert tokens[-1] == "VOL9"

    with pytest.raises(ExhaustedSequenceError):
        await issuer.issue()

    async with test_session_factory() as fresh:
        value = await fresh.scalar(
            select(BarcodeSequence.next_value)
            .where(BarcodeSequence.name == VOLUME_SEQUENCE),
        )
    assert value == 9


async def test_classify(test_db):
    issuer = BarcodeIssuer(test_db)
    assert issuer.classify("VOL00000001") is CodeKind.VOLUME_CODE
    assert issuer.classify("978-0-439-70818-0") is CodeKind.ISBN_CODE
    assert issuer.classify("nonsense") is CodeKind.INVALID


async def test_concurrent_issuance_is_unique(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'barcodes.db'}", poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        first = await BarcodeIssuer(session).issue()

    async def issue_one() -> str:
        async with factory() as session:
            return await BarcodeIssuer(session).issue()

    tokens = await asyncio.gather(*(issue_one() for _ in range(20)))
    await engine.dispose()

    issued = [first, *tokens]
    assert len(set(issued)) == 21
    assert sorted(issued) == [f"VOL{n:08d}" for n in range(1, 22)]
