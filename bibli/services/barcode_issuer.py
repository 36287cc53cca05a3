"""Barcode Issuer — unique volume tokens from a store-owned counter.

Invariants:
    - The counter is incremented by a single UPDATE ... RETURNING; the database
      serializes concurrent increments, so two issuances never see the same value
    - A value that does not fit the configured width raises ExhaustedSequenceError
      and the increment is rolled back with the caller's unit
    - reserve() never commits; issue() is reserve() in its own atomic unit

Design Decisions:
    - Counter row seeded by the initial migration; reserve() creates it on first use
      for databases built with create_all (tests, scripts)
"""

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.core.barcode_format import BarcodeFormat, classify, fits, format_token
from bibli.core.domain_types import CodeKind
from bibli.core.errors import ExhaustedSequenceError
from bibli.models.barcode_sequence import BarcodeSequence
from bibli.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

VOLUME_SEQUENCE: str = "volume"


class BarcodeIssuer:
    """Issues and classifies volume barcodes."""

    def __init__(
        self, db: AsyncSession, fmt: BarcodeFormat | None = None,
        sequence: str = VOLUME_SEQUENCE,
    ):
        self.db = db
        self.fmt = fmt or BarcodeFormat()
        self.sequence = sequence

    async def reserve(self) -> str:
        """Next token inside the caller's transaction."""
        result = await self.db.execute(
            update(BarcodeSequence)
            .where(BarcodeSequence.name == self.sequence)
            .values(next_value=BarcodeSequence.next_value + 1)
            .returning(BarcodeSequence.next_value)
            .execution_options(synchronize_session=False),
        )
        value = result.scalar_one_or_none()
        if value is None:
            self.db.add(BarcodeSequence(name=self.sequence, next_value=1))
            await self.db.flush()
            value = 1
        if not fits(value, self.fmt):
            logger.error(
                f"Barcode sequence '{self.sequence}' exhausted at {value}",
            )
            raise ExhaustedSequenceError(self.sequence, self.fmt.width)
        return format_token(value, self.fmt)

    async def issue(self) -> str:
        """Next token, committed on its own."""
        async with atomic(self.db):
            token = await self.reserve()
        logger.info("Barcode issued", extra={"barcode": token})
        return token

    def classify(self, raw: str) -> CodeKind:
        return classify(raw, self.fmt)
