"""BarcodeSequence ORM — store-owned monotonic counters for token issuance.

Invariants:
    - next_value only ever increases, and only through a single UPDATE statement
      (read-modify-write happens inside the database, never in process memory)
"""

from sqlalchemy import String, BigInteger
from sqlalchemy.orm import Mapped, mapped_column

from bibli.db.base import Base


class BarcodeSequence(Base):
    """Named counter."""
    __tablename__ = "barcode_sequences"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    next_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
