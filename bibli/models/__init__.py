"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)

Design Decisions:
    - One file per entity (or tightly coupled pair) for locality
    - All models imported here so Base.metadata knows every table before
      create_all / alembic autogenerate runs
"""

from bibli.models.publisher import Publisher  # noqa: F401
from bibli.models.title import Title  # noqa: F401
from bibli.models.author import Author, TitleAuthor  # noqa: F401
from bibli.models.location import Location  # noqa: F401
from bibli.models.volume import Volume  # noqa: F401
from bibli.models.borrower import Borrower, BorrowerGroup  # noqa: F401
from bibli.models.loan import Loan  # noqa: F401
from bibli.models.duplicate_candidate import DuplicateCandidate  # noqa: F401
from bibli.models.barcode_sequence import BarcodeSequence  # noqa: F401
