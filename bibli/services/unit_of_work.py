"""Unit of Work — all-or-nothing execution of one operation's storage effects.

Invariants:
    - Leaving the block normally commits exactly once
    - Any exception rolls back everything flushed inside the block, then propagates
    - IntegrityError (unique/foreign key race lost at flush or commit) surfaces as
      ConcurrencyError (409); nothing is retried

Design Decisions:
    - Context manager over decorator: services keep their lookups outside the
      block and only the mutating section inside it
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.core.errors import ConcurrencyError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Commit on success, roll back on any failure."""
    try:
        yield db
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Integrity conflict, rolled back: {e.orig}")
        raise ConcurrencyError(
            "A concurrent change conflicted with this operation; nothing was saved",
        )
    except Exception:
        await db.rollback()
        raise
