"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Time is read through Clock, never datetime.now() inside services

Design Decisions:
    - Protocol over ABC: structural subtyping, tests pass any object with now()
"""

from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current time (timezone-aware UTC)."""
    def now(self) -> datetime: ...
