"""System Clock — wall-clock implementation of core.boundary_protocols.Clock."""

from datetime import datetime, timezone


class SystemClock:
    """Current UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
