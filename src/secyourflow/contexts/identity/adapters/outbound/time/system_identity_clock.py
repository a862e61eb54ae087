from __future__ import annotations

from datetime import datetime, timezone

from secyourflow.contexts.identity.application.ports.clock import IdentityClock


class SystemIdentityClock(IdentityClock):
    """
    SystemIdentityClock: `IdentityClock` backed by the system UTC wall clock.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
