from __future__ import annotations

from datetime import datetime
from typing import Protocol


class IdentityClock(Protocol):
    """
    IdentityClock: source of the current time for identity use-cases and session checks.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/time/system_identity_clock.py
      - src/secyourflow/contexts/identity/application/use_cases/two_factor_common.py
    """

    def now(self) -> datetime:
        """
        Return current timezone-aware UTC datetime.
        """
        ...
