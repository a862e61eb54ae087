from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence


@dataclass(frozen=True, slots=True)
class RecoveryCodeConsumption:
    """
    RecoveryCodeConsumption: outcome of matching a submitted recovery code.

    On a match `remaining_hashes` is the stored collection with exactly one entry removed.
    Without a match it is the stored collection unchanged.
    """

    matched: bool
    remaining_hashes: tuple[str, ...]

    @property
    def remaining(self) -> int:
        return len(self.remaining_hashes)


class RecoveryCodes(Protocol):
    """
    RecoveryCodes: one-time backup codes and their keyed one-way hashes.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/security/two_factor/
        hmac_recovery_codes.py
      - src/secyourflow/contexts/identity/application/use_cases/regenerate_recovery_codes.py
    """

    def generate(self, count: int = 10) -> list[str]:
        """
        Return `count` fresh codes formatted as `XXXXX-XXXXX`.
        """
        ...

    def hash_code(self, code: str) -> str:
        """
        Return the keyed hex hash of the normalized code.
        """
        ...

    def consume(self, code: str, stored_hashes: Sequence[str]) -> RecoveryCodeConsumption:
        """
        Match `code` against stored hashes in constant time per entry.
        """
        ...
