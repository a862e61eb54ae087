from __future__ import annotations

from typing import Protocol

from secyourflow.contexts.identity.domain.entities import TotpUserRecord, TotpUserUpdate
from secyourflow.shared_kernel.primitives import UserId


class TotpUserStore(Protocol):
    """
    TotpUserStore: user-record collaborator exposing TOTP fields by user id.

    Each call observes the latest committed state, so a read that follows another
    request's update sees that update.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/persistence/in_memory/
        totp_user_store.py
      - src/secyourflow/contexts/identity/adapters/outbound/persistence/postgres/
        totp_user_store.py
    """

    def get_by_id(self, *, user_id: UserId) -> TotpUserRecord | None:
        """
        Load the TOTP view of a user.

        Args:
            user_id: Identity user id.
        Returns:
            TotpUserRecord | None: Current record or `None` for unknown users.
        Raises:
            Exception: Storage errors from the implementation.
        """
        ...

    def update_by_id(self, *, user_id: UserId, update: TotpUserUpdate) -> TotpUserRecord:
        """
        Apply a partial TOTP update and return the stored result.

        Args:
            user_id: Identity user id.
            update: Fields to write; unset fields are untouched.
        Returns:
            TotpUserRecord: Record after the update.
        Raises:
            LookupError: If the user does not exist.
            Exception: Storage errors from the implementation.
        Side Effects:
            Persists one record mutation.
        """
        ...

    def advance_last_used_step(self, *, user_id: UserId, step: int) -> TotpUserRecord | None:
        """
        Record `step` as the last used TOTP step only if it is newer than the stored one.

        Args:
            user_id: Identity user id.
            step: Matched step index.
        Returns:
            TotpUserRecord | None: Record after the write, or `None` when the stored step
            is already at or after `step`.
        Assumptions:
            Check and write are one atomic operation, so concurrent callers with the
            same step see exactly one success and the stored step never decreases.
        Raises:
            LookupError: If the user does not exist.
            Exception: Storage errors from the implementation.
        Side Effects:
            Persists at most one record mutation.
        """
        ...
