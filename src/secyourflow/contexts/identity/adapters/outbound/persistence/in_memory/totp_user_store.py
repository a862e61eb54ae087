from __future__ import annotations

import threading

from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.domain.entities import TotpUserRecord, TotpUserUpdate
from secyourflow.shared_kernel.primitives import UserId


class InMemoryTotpUserStore(TotpUserStore):
    """
    InMemoryTotpUserStore: process-local user-record store for tests and local runs.

    Every read and update runs under one lock, so an update is visible to the next read.

    Related:
      - src/secyourflow/contexts/identity/application/ports/totp_user_store.py
      - src/secyourflow/contexts/identity/adapters/outbound/persistence/postgres/
        totp_user_store.py
    """

    def __init__(self) -> None:
        self._rows: dict[str, TotpUserRecord] = {}
        self._lock = threading.Lock()

    def add(self, record: TotpUserRecord) -> TotpUserRecord:
        """
        Insert or replace a whole record.

        Args:
            record: Record to store.
        Returns:
            TotpUserRecord: Stored record.
        Side Effects:
            Replaces any previous record with the same user id.
        """
        with self._lock:
            self._rows[str(record.user_id)] = record
        return record

    def get_by_id(self, *, user_id: UserId) -> TotpUserRecord | None:
        with self._lock:
            return self._rows.get(str(user_id))

    def update_by_id(self, *, user_id: UserId, update: TotpUserUpdate) -> TotpUserRecord:
        """
        Apply a partial update to the stored record.

        Raises:
            LookupError: If the user does not exist.
            ValueError: If the resulting record violates record invariants.
        """
        key = str(user_id)
        with self._lock:
            current = self._rows.get(key)
            if current is None:
                raise LookupError(f"user {key} not found")
            updated = update.apply_to(current)
            self._rows[key] = updated
            return updated

    def advance_last_used_step(self, *, user_id: UserId, step: int) -> TotpUserRecord | None:
        key = str(user_id)
        with self._lock:
            current = self._rows.get(key)
            if current is None:
                raise LookupError(f"user {key} not found")
            last_used = current.totp_last_used_step
            if last_used is not None and last_used >= step:
                return None
            updated = TotpUserUpdate(totp_last_used_step=step).apply_to(current)
            self._rows[key] = updated
            return updated
