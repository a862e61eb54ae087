from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.application.use_cases.two_factor_common import require_user
from secyourflow.contexts.identity.domain.value_objects import TotpEnrollmentState
from secyourflow.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class TwoFactorStatus:
    """
    TwoFactorStatus: TOTP summary safe to expose; never carries secrets or hashes.
    """

    enabled: bool
    verified_at: datetime | None
    has_pending_enrollment: bool
    recovery_codes_remaining: int


class GetTwoFactorStatusUseCase:
    """
    GetTwoFactorStatusUseCase: read-only TOTP summary for settings screens.

    Related:
      - src/secyourflow/contexts/identity/application/ports/totp_user_store.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, store: TotpUserStore) -> None:
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("GetTwoFactorStatusUseCase requires store")
        self._store = store

    def get_status(self, *, user_id: UserId) -> TwoFactorStatus:
        """
        Summarize TOTP state of a user.

        Raises:
            TwoFactorUserNotFoundError: If the user does not exist.
        """
        record = require_user(store=self._store, user_id=user_id)
        state = record.enrollment_state
        return TwoFactorStatus(
            enabled=state is TotpEnrollmentState.ACTIVE,
            verified_at=record.totp_verified_at,
            has_pending_enrollment=state is TotpEnrollmentState.ENROLLED_UNVERIFIED,
            recovery_codes_remaining=record.recovery_codes_remaining,
        )
