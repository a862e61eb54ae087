from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.recovery_codes import RecoveryCodes
from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.application.use_cases.two_factor_common import (
    RECOVERY_CODE_BATCH_SIZE,
    issue_recovery_codes,
    require_user,
)
from secyourflow.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorNotEnrolledError,
)
from secyourflow.contexts.identity.domain.entities import TotpUserUpdate
from secyourflow.contexts.identity.domain.value_objects import TotpEnrollmentState
from secyourflow.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegenerateRecoveryCodesResult:
    """
    RegenerateRecoveryCodesResult: fresh plaintext recovery batch, shown to the user once.

    The previous batch is invalid as soon as this result exists.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/security/two_factor/
        hmac_recovery_codes.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    recovery_codes: tuple[str, ...]
    generated_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "recovery_codes", tuple(self.recovery_codes))
        if len(self.recovery_codes) != RECOVERY_CODE_BATCH_SIZE:
            raise ValueError(
                "RegenerateRecoveryCodesResult.recovery_codes must contain "
                f"{RECOVERY_CODE_BATCH_SIZE} codes"
            )


class RegenerateRecoveryCodesUseCase:
    """
    RegenerateRecoveryCodesUseCase: replace the whole recovery batch of an active user.

    The recent-authentication requirement is enforced by the HTTP layer, not here.
    """

    def __init__(
        self,
        *,
        store: TotpUserStore,
        recovery_codes: RecoveryCodes,
        clock: IdentityClock,
    ) -> None:
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("RegenerateRecoveryCodesUseCase requires store")
        if recovery_codes is None:  # type: ignore[truthy-bool]
            raise ValueError("RegenerateRecoveryCodesUseCase requires recovery_codes")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("RegenerateRecoveryCodesUseCase requires clock")

        self._store = store
        self._recovery_codes = recovery_codes
        self._clock = clock

    def regenerate(self, *, user_id: UserId) -> RegenerateRecoveryCodesResult:
        """
        Issue a fresh batch, invalidating every previously issued recovery code.

        Raises:
            TwoFactorUserNotFoundError: If the user does not exist.
            TwoFactorNotEnrolledError: If TOTP is not active.
        """
        record = require_user(store=self._store, user_id=user_id)
        if record.enrollment_state is not TotpEnrollmentState.ACTIVE:
            raise TwoFactorNotEnrolledError(
                "Enable two-factor authentication before generating recovery codes."
            )

        codes, hashes = issue_recovery_codes(recovery_codes=self._recovery_codes)
        self._store.update_by_id(
            user_id=user_id,
            update=TotpUserUpdate(totp_recovery_codes_hash=hashes),
        )
        log.info("recovery codes regenerated for user %s", user_id)
        return RegenerateRecoveryCodesResult(
            recovery_codes=tuple(codes),
            generated_at=self._clock.now(),
        )
