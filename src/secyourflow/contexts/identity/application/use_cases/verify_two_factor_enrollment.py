from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.recovery_codes import RecoveryCodes
from secyourflow.contexts.identity.application.ports.secret_sealer import SecretSealer
from secyourflow.contexts.identity.application.ports.totp_provider import TotpProvider
from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.application.use_cases.two_factor_common import (
    RECOVERY_CODE_BATCH_SIZE,
    epoch_ms_to_datetime,
    issue_recovery_codes,
    require_user,
    resolve_now_ms,
    unseal_secret,
)
from secyourflow.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorAlreadyEnabledError,
    TwoFactorInvalidCodeError,
    TwoFactorNotEnrolledError,
    TwoFactorReplayDetectedError,
)
from secyourflow.contexts.identity.domain.entities import TotpUserUpdate
from secyourflow.contexts.identity.domain.value_objects import TotpEnrollmentState
from secyourflow.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VerifyTwoFactorEnrollmentResult:
    """
    VerifyTwoFactorEnrollmentResult: activation outcome with the first recovery batch.

    Related:
      - src/secyourflow/contexts/identity/application/use_cases/verify_two_factor_enrollment.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    recovery_codes: tuple[str, ...]
    verified_at: datetime
    matched_step: int

    def __post_init__(self) -> None:
        """
        Validate that activation always hands out a full recovery batch.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Batch size is fixed for every activation.
        Raises:
            ValueError: If the batch size differs or the step is negative.
        Side Effects:
            Converts recovery codes into a tuple.
        """
        object.__setattr__(self, "recovery_codes", tuple(self.recovery_codes))
        if len(self.recovery_codes) != RECOVERY_CODE_BATCH_SIZE:
            raise ValueError(
                "VerifyTwoFactorEnrollmentResult.recovery_codes must contain "
                f"{RECOVERY_CODE_BATCH_SIZE} codes"
            )
        if self.matched_step < 0:
            raise ValueError("VerifyTwoFactorEnrollmentResult.matched_step must be >= 0")


class VerifyTwoFactorEnrollmentUseCase:
    """
    VerifyTwoFactorEnrollmentUseCase: confirm possession of the pending secret and activate TOTP.

    Related:
      - src/secyourflow/contexts/identity/application/use_cases/enroll_two_factor_totp.py
      - src/secyourflow/contexts/identity/application/ports/recovery_codes.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        store: TotpUserStore,
        sealer: SecretSealer,
        totp_provider: TotpProvider,
        recovery_codes: RecoveryCodes,
        clock: IdentityClock,
    ) -> None:
        """
        Initialize activation dependencies.

        Args:
            store: User-record store.
            sealer: Secret sealing port.
            totp_provider: TOTP primitive.
            recovery_codes: Recovery-code primitive.
            clock: UTC time source used when `now_ms` is not supplied.
        Returns:
            None.
        Assumptions:
            Dependencies are initialized and non-null.
        Raises:
            ValueError: If a dependency is missing.
        Side Effects:
            None.
        """
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTwoFactorEnrollmentUseCase requires store")
        if sealer is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTwoFactorEnrollmentUseCase requires sealer")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTwoFactorEnrollmentUseCase requires totp_provider")
        if recovery_codes is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTwoFactorEnrollmentUseCase requires recovery_codes")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTwoFactorEnrollmentUseCase requires clock")

        self._store = store
        self._sealer = sealer
        self._totp_provider = totp_provider
        self._recovery_codes = recovery_codes
        self._clock = clock

    def verify(
        self,
        *,
        user_id: UserId,
        code: str,
        now_ms: int | None = None,
    ) -> VerifyTwoFactorEnrollmentResult:
        """
        Verify a code against the pending secret and activate TOTP on success.

        Args:
            user_id: Identity user id.
            code: Submitted TOTP code.
            now_ms: Optional verification instant in epoch milliseconds.
        Returns:
            VerifyTwoFactorEnrollmentResult: Plaintext recovery codes, shown once.
        Assumptions:
            Enrollment reset the last used step, so replay normally cannot occur here.
        Raises:
            TwoFactorUserNotFoundError: If the user does not exist.
            TwoFactorAlreadyEnabledError: If TOTP is already active.
            TwoFactorNotEnrolledError: If no enrollment is pending.
            TwoFactorSecretUnavailableError: If the pending secret cannot be unsealed.
            TwoFactorReplayDetectedError: If the code step was already consumed.
            TwoFactorInvalidCodeError: If the code does not verify.
        Side Effects:
            One store update enabling TOTP, replacing recovery hashes and recording
            verification time and matched step.
        """
        record = require_user(store=self._store, user_id=user_id)
        state = record.enrollment_state
        if state is TotpEnrollmentState.ACTIVE:
            raise TwoFactorAlreadyEnabledError()
        if state is TotpEnrollmentState.NOT_ENROLLED:
            raise TwoFactorNotEnrolledError("No TOTP enrollment in progress.")

        effective_now_ms = resolve_now_ms(clock=self._clock, now_ms=now_ms)
        secret = unseal_secret(sealer=self._sealer, record=record)
        verification = self._totp_provider.verify_token(
            secret=secret,
            code=code,
            last_used_step=record.totp_last_used_step,
            at_epoch_ms=effective_now_ms,
        )
        if verification.is_replay:
            log.warning("replayed TOTP code during enrollment for user %s", user_id)
            raise TwoFactorReplayDetectedError()
        if not verification.is_valid or verification.matched_step is None:
            raise TwoFactorInvalidCodeError()

        codes, hashes = issue_recovery_codes(recovery_codes=self._recovery_codes)
        verified_at = epoch_ms_to_datetime(value=effective_now_ms)
        self._store.update_by_id(
            user_id=user_id,
            update=TotpUserUpdate(
                totp_enabled=True,
                totp_verified_at=verified_at,
                totp_recovery_codes_hash=hashes,
                totp_last_used_step=verification.matched_step,
            ),
        )
        log.info("TOTP activated for user %s", user_id)
        return VerifyTwoFactorEnrollmentResult(
            recovery_codes=tuple(codes),
            verified_at=verified_at,
            matched_step=verification.matched_step,
        )
