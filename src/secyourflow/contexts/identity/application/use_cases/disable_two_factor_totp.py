from __future__ import annotations

import logging
from dataclasses import dataclass

from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.recovery_codes import RecoveryCodes
from secyourflow.contexts.identity.application.ports.secret_sealer import SecretSealer
from secyourflow.contexts.identity.application.ports.totp_provider import TotpProvider
from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.application.use_cases.two_factor_common import (
    require_user,
    resolve_now_ms,
    unseal_secret,
)
from secyourflow.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorInvalidCodeError,
    TwoFactorNotEnrolledError,
    TwoFactorReplayDetectedError,
    TwoFactorSecretUnavailableError,
)
from secyourflow.contexts.identity.domain.entities import TotpUserRecord, TotpUserUpdate
from secyourflow.contexts.identity.domain.value_objects import TotpEnrollmentState
from secyourflow.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DisableTwoFactorTotpResult:
    """
    DisableTwoFactorTotpResult: disable outcome and which factor proved possession.

    Related:
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    disabled: bool
    used_recovery_code: bool


class DisableTwoFactorTotpUseCase:
    """
    DisableTwoFactorTotpUseCase: turn TOTP off after proving possession of a factor.

    When the stored secret cannot be unsealed only recovery codes are accepted, which
    still lets the user leave the broken enrollment.

    Related:
      - src/secyourflow/contexts/identity/application/use_cases/challenge_two_factor_totp.py
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
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("DisableTwoFactorTotpUseCase requires store")
        if sealer is None:  # type: ignore[truthy-bool]
            raise ValueError("DisableTwoFactorTotpUseCase requires sealer")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("DisableTwoFactorTotpUseCase requires totp_provider")
        if recovery_codes is None:  # type: ignore[truthy-bool]
            raise ValueError("DisableTwoFactorTotpUseCase requires recovery_codes")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("DisableTwoFactorTotpUseCase requires clock")

        self._store = store
        self._sealer = sealer
        self._totp_provider = totp_provider
        self._recovery_codes = recovery_codes
        self._clock = clock

    def disable(
        self,
        *,
        user_id: UserId,
        code: str,
        now_ms: int | None = None,
    ) -> DisableTwoFactorTotpResult:
        """
        Verify a primary or recovery code and clear every TOTP field.

        Args:
            user_id: Identity user id.
            code: Submitted TOTP code or recovery code.
            now_ms: Optional verification instant in epoch milliseconds.
        Returns:
            DisableTwoFactorTotpResult: Disabled marker and which factor was used.
        Assumptions:
            A pending, never activated enrollment counts as not enrolled.
        Raises:
            TwoFactorUserNotFoundError: If the user does not exist.
            TwoFactorNotEnrolledError: If TOTP is not active.
            TwoFactorReplayDetectedError: If the primary code step was already consumed.
            TwoFactorInvalidCodeError: If neither factor matches.
        Side Effects:
            One store update clearing enablement, secret, verification time, recovery
            hashes and last used step.
        """
        record = require_user(store=self._store, user_id=user_id)
        if record.enrollment_state is not TotpEnrollmentState.ACTIVE:
            raise TwoFactorNotEnrolledError()

        effective_now_ms = resolve_now_ms(clock=self._clock, now_ms=now_ms)
        used_recovery_code = not self._primary_code_matches(
            record=record,
            code=code,
            now_ms=effective_now_ms,
        )
        if used_recovery_code:
            consumption = self._recovery_codes.consume(
                code,
                record.totp_recovery_codes_hash or (),
            )
            if not consumption.matched:
                raise TwoFactorInvalidCodeError("Invalid authentication or recovery code.")

        self._store.update_by_id(
            user_id=user_id,
            update=TotpUserUpdate(
                totp_enabled=False,
                totp_secret_enc=None,
                totp_verified_at=None,
                totp_recovery_codes_hash=None,
                totp_last_used_step=None,
            ),
        )
        log.info("TOTP disabled for user %s", user_id)
        return DisableTwoFactorTotpResult(disabled=True, used_recovery_code=used_recovery_code)

    def _primary_code_matches(
        self,
        *,
        record: TotpUserRecord,
        code: str,
        now_ms: int,
    ) -> bool:
        try:
            secret = unseal_secret(sealer=self._sealer, record=record)
        except TwoFactorSecretUnavailableError:
            log.warning(
                "disable for user %s restricted to recovery codes, secret unreadable",
                record.user_id,
            )
            return False
        verification = self._totp_provider.verify_token(
            secret=secret,
            code=code,
            last_used_step=record.totp_last_used_step,
            at_epoch_ms=now_ms,
        )
        if verification.is_replay:
            raise TwoFactorReplayDetectedError()
        return verification.is_valid
