from __future__ import annotations

import logging
from dataclasses import dataclass

from secyourflow.contexts.identity.application.ports.secret_sealer import SecretSealer
from secyourflow.contexts.identity.application.ports.totp_provider import TotpProvider
from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.application.use_cases.two_factor_common import require_user
from secyourflow.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorAlreadyEnabledError,
    TwoFactorMissingEmailError,
)
from secyourflow.contexts.identity.domain.entities import TotpUserUpdate
from secyourflow.contexts.identity.domain.value_objects import TotpEnrollmentState
from secyourflow.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)

DEFAULT_TOTP_ISSUER = "SecYourFlow"


@dataclass(frozen=True, slots=True)
class EnrollTwoFactorTotpResult:
    """
    EnrollTwoFactorTotpResult: one-time view of a pending secret for authenticator setup.

    Related:
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    secret: str
    otpauth_url: str

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("EnrollTwoFactorTotpResult.secret must be non-empty")
        if not self.otpauth_url.startswith("otpauth://totp/"):
            raise ValueError("EnrollTwoFactorTotpResult.otpauth_url must be otpauth totp URI")


class EnrollTwoFactorTotpUseCase:
    """
    EnrollTwoFactorTotpUseCase: create or replace the pending TOTP secret of a user.

    Related:
      - src/secyourflow/contexts/identity/application/use_cases/verify_two_factor_enrollment.py
      - src/secyourflow/contexts/identity/application/ports/secret_sealer.py
      - src/secyourflow/contexts/identity/application/ports/totp_provider.py
    """

    def __init__(
        self,
        *,
        store: TotpUserStore,
        sealer: SecretSealer,
        totp_provider: TotpProvider,
        issuer: str = DEFAULT_TOTP_ISSUER,
    ) -> None:
        """
        Initialize enrollment dependencies.

        Args:
            store: User-record store.
            sealer: Secret sealing port.
            totp_provider: TOTP primitive.
            issuer: Default issuer shown by authenticator apps.
        Returns:
            None.
        Assumptions:
            Dependencies are initialized and non-null.
        Raises:
            ValueError: If a dependency is missing or issuer is blank.
        Side Effects:
            None.
        """
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("EnrollTwoFactorTotpUseCase requires store")
        if sealer is None:  # type: ignore[truthy-bool]
            raise ValueError("EnrollTwoFactorTotpUseCase requires sealer")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("EnrollTwoFactorTotpUseCase requires totp_provider")
        normalized_issuer = issuer.strip()
        if not normalized_issuer:
            raise ValueError("EnrollTwoFactorTotpUseCase requires non-empty issuer")

        self._store = store
        self._sealer = sealer
        self._totp_provider = totp_provider
        self._issuer = normalized_issuer

    def enroll(self, *, user_id: UserId, issuer: str | None = None) -> EnrollTwoFactorTotpResult:
        """
        Generate, seal and persist a pending secret, leaving TOTP disabled.

        Args:
            user_id: Identity user id.
            issuer: Optional issuer override for the provisioning URI.
        Returns:
            EnrollTwoFactorTotpResult: Plaintext secret and otpauth URI, shown once.
        Assumptions:
            Re-enrolling an unverified user overwrites the previous pending secret.
        Raises:
            TwoFactorUserNotFoundError: If the user does not exist.
            TwoFactorAlreadyEnabledError: If TOTP is already active.
            TwoFactorMissingEmailError: If the record has no email to use as label.
        Side Effects:
            Writes sealed secret and clears verification time, recovery hashes and
            last used step in one store update.
        """
        record = require_user(store=self._store, user_id=user_id)
        if record.enrollment_state is TotpEnrollmentState.ACTIVE:
            raise TwoFactorAlreadyEnabledError()
        account_label = (record.email or "").strip()
        if not account_label:
            raise TwoFactorMissingEmailError()

        effective_issuer = (issuer or "").strip() or self._issuer
        secret = self._totp_provider.generate_secret()
        otpauth_url = self._totp_provider.build_provisioning_uri(
            secret=secret,
            account_label=account_label,
            issuer=effective_issuer,
        )
        self._store.update_by_id(
            user_id=user_id,
            update=TotpUserUpdate(
                totp_enabled=False,
                totp_secret_enc=self._sealer.seal(secret),
                totp_verified_at=None,
                totp_recovery_codes_hash=None,
                totp_last_used_step=None,
            ),
        )
        log.info("TOTP enrollment started for user %s", user_id)
        return EnrollTwoFactorTotpResult(secret=secret, otpauth_url=otpauth_url)
