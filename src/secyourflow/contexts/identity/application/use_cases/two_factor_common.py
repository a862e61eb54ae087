"""
Helpers shared by TOTP two-factor use-cases.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.recovery_codes import RecoveryCodes
from secyourflow.contexts.identity.application.ports.secret_sealer import (
    InvalidCredentialError,
    SecretSealer,
)
from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorNotEnrolledError,
    TwoFactorSecretUnavailableError,
    TwoFactorUserNotFoundError,
)
from secyourflow.contexts.identity.domain.entities import TotpUserRecord
from secyourflow.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)

RECOVERY_CODE_BATCH_SIZE = 10


def require_user(*, store: TotpUserStore, user_id: UserId) -> TotpUserRecord:
    record = store.get_by_id(user_id=user_id)
    if record is None:
        raise TwoFactorUserNotFoundError()
    return record


def unseal_secret(*, sealer: SecretSealer, record: TotpUserRecord) -> str:
    """
    Unseal the stored TOTP secret of a record.

    Args:
        sealer: Secret sealing port.
        record: User record with a sealed secret.
    Returns:
        str: Plaintext base32 secret, kept in memory only.
    Raises:
        TwoFactorNotEnrolledError: If the record has no sealed secret.
        TwoFactorSecretUnavailableError: If the envelope fails authentication.
    """
    if not record.totp_secret_enc:
        raise TwoFactorNotEnrolledError()
    try:
        return sealer.unseal(record.totp_secret_enc)
    except InvalidCredentialError as error:
        log.error("sealed TOTP secret rejected for user %s", record.user_id)
        raise TwoFactorSecretUnavailableError() from error


def issue_recovery_codes(*, recovery_codes: RecoveryCodes) -> tuple[list[str], tuple[str, ...]]:
    """
    Generate a fresh recovery batch and its hashes.

    Returns:
        tuple[list[str], tuple[str, ...]]: Plaintext codes for one-time display and the
        hashes to persist, in the same order.
    """
    codes = recovery_codes.generate(RECOVERY_CODE_BATCH_SIZE)
    hashes = tuple(recovery_codes.hash_code(code) for code in codes)
    return codes, hashes


def resolve_now_ms(*, clock: IdentityClock, now_ms: int | None) -> int:
    """
    Return explicit `now_ms` or current clock time in epoch milliseconds.

    Raises:
        ValueError: If `now_ms` is negative or the clock returns a non-UTC datetime.
    """
    if now_ms is not None:
        if now_ms < 0:
            raise ValueError("now_ms must be >= 0")
        return now_ms
    return datetime_to_epoch_ms(value=clock.now())


def datetime_to_epoch_ms(*, value: datetime) -> int:
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None or offset.total_seconds() != 0:
        raise ValueError("datetime must be timezone-aware UTC datetime")
    return int(value.timestamp() * 1000)


def epoch_ms_to_datetime(*, value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
