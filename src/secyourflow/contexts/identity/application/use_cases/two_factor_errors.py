from __future__ import annotations


class TwoFactorOperationError(ValueError):
    """
    TwoFactorOperationError: base application error for TOTP two-factor operations.

    Every subclass carries a stable machine-readable `code` and the HTTP status the inbound
    adapter should answer with.

    Related:
      - src/secyourflow/contexts/identity/application/use_cases/challenge_two_factor_totp.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, code: str, message: str, status_code: int) -> None:
        """
        Initialize stable operation error attributes for HTTP mapping.

        Args:
            code: Machine-readable error code.
            message: Human-readable message safe to show to the user.
            status_code: HTTP status expected by the inbound adapter.
        Returns:
            None.
        Assumptions:
            Status code is final; adapters do not remap it.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code

    def payload(self) -> dict[str, str]:
        """
        Build `{"error": code, "message": message}` payload for `HTTPException.detail`.
        """
        return {
            "error": self.code,
            "message": self.message,
        }


class TwoFactorNotEnrolledError(TwoFactorOperationError):
    """
    Operation needs a secret (pending or active) that the user does not have.
    """

    def __init__(self, message: str = "Two-factor authentication is not enabled.") -> None:
        super().__init__(code="not_enrolled", message=message, status_code=400)


class TwoFactorAlreadyEnabledError(TwoFactorOperationError):
    """
    Enrollment or activation requested while TOTP is already active.
    """

    def __init__(self) -> None:
        super().__init__(
            code="already_enabled",
            message="Two-factor authentication is already enabled.",
            status_code=409,
        )


class TwoFactorInvalidCodeError(TwoFactorOperationError):
    """
    Submitted code failed every applicable check or was malformed.

    One error covers wrong primary codes, wrong recovery codes and malformed input so the
    response does not reveal which check failed.
    """

    def __init__(self, message: str = "Invalid authentication code.") -> None:
        super().__init__(code="invalid_code", message=message, status_code=400)


class TwoFactorReplayDetectedError(TwoFactorOperationError):
    """
    Submitted code matched a step at or before the last accepted step.
    """

    def __init__(self) -> None:
        super().__init__(
            code="replay_detected",
            message="That code was already used. Wait for the next code.",
            status_code=409,
        )


class TwoFactorUserNotFoundError(TwoFactorOperationError):
    def __init__(self) -> None:
        super().__init__(code="user_not_found", message="User not found.", status_code=404)


class TwoFactorMissingEmailError(TwoFactorOperationError):
    def __init__(self) -> None:
        super().__init__(
            code="missing_email",
            message="User email is required for TOTP enrollment.",
            status_code=400,
        )


class TwoFactorSecretUnavailableError(TwoFactorOperationError):
    """
    Stored sealed secret could not be unsealed; the user has to enroll again.
    """

    def __init__(self) -> None:
        super().__init__(
            code="invalid_credential",
            message="Stored two-factor secret is unreadable. Re-enroll two-factor authentication.",
            status_code=409,
        )
