from __future__ import annotations

from enum import Enum


class TotpEnrollmentState(str, Enum):
    """
    TotpEnrollmentState: per-user TOTP lifecycle state.

    Transitions:
      - NOT_ENROLLED -> ENROLLED_UNVERIFIED via enroll.
      - ENROLLED_UNVERIFIED -> ENROLLED_UNVERIFIED via re-enroll (pending secret replaced).
      - ENROLLED_UNVERIFIED -> ACTIVE via verify-enrollment.
      - ACTIVE -> ACTIVE via recovery-code regeneration.
      - ACTIVE -> NOT_ENROLLED via disable.
    """

    NOT_ENROLLED = "not_enrolled"
    ENROLLED_UNVERIFIED = "enrolled_unverified"
    ACTIVE = "active"
