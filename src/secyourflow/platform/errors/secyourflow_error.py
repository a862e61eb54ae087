from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence


@dataclass(frozen=True, slots=True)
class SecYourFlowError(Exception):
    """
    SecYourFlowError: platform-level error contract rendered by API error handlers.

    Related:
      - apps/api/common/errors.py
      - apps/api/main/app.py
    """

    code: str
    message: str
    details: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        """
        Validate error fields and freeze details into plain JSON-compatible payloads.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `code` is a stable machine-readable token used for HTTP status mapping.
        Raises:
            ValueError: If `code` or `message` are blank.
            TypeError: If `details` is provided but is not a mapping.
        Side Effects:
            Replaces frozen slots with normalized copies.
        """
        normalized_code = self.code.strip()
        normalized_message = self.message.strip()
        if not normalized_code:
            raise ValueError("SecYourFlowError.code must be non-empty")
        if not normalized_message:
            raise ValueError("SecYourFlowError.message must be non-empty")

        object.__setattr__(self, "code", normalized_code)
        object.__setattr__(self, "message", normalized_message)

        if self.details is None:
            return
        if not isinstance(self.details, Mapping):
            raise TypeError("SecYourFlowError.details must be a mapping when provided")
        object.__setattr__(self, "details", normalize_payload_value(value=dict(self.details)))

    def to_payload(self) -> dict[str, Any]:
        """
        Build `{"error": {"code", "message", "details"}}` API payload.
        """
        details_payload: Mapping[str, Any] = self.details if self.details is not None else {}
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": dict(details_payload),
            }
        }


def normalize_payload_value(*, value: Any) -> Any:
    """
    Normalize nested payload values into plain sorted Python structures.

    Args:
        value: Any JSON-like value.
    Returns:
        Any: Normalized scalar, list or dict; unknown objects are stringified.
    """
    if isinstance(value, Mapping):
        normalized_mapping: dict[str, Any] = {}
        for raw_key, raw_value in sorted(value.items(), key=lambda item: str(item[0])):
            normalized_mapping[str(raw_key)] = normalize_payload_value(value=raw_value)
        return normalized_mapping

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [normalize_payload_value(value=item) for item in value]

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value

    return str(value)
