"""
Trust tag for two-factor session updates.

The tag is HMAC-SHA256 over the canonical JSON of the update payload, keyed by a key
derived from the session-update key chain. Checking the tag proves the update came from
server-side code holding that key and that its fields were not altered afterwards.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any, Mapping

from secyourflow.contexts.identity.application.ports.two_factor_session_update import (
    TRUST_TAG_FIELD,
    TrustedTwoFactorSessionUpdate,
    TwoFactorSessionUpdate,
    TwoFactorSessionUpdateSigner,
)
from secyourflow.platform.config import SESSION_UPDATE_KEY_CANDIDATES, LazyKeyMaterial, derive_key

log = logging.getLogger(__name__)

SESSION_UPDATE_KEY_CONTEXT = "two-factor-session-update"


class HmacTwoFactorSessionUpdateSigner(TwoFactorSessionUpdateSigner):
    """
    HmacTwoFactorSessionUpdateSigner: builds and checks trusted session updates.

    Related:
      - src/secyourflow/contexts/identity/application/ports/two_factor_session_update.py
      - src/secyourflow/contexts/identity/application/services/two_factor_session_updater.py
    """

    def __init__(self, *, key_material: LazyKeyMaterial) -> None:
        if key_material is None:  # type: ignore[truthy-bool]
            raise ValueError("HmacTwoFactorSessionUpdateSigner requires key_material")
        self._key_material = key_material

    @classmethod
    def from_environ(
        cls,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> HmacTwoFactorSessionUpdateSigner:
        return cls(
            key_material=LazyKeyMaterial(candidates=SESSION_UPDATE_KEY_CANDIDATES, environ=environ)
        )

    def assert_configured(self) -> None:
        """
        Raises:
            KeyMaterialNotConfiguredError: If no session-update key material is configured.
        """
        self._key_material.get()

    def build_trusted_update(self, update: TwoFactorSessionUpdate) -> TrustedTwoFactorSessionUpdate:
        key = derive_key(material=self._key_material.get(), context=SESSION_UPDATE_KEY_CONTEXT)
        return TrustedTwoFactorSessionUpdate(
            update=update,
            tag=_compute_tag(key=key, update=update),
        )

    def is_trusted(self, candidate: object) -> bool:
        """
        Check the tag of a typed update or its wire form.

        Args:
            candidate: `TrustedTwoFactorSessionUpdate`, a wire mapping, or anything else.
        Returns:
            bool: True only for well-formed updates whose tag matches. Missing key
            material, missing or wrong tags and malformed payloads all yield False.
        """
        material = self._key_material.find()
        if material is None:
            return False

        parsed = _parse_candidate(candidate=candidate)
        if parsed is None:
            return False
        update, provided_tag = parsed

        key = derive_key(material=material, context=SESSION_UPDATE_KEY_CONTEXT)
        expected_tag = _compute_tag(key=key, update=update)
        return hmac.compare_digest(expected_tag.encode("ascii"), provided_tag.encode("ascii"))


def _parse_candidate(*, candidate: object) -> tuple[TwoFactorSessionUpdate, str] | None:
    if isinstance(candidate, TrustedTwoFactorSessionUpdate):
        return candidate.update, candidate.tag
    if not isinstance(candidate, Mapping):
        return None
    provided_tag = candidate.get(TRUST_TAG_FIELD)
    if not isinstance(provided_tag, str) or not provided_tag or not provided_tag.isascii():
        return None
    try:
        update = TwoFactorSessionUpdate.from_payload(candidate)
    except ValueError:
        log.debug("malformed two-factor session update payload")
        return None
    return update, provided_tag


def _compute_tag(*, key: bytes, update: TwoFactorSessionUpdate) -> str:
    return hmac.new(key, _canonical_json(payload=update.to_payload()), hashlib.sha256).hexdigest()


def _canonical_json(*, payload: Mapping[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
