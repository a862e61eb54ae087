from __future__ import annotations

from typing import Callable

import pytest

from secyourflow.contexts.identity.adapters.outbound.security.sealing import (
    AesGcmSealedSecretCipher,
    redact_secret,
)
from secyourflow.contexts.identity.application.ports.secret_sealer import InvalidCredentialError
from secyourflow.platform.config import KeyMaterialNotConfiguredError

_ENVIRON = {"TOTP_ENCRYPTION_KEY": "unit-test-totp-encryption-key"}


def test_seal_produces_four_segment_envelope_that_unseals() -> None:
    """
    Verify sealed envelope layout and successful round trip.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Segments are `<version>.<iv>.<tag>.<ciphertext>` in unpadded base64url.
    Raises:
        AssertionError: If layout or plaintext recovery is broken.
    Side Effects:
        None.
    """
    cipher = AesGcmSealedSecretCipher.for_totp_secrets(environ=_ENVIRON)

    envelope = cipher.seal("JBSWY3DPEHPK3PXP")

    segments = envelope.split(".")
    assert len(segments) == 4
    assert segments[0] == "v1"
    assert all("=" not in segment for segment in segments)
    assert "JBSWY3DPEHPK3PXP" not in envelope
    assert cipher.unseal(envelope) == "JBSWY3DPEHPK3PXP"


def test_seal_uses_fresh_iv_per_call() -> None:
    cipher = AesGcmSealedSecretCipher.for_totp_secrets(environ=_ENVIRON)

    first = cipher.seal("same-plaintext")
    second = cipher.seal("same-plaintext")

    assert first != second
    assert first.split(".")[1] != second.split(".")[1]


def test_seal_returns_already_sealed_value_unchanged() -> None:
    cipher = AesGcmSealedSecretCipher.for_totp_secrets(environ=_ENVIRON)
    envelope = cipher.seal("JBSWY3DPEHPK3PXP")

    assert cipher.is_sealed(envelope) is True
    assert cipher.seal(envelope) == envelope
    assert cipher.is_sealed("JBSWY3DPEHPK3PXP") is False


@pytest.mark.parametrize(
    "mutate",
    [
        lambda segments: ["v2", *segments[1:]],
        lambda segments: segments[:3],
        lambda segments: [segments[0], segments[1], segments[2], segments[3] + "AA"],
        lambda segments: [segments[0], segments[1][:-2], segments[2], segments[3]],
        lambda segments: [segments[0], segments[1], segments[2], "!!!"],
    ],
)
def test_unseal_rejects_tampered_envelopes(mutate: Callable[[list[str]], list[str]]) -> None:
    """
    Verify version, segment and authentication failures all raise InvalidCredentialError.

    Args:
        mutate: Envelope segment mutation under test.
    Returns:
        None.
    Assumptions:
        Callers cannot tell which check failed.
    Raises:
        AssertionError: If a tampered envelope unseals.
    Side Effects:
        None.
    """
    cipher = AesGcmSealedSecretCipher.for_totp_secrets(environ=_ENVIRON)
    segments = cipher.seal("JBSWY3DPEHPK3PXP").split(".")

    with pytest.raises(InvalidCredentialError):
        cipher.unseal(".".join(mutate(segments)))


def test_unseal_with_other_key_material_fails_authentication() -> None:
    cipher = AesGcmSealedSecretCipher.for_totp_secrets(environ=_ENVIRON)
    other = AesGcmSealedSecretCipher.for_totp_secrets(
        environ={"TOTP_ENCRYPTION_KEY": "another-key"}
    )

    with pytest.raises(InvalidCredentialError):
        other.unseal(cipher.seal("JBSWY3DPEHPK3PXP"))


def test_credential_cipher_uses_own_version_tag_and_key_context() -> None:
    """
    Verify credential envelopes are not interchangeable with TOTP envelopes.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Both chains resolve to the same raw material in this environment.
    Raises:
        AssertionError: If a credential envelope unseals as a TOTP secret.
    Side Effects:
        None.
    """
    environ = {"AUTH_SECRET": "shared-auth-secret"}
    totp_cipher = AesGcmSealedSecretCipher.for_totp_secrets(environ=environ)
    credential_cipher = AesGcmSealedSecretCipher.for_credentials(environ=environ)

    envelope = credential_cipher.seal("exchange-api-key")

    assert envelope.startswith("secv1.")
    assert credential_cipher.unseal(envelope) == "exchange-api-key"
    assert totp_cipher.is_sealed(envelope) is False
    with pytest.raises(InvalidCredentialError):
        totp_cipher.unseal(envelope)


def test_missing_key_material_fails_on_first_use_not_construction() -> None:
    cipher = AesGcmSealedSecretCipher.for_totp_secrets(environ={})

    with pytest.raises(KeyMaterialNotConfiguredError):
        cipher.seal("JBSWY3DPEHPK3PXP")
    with pytest.raises(KeyMaterialNotConfiguredError):
        cipher.assert_configured()


def test_redact_secret_keeps_last_four_characters() -> None:
    assert redact_secret(None) == ""
    assert redact_secret("abc") == "****"
    assert redact_secret("JBSWY3DPEHPK3PXP") == "****3PXP"
