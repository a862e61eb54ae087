from __future__ import annotations

import hashlib

import pytest

from secyourflow.platform.config import (
    RECOVERY_CODE_KEY_CANDIDATES,
    TOTP_SECRET_KEY_CANDIDATES,
    KeyMaterialNotConfiguredError,
    LazyKeyMaterial,
    derive_key,
    find_key_material,
    resolve_key_material,
)


def test_resolve_key_material_returns_first_non_blank_candidate() -> None:
    """
    Verify candidate chain is walked in order and blank values are skipped.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Whitespace-only values count as unset.
    Raises:
        AssertionError: If a later or blank candidate wins.
    Side Effects:
        None.
    """
    environ = {
        "TOTP_ENCRYPTION_KEY": "   ",
        "CREDENTIAL_ENCRYPTION_KEY": "credential-key",
        "AUTH_SECRET": "auth-secret",
    }

    material = resolve_key_material(environ=environ, candidates=TOTP_SECRET_KEY_CANDIDATES)

    assert material == b"credential-key"


def test_resolve_key_material_raises_when_chain_is_empty() -> None:
    with pytest.raises(KeyMaterialNotConfiguredError) as error_info:
        resolve_key_material(environ={}, candidates=RECOVERY_CODE_KEY_CANDIDATES)

    assert error_info.value.candidates == RECOVERY_CODE_KEY_CANDIDATES
    assert "TOTP_RECOVERY_CODE_KEY" in str(error_info.value)


def test_find_key_material_returns_none_instead_of_raising() -> None:
    assert find_key_material(environ={"OTHER": "x"}, candidates=("AUTH_SECRET",)) is None


def test_derive_key_is_purpose_bound() -> None:
    """
    Verify derived keys differ per context and follow the documented label layout.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Label format is `secyourflow:<context>:v1` followed by raw material.
    Raises:
        AssertionError: If contexts collide or the layout changes.
    Side Effects:
        None.
    """
    material = b"shared-secret"

    totp_key = derive_key(material=material, context="totp-secret")
    recovery_key = derive_key(material=material, context="totp-recovery-code")

    assert len(totp_key) == 32
    assert totp_key != recovery_key
    assert totp_key == hashlib.sha256(b"secyourflow:totp-secret:v1" + material).digest()


def test_derive_key_rejects_blank_context() -> None:
    with pytest.raises(ValueError):
        derive_key(material=b"x", context=" ")


def test_lazy_key_material_resolves_on_first_use_and_caches() -> None:
    """
    Verify lazy resolver reads the environment only on first `get`.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Environment mapping may be populated after construction.
    Raises:
        AssertionError: If resolution is eager or not cached.
    Side Effects:
        Mutates a local environment dict.
    """
    environ: dict[str, str] = {}
    lazy = LazyKeyMaterial(candidates=("AUTH_SECRET",), environ=environ)

    assert lazy.find() is None

    environ["AUTH_SECRET"] = "first"
    assert lazy.get() == b"first"

    environ["AUTH_SECRET"] = "second"
    assert lazy.get() == b"first"


def test_lazy_key_material_get_raises_when_unconfigured() -> None:
    lazy = LazyKeyMaterial(candidates=("AUTH_SECRET", "NEXTAUTH_SECRET"), environ={})

    with pytest.raises(KeyMaterialNotConfiguredError):
        lazy.get()


def test_lazy_key_material_requires_candidates() -> None:
    with pytest.raises(ValueError):
        LazyKeyMaterial(candidates=(" ",), environ={})
