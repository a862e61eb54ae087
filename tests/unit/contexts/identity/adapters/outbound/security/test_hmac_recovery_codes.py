from __future__ import annotations

import re

import pytest

from secyourflow.contexts.identity.adapters.outbound.security.two_factor import (
    RECOVERY_CODE_ALPHABET,
    HmacRecoveryCodes,
    coerce_recovery_hashes,
    normalize_recovery_code,
)
from secyourflow.platform.config import KeyMaterialNotConfiguredError

_ENVIRON = {"TOTP_RECOVERY_CODE_KEY": "unit-test-recovery-key"}
_CODE_SHAPE = re.compile(rf"^[{RECOVERY_CODE_ALPHABET}]{{5}}-[{RECOVERY_CODE_ALPHABET}]{{5}}$")


def test_generate_returns_requested_count_of_unambiguous_codes() -> None:
    """
    Verify generated codes follow `XXXXX-XXXXX` over the unambiguous alphabet.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Alphabet excludes 0, 1, I, L and O.
    Raises:
        AssertionError: If shape or alphabet is violated.
    Side Effects:
        None.
    """
    codes = HmacRecoveryCodes.from_environ(environ=_ENVIRON).generate(10)

    assert len(codes) == 10
    assert all(_CODE_SHAPE.match(code) for code in codes)
    assert not set("01ILO") & set(RECOVERY_CODE_ALPHABET)
    assert len(set(codes)) == 10


def test_generate_rejects_non_positive_count() -> None:
    with pytest.raises(ValueError):
        HmacRecoveryCodes.from_environ(environ=_ENVIRON).generate(0)


def test_hash_code_normalizes_case_and_separators() -> None:
    recovery_codes = HmacRecoveryCodes.from_environ(environ=_ENVIRON)

    expected = recovery_codes.hash_code("ABCDE-FGHJK")

    assert re.match(r"^[0-9a-f]{64}$", expected)
    assert recovery_codes.hash_code("abcde fghjk") == expected
    assert recovery_codes.hash_code(" ab-cde_fg.hjk ") == expected
    assert normalize_recovery_code(" ab-cde_fg.hjk ") == "ABCDEFGHJK"


def test_hash_code_depends_on_key_material() -> None:
    first = HmacRecoveryCodes.from_environ(environ=_ENVIRON)
    second = HmacRecoveryCodes.from_environ(environ={"TOTP_RECOVERY_CODE_KEY": "other-key"})

    assert first.hash_code("ABCDE-FGHJK") != second.hash_code("ABCDE-FGHJK")


def test_consume_removes_exactly_one_matching_entry() -> None:
    """
    Verify consumption drops the first matching hash and keeps stored order.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Duplicate hashes can exist in legacy data; only one is consumed per call.
    Raises:
        AssertionError: If more or fewer than one entry is removed.
    Side Effects:
        None.
    """
    recovery_codes = HmacRecoveryCodes.from_environ(environ=_ENVIRON)
    codes = recovery_codes.generate(3)
    hashes = [recovery_codes.hash_code(code) for code in codes]
    stored = [hashes[0], hashes[1], hashes[1], hashes[2]]

    consumption = recovery_codes.consume(codes[1].lower(), stored)

    assert consumption.matched is True
    assert consumption.remaining_hashes == (hashes[0], hashes[1], hashes[2])
    assert consumption.remaining == 3


def test_consume_without_match_returns_stored_hashes_unchanged() -> None:
    recovery_codes = HmacRecoveryCodes.from_environ(environ=_ENVIRON)
    stored = (recovery_codes.hash_code("ABCDE-FGHJK"),)

    wrong = recovery_codes.consume("ZZZZZ-ZZZZZ", stored)
    blank = recovery_codes.consume(" - ", stored)

    assert wrong.matched is False
    assert wrong.remaining_hashes == stored
    assert blank.matched is False
    assert recovery_codes.consume("ABCDE-FGHJK", ()).matched is False


def test_recovery_codes_require_key_material() -> None:
    recovery_codes = HmacRecoveryCodes.from_environ(environ={})

    with pytest.raises(KeyMaterialNotConfiguredError):
        recovery_codes.hash_code("ABCDE-FGHJK")
    with pytest.raises(KeyMaterialNotConfiguredError):
        recovery_codes.assert_configured()


def test_coerce_recovery_hashes_drops_invalid_entries() -> None:
    valid = "A" * 64

    assert coerce_recovery_hashes([valid, "not-a-hash", 7, None, " " + "b" * 64]) == (
        "a" * 64,
        "b" * 64,
    )
    assert coerce_recovery_hashes({"hash": valid}) == ()
    assert coerce_recovery_hashes(None) == ()
    assert coerce_recovery_hashes("a" * 64) == ()
