from __future__ import annotations

from vokalconnect.core.config import ACCESS_CODE_ALPHABET
from vokalconnect.services.businesses import generate_access_code, normalize_access_code


def test_access_code_uses_alphabet_and_length() -> None:
    for _ in range(50):
        code = generate_access_code(8)
        assert len(code) == 8
        assert set(code) <= set(ACCESS_CODE_ALPHABET)


def test_access_code_default_length_from_settings() -> None:
    assert len(generate_access_code()) == 8


def test_access_codes_are_not_repeated() -> None:
    codes = {generate_access_code(8) for _ in range(200)}
    assert len(codes) == 200


def test_normalize_access_code() -> None:
    assert normalize_access_code("  ab12cd34 ") == "AB12CD34"
    assert normalize_access_code(None) == ""
