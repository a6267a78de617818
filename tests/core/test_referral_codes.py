"""Referral Codes — verifies the name-prefix + six-digit code scheme."""

import random

from binary_network.core.referral_codes import (
    build_referral_code, generate_member_number, normalize_code,
)


def test_code_uses_first_three_letters_upper_cased():
    assert build_referral_code("anita sharma", "482913") == "ANI482913"


def test_short_or_non_latin_names_are_padded():
    assert build_referral_code("Jo", "100000") == "JOX100000"
    assert build_referral_code("42 ", "100001") == "XXX100001"


def test_member_number_is_six_digits_and_seedable():
    first = generate_member_number(random.Random(7))
    second = generate_member_number(random.Random(7))
    assert first == second
    assert len(first) == 6
    assert first.isdigit()


def test_normalize_code_strips_and_drops_empty():
    assert normalize_code("  ANI482913 ") == "ANI482913"
    assert normalize_code("   ") is None
    assert normalize_code(None) is None


def test_normalize_code_keeps_supplied_case():
    assert normalize_code(" abc123 ") == "abc123"
