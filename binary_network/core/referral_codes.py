"""Referral Codes — generation of short human-shareable member codes.

Invariants:
    - Code = up to three upper-case letters from the member's name (padded with 'X')
      followed by a six-digit member number, e.g. "ANA482913"
    - Generated codes are upper-case; supplied codes are stored as given after
      stripping whitespace, and all codes compare case-sensitively
"""

import random

MEMBER_NUMBER_MIN = 100_000
MEMBER_NUMBER_MAX = 999_999
PREFIX_LENGTH = 3


def generate_member_number(rng: random.Random | None = None) -> str:
    """Six-digit numeric member number."""
    source = rng or random
    return str(source.randint(MEMBER_NUMBER_MIN, MEMBER_NUMBER_MAX))  # nosec B311


def build_referral_code(name: str, member_number: str) -> str:
    letters = "".join(ch for ch in name.upper() if "A" <= ch <= "Z")
    prefix = letters[:PREFIX_LENGTH].ljust(PREFIX_LENGTH, "X")
    return f"{prefix}{member_number}"


def normalize_code(code: str | None) -> str | None:
    """Strip whitespace; empty strings mean 'no code'."""
    if code is None:
        return None
    code = code.strip()
    return code or None
