"""Generators for human-facing record identifiers."""

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_uppercase


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_medical_record_number() -> str:
    """Return a patient MRN like ``MRN-LX3K9Q2A-4FJ8ZQ``."""
    return f"MRN-{_base36(int(time.time() * 1000))}-{_random_suffix(6)}"


def generate_license_number() -> str:
    """Return a placeholder staff license number until one is recorded."""
    return f"LIC-{int(time.time() * 1000)}-{_random_suffix(5)}"
