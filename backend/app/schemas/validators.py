"""Reusable field validators for request schemas.

Provides validators for the identifiers the platform accepts:
- Password strength
- Phone numbers
- PAN and Aadhaar numbers
- Assessment (tax) years
"""

import re

PHONE_REGEX = re.compile(r"^\+?[1-9]\d{6,14}$")
PAN_REGEX = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
AADHAR_REGEX = re.compile(r"^\d{12}$")
TAX_YEAR_REGEX = re.compile(r"^(\d{4})-(\d{4})$")

PASSWORD_MIN_LENGTH = 8


def validate_password(value: str) -> str:
    """Validate password strength.

    Args:
        value: Plain-text password

    Returns:
        The password, unchanged

    Raises:
        ValueError: If shorter than 8 characters or missing an upper-case
            letter, a lower-case letter or a digit
    """
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not (
        re.search(r"[a-z]", value)
        and re.search(r"[A-Z]", value)
        and re.search(r"\d", value)
    ):
        raise ValueError(
            "Password must contain at least one uppercase letter, "
            "one lowercase letter, and one number"
        )
    return value


def validate_phone(value: str | None) -> str | None:
    """Validate phone number (E.164-like, spaces and dashes ignored)."""
    if value is None:
        return None
    value = value.replace(" ", "").replace("-", "")
    if not PHONE_REGEX.match(value):
        raise ValueError("Invalid phone number format (use +911234567890)")
    return value


def validate_pan(value: str) -> str:
    """Validate a PAN and return it upper-cased.

    Raises:
        ValueError: If not five letters, four digits and one letter
    """
    value = value.strip().upper()
    if not PAN_REGEX.match(value):
        raise ValueError("Invalid PAN number format")
    return value


def validate_aadhar(value: str | None) -> str | None:
    """Validate a 12-digit Aadhaar number (spaces ignored)."""
    if value is None:
        return None
    value = value.replace(" ", "")
    if not AADHAR_REGEX.match(value):
        raise ValueError("Aadhar number must be 12 digits")
    return value


def validate_tax_year(value: str) -> str:
    """Validate a YYYY-YYYY assessment year where the end year follows the start.

    Raises:
        ValueError: On a bad format or a span other than one year
    """
    match = TAX_YEAR_REGEX.match(value.strip())
    if not match:
        raise ValueError("Invalid tax year format. Use YYYY-YYYY format")
    start, end = int(match.group(1)), int(match.group(2))
    if end != start + 1:
        raise ValueError("Invalid tax year. End year must be start year + 1")
    return value.strip()
