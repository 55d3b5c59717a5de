"""
Contact formatting: turns free-text parent contact details into
something a delivery provider accepts.

Phones follow the Ethiopian numbering plan (country code 251, mobile
numbers starting 9 or 7). Pure functions, no I/O.
"""

from __future__ import annotations

import re

from tally.core.errors import InvalidPhone

COUNTRY_CODE = "251"

_NON_DIAL = re.compile(r"[^\d+]")
_E164_MOBILE = re.compile(rf"^\+{COUNTRY_CODE}[79]\d{{8}}$")
_LOCAL_MOBILE = re.compile(r"^0[79]\d{8}$")
_BARE_MOBILE = re.compile(r"^[79]\d{8}$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_phone(raw: str) -> str:
    """
    Normalize a phone number to +251XXXXXXXXX.

    Accepted shapes (after stripping everything but digits and '+'):
        +251911223344, 251911223344, 0911223344, 911223344

    Raises InvalidPhone carrying the original input otherwise.
    """
    clean = _NON_DIAL.sub("", raw or "")

    if clean.startswith(f"+{COUNTRY_CODE}"):
        formatted = clean
    elif clean.startswith(COUNTRY_CODE):
        formatted = f"+{clean}"
    elif _LOCAL_MOBILE.match(clean):
        formatted = f"+{COUNTRY_CODE}{clean[1:]}"
    elif _BARE_MOBILE.match(clean):
        formatted = f"+{COUNTRY_CODE}{clean}"
    else:
        raise InvalidPhone(
            raw,
            f"Invalid Ethiopian phone format ({raw}). "
            "Expected format: +251xxxxxxxxx or 09xxxxxxxx",
        )

    # Prefix matches above say nothing about length or the mobile digit.
    if not _E164_MOBILE.match(formatted):
        raise InvalidPhone(raw, f"Invalid phone format after formatting ({formatted})")

    return formatted


def is_valid_email(address: str | None) -> bool:
    """True when address looks deliverable: name@domain.tld without spaces."""
    return bool(address) and _EMAIL.match(address.strip()) is not None
