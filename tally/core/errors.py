"""
Tally exception hierarchy.

Every error in the system inherits from TallyError.
Each subsystem has its own error class for targeted catching.

Usage:
    try:
        phone = normalize_phone(student.parent_phone)
    except InvalidPhone as e:
        # Bad recipient, never sent, never queued
    except TallyError as e:
        # Handle any Tally error
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Why a delivery attempt did not succeed."""

    INVALID_RECIPIENT = "invalid_recipient"
    OFFLINE = "offline"
    SETUP_REQUIRED = "setup_required"
    PROVIDER_ERROR = "provider_error"
    MALFORMED_RESPONSE = "malformed_response"
    GENERIC_FAILURE = "generic_failure"


class TallyError(Exception):
    """Base exception for all Tally errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ━━━ Infrastructure ━━━


class ConfigError(TallyError):
    """Configuration is invalid, missing, or malformed."""

    pass


class StorageError(TallyError):
    """The storage backend could not open, read or write."""

    pass


# ━━━ Recipients ━━━


class RecipientError(TallyError):
    """Recipient contact info cannot be used. Terminal, never queued."""

    kind = ErrorKind.INVALID_RECIPIENT


class InvalidRecipient(RecipientError):
    """Missing or malformed email address / phone number."""

    def __init__(self, message: str, value: str = "", details: dict | None = None):
        self.value = value
        super().__init__(message, details)


class InvalidPhone(InvalidRecipient):
    """Phone number does not fit the supported numbering plan."""

    def __init__(self, raw: str, reason: str = "", details: dict | None = None):
        self.raw = raw
        message = reason or f"Invalid Ethiopian phone format ({raw})"
        super().__init__(message, value=raw, details=details)


# ━━━ Delivery ━━━


class DeliveryError(TallyError):
    """A delivery endpoint call did not produce a successful send."""

    kind = ErrorKind.GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class SetupRequired(DeliveryError):
    """Provider credentials are not configured on the delivery service."""

    kind = ErrorKind.SETUP_REQUIRED


class ProviderError(DeliveryError):
    """The provider rejected the request and said why."""

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        solution: str = "",
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.solution = solution
        super().__init__(message, status_code, details)


class MalformedResponse(DeliveryError):
    """Transport succeeded but the body is not JSON (e.g. an HTML error page)."""

    kind = ErrorKind.MALFORMED_RESPONSE
