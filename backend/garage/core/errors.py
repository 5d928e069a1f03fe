"""Exception types shared by the store, billing and identity layers."""
from __future__ import annotations


class GarageError(Exception):
    """Base class for every error raised by the garage back-office."""


class FormValidationError(GarageError):
    """One or more input fields are missing or malformed.

    Raised before any state mutation or identity-provider call.
    ``errors`` maps a field path (``"email"``, ``"items[0].quantity"``)
    to a human-readable message.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        summary = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(summary or "invalid input")


class DuplicateRecordError(GarageError):
    """A record with the same id (or invoice number) already exists."""

    def __init__(self, collection: str, key: str, value: str):
        self.collection = collection
        self.key = key
        self.value = value
        super().__init__(f"{collection}: {key} '{value}' already exists")


class UnknownCategoryKind(GarageError, ValueError):
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"unknown category kind '{kind}' (expected 'stocks' or 'services')")


# ── Identity failures ─────────────────────────────────────────────────────────


class AuthFailure(GarageError):
    """Sign-in rejected by the identity provider.

    A bare ``AuthFailure`` is the catch-all kind and carries whatever
    message the provider supplied.
    """

    kind = "unknown"
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(AuthFailure):
    kind = "invalid_credentials"
    default_message = "Incorrect email or password"


class UserNotFound(AuthFailure):
    kind = "user_not_found"
    default_message = "No account exists for this email"


class UserDisabled(AuthFailure):
    kind = "user_disabled"
    default_message = "This account has been disabled"


class InvalidEmail(AuthFailure):
    kind = "invalid_email"
    default_message = "Email address is invalid"
