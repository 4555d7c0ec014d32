"""
Domain errors raised by the account layer.

The HTTP layer maps these to responses (see dashauth/api/errors.py). Only
ValidationFailed carries user-visible detail; every other kind collapses to
a generic response so clients cannot tell accounts, passwords and lockouts apart.
"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class AccountError(Exception):
    """Base class for account-layer failures."""


class ValidationFailed(AccountError):
    """One or more input fields were rejected. All problems are reported together."""

    def __init__(self, errors: List[FieldError]):
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))
        self.errors = list(errors)


class DuplicateAccount(ValidationFailed):
    def __init__(self):
        super().__init__([FieldError("email", "Email already registered")])


class NotFound(AccountError):
    """Unknown email or user id."""


class Unauthorized(AccountError):
    """Bad credentials, bad/expired token, or failed challenge."""


class RateLimited(AccountError):
    """The source IP is inside an active lockout window."""


class InternalError(AccountError):
    """Cipher, hashing or persistence fault."""
