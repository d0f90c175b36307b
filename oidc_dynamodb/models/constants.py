"""Well-known values shared by the stores."""

from __future__ import annotations

from enum import IntEnum


class Statuses:
    """Token and authorization statuses written by the OAuth framework."""

    INACTIVE = "inactive"
    REDEEMED = "redeemed"
    REJECTED = "rejected"
    REVOKED = "revoked"
    VALID = "valid"


class RedirectType(IntEnum):
    """Range key of application redirect rows."""

    REDIRECT_URI = 0
    POST_LOGOUT_REDIRECT_URI = 1


__all__ = ["RedirectType", "Statuses"]
