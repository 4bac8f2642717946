"""Exceptions for conditions the caller cannot recover from.

Expected failures (missing ids, an empty ledger, a rejected email) are
returned as result objects instead; see ``cafe_credits.domain``.
"""


class StoreUnavailableError(Exception):
    """Raised when the persistent store cannot be reached at startup."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Store unavailable ({target}): {reason}")


class RosterFormatError(ValueError):
    """Raised when a roster file lacks a required column or has no rows."""
