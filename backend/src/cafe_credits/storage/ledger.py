"""Ledger interface shared by the database and flat-file backends."""

from abc import ABC, abstractmethod

from cafe_credits.domain import (
    AddCreditResult,
    AddPersonResult,
    Attendee,
    CreditRecord,
    CreditStatus,
    CreditTally,
    FailureKind,
    LedgerResult,
    Person,
)


class Ledger(ABC):
    """Authoritative store of credits and the people they go to.

    Status transitions:

        available -> assigned -> sent
        assigned  -> available        (revert after a failed delivery)
        available -> redeemed         (re-check found it already used)

    Any other transition is refused with ``INVALID_TRANSITION``. Both
    backends must produce the same observable state for the same sequence of
    calls.
    """

    # -- people --

    @abstractmethod
    def add_person(self, attendee: Attendee) -> AddPersonResult:
        """Add a person unless the email (case-insensitive) already exists."""

    @abstractmethod
    def get_person(self, person_id: str) -> Person | None:
        """Get person by ID."""

    @abstractmethod
    def list_people(self) -> list[Person]:
        """List people in insertion order."""

    # -- credits --

    @abstractmethod
    def add_if_not_exists(self, url: str, code: str, amount: int) -> AddCreditResult:
        """Store a new available credit unless its code or URL is known."""

    @abstractmethod
    def get_credit(self, credit_id: str) -> CreditRecord | None:
        """Get credit by ID."""

    @abstractmethod
    def list_credits(self, status: CreditStatus | None = None) -> list[CreditRecord]:
        """List credits in insertion order, optionally filtered by status."""

    @abstractmethod
    def next_available(self) -> CreditRecord | None:
        """First available credit in insertion order."""

    @abstractmethod
    def assign(self, credit_id: str, person_id: str) -> LedgerResult:
        """Reserve a credit for a person (available -> assigned)."""

    @abstractmethod
    def mark_sent(self, credit_id: str, person_id: str) -> LedgerResult:
        """Confirm delivery (assigned -> sent) and flag the person."""

    @abstractmethod
    def revert_to_available(self, credit_id: str) -> LedgerResult:
        """Release a reservation (assigned -> available)."""

    @abstractmethod
    def mark_redeemed(self, credit_id: str) -> LedgerResult:
        """Retire a credit found to be used already (available -> redeemed)."""

    def tally(self) -> CreditTally:
        """Amount sums and counts grouped by status."""
        return CreditTally.from_credits(self.list_credits())


def check_transition(
    credit: CreditRecord | None,
    credit_id: str,
    expected: CreditStatus,
) -> LedgerResult | None:
    """Return a failure if ``credit`` cannot leave ``expected``, else None."""
    if credit is None:
        return LedgerResult.fail(FailureKind.NOT_FOUND, f"Credit {credit_id} not found")
    if credit.status is not expected:
        return LedgerResult.fail(
            FailureKind.INVALID_TRANSITION,
            f"Credit {credit_id} is {credit.status.value}, expected {expected.value}",
        )
    return None
