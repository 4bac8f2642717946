"""Domain types shared by the prober, the ledger backends and the coordinator."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class CreditStatus(str, Enum):
    """Lifecycle status of a stored credit."""
    AVAILABLE = "available"
    ASSIGNED = "assigned"  # reserved, delivery pending
    SENT = "sent"
    REDEEMED = "redeemed"


class ProbeStatus(str, Enum):
    """Outcome of a single probe."""
    AVAILABLE = "available"
    REDEEMED = "redeemed"
    UNKNOWN = "unknown"


class FailureKind(str, Enum):
    """Structured failure categories returned by the ledger and coordinator."""
    PROBE_AMBIGUOUS = "probe_ambiguous"
    NOT_FOUND = "not_found"
    NO_CREDITS_AVAILABLE = "no_credits_available"
    DELIVERY_FAILURE = "delivery_failure"
    INVALID_TRANSITION = "invalid_transition"
    MALFORMED_INPUT = "malformed_input"


DEFAULT_CREDIT_AMOUNT = 20


@dataclass(frozen=True)
class ReferralLink:
    """A referral URL with its extracted code."""
    url: str
    code: str
    checked_at: datetime | None = None

    def with_checked_at(self, checked_at: datetime) -> "ReferralLink":
        return replace(self, checked_at=checked_at)


@dataclass(frozen=True)
class ProbeResult:
    """Classification of one referral code at one point in time."""
    status: ProbeStatus
    checked_at: datetime = field(default_factory=utcnow)
    amount: int | None = None
    error: str | None = None
    failure: FailureKind | None = None

    @property
    def available(self) -> bool:
        return self.status is ProbeStatus.AVAILABLE

    @property
    def redeemed(self) -> bool:
        return self.status is ProbeStatus.REDEEMED

    @property
    def unknown(self) -> bool:
        return self.status is ProbeStatus.UNKNOWN

    @property
    def malformed(self) -> bool:
        """Unknown because the URL carried no referral code."""
        return self.failure is FailureKind.MALFORMED_INPUT

    @classmethod
    def make_available(cls, amount: int) -> "ProbeResult":
        return cls(status=ProbeStatus.AVAILABLE, amount=amount)

    @classmethod
    def make_redeemed(cls) -> "ProbeResult":
        return cls(status=ProbeStatus.REDEEMED)

    @classmethod
    def make_unknown(
        cls,
        error: str | None = None,
        failure: FailureKind = FailureKind.PROBE_AMBIGUOUS,
    ) -> "ProbeResult":
        return cls(status=ProbeStatus.UNKNOWN, error=error, failure=failure)


@dataclass
class CreditRecord:
    """A stored referral credit."""
    id: str
    url: str
    code: str
    amount: int
    status: CreditStatus
    checked_at: datetime
    assigned_to: str | None = None
    sent_at: datetime | None = None


@dataclass
class Attendee:
    """A validated roster row, ready to become a Person."""
    first_name: str
    last_name: str
    email: str
    linkedin: str | None = None
    twitter: str | None = None
    drink: str | None = None
    food: str | None = None
    working_on: str | None = None


@dataclass
class Person:
    """An attendee stored in the ledger."""
    id: str
    first_name: str
    last_name: str
    email: str
    linkedin: str | None = None
    twitter: str | None = None
    drink: str | None = None
    food: str | None = None
    working_on: str | None = None
    sent_credits: bool = False
    created_at: datetime = field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class AddCreditResult:
    added: bool
    existing: bool = False
    credit_id: str | None = None


@dataclass
class AddPersonResult:
    added: bool
    skipped: bool
    person_id: str | None = None


@dataclass
class LedgerResult:
    """Outcome of a status transition."""
    ok: bool
    failure: FailureKind | None = None
    message: str | None = None

    @classmethod
    def success(cls) -> "LedgerResult":
        return cls(ok=True)

    @classmethod
    def fail(cls, failure: FailureKind, message: str) -> "LedgerResult":
        return cls(ok=False, failure=failure, message=message)


@dataclass
class StatusCounts:
    total: int = 0
    available: int = 0
    assigned: int = 0
    sent: int = 0
    redeemed: int = 0


@dataclass
class CreditTally:
    """Amount sums and record counts grouped by status."""
    total: int = 0
    available: int = 0
    assigned: int = 0
    sent: int = 0
    redeemed: int = 0
    count: StatusCounts = field(default_factory=StatusCounts)

    @classmethod
    def from_credits(cls, credits: list[CreditRecord]) -> "CreditTally":
        tally = cls()
        tally.count.total = len(credits)
        for credit in credits:
            tally.total += credit.amount
            key = credit.status.value
            setattr(tally, key, getattr(tally, key) + credit.amount)
            setattr(tally.count, key, getattr(tally.count, key) + 1)
        return tally


@dataclass
class DeliveryResult:
    """Outcome of handing a notification to the outbound channel."""
    success: bool
    message: str | None = None


@dataclass
class AllocationResult:
    """Outcome of one send-credit attempt."""
    success: bool
    failure: FailureKind | None = None
    error: str | None = None
    credit: CreditRecord | None = None
    person: Person | None = None
