"""Flat-file ledger for offline use.

People and credits live in two CSV files in the data directory. Every
operation reads the file, changes it in memory and writes it back through a
temporary file renamed over the original, so a crash never leaves a
half-written ledger. The read-modify-write cycle is not locked: one process
writes at a time.
"""

import csv
import os
import secrets
import tempfile
import time
from datetime import datetime
from pathlib import Path

from cafe_credits.domain import (
    AddCreditResult,
    AddPersonResult,
    Attendee,
    CreditRecord,
    CreditStatus,
    FailureKind,
    LedgerResult,
    Person,
    utcnow,
)
from cafe_credits.logging_config import get_logger
from cafe_credits.storage.ledger import Ledger, check_transition

logger = get_logger(__name__)

PEOPLE_FILE = "cafe_people.csv"
CREDITS_FILE = "cafe_credits.csv"

PEOPLE_FIELDS = [
    "id",
    "first_name",
    "last_name",
    "email",
    "linkedin",
    "twitter",
    "drink",
    "food",
    "working_on",
    "sent_credits",
    "created_at",
]

CREDIT_FIELDS = [
    "id",
    "url",
    "code",
    "amount",
    "status",
    "assigned_to",
    "checked_at",
    "sent_at",
]


def generate_id() -> str:
    """Unique local identifier, e.g. ``local_1718000000000_k3j9x2mq1``."""
    return f"local_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def _format_time(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _parse_time(value: str) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _parse_amount(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _optional(value: str | None) -> str | None:
    return value or None


def _write_rows(path: Path, fieldnames: list[str], rows: list[dict[str, str]]) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(rows)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _read_rows(path: Path) -> list[dict[str, str]]:
    if not path.exists():
        return []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        return [
            {(key or "").strip(): (value or "") for key, value in row.items()}
            for row in reader
        ]


class FlatFileLedger(Ledger):
    """Ledger stored in local CSV files."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.people_path = self.data_dir / PEOPLE_FILE
        self.credits_path = self.data_dir / CREDITS_FILE

    # -- serialization --

    def _load_people(self) -> list[Person]:
        people = []
        for row in _read_rows(self.people_path):
            if not row.get("email"):
                continue
            people.append(
                Person(
                    id=row["id"],
                    first_name=row.get("first_name", ""),
                    last_name=row.get("last_name", ""),
                    email=row["email"],
                    linkedin=_optional(row.get("linkedin")),
                    twitter=_optional(row.get("twitter")),
                    drink=_optional(row.get("drink")),
                    food=_optional(row.get("food")),
                    working_on=_optional(row.get("working_on")),
                    sent_credits=row.get("sent_credits") == "true",
                    created_at=_parse_time(row.get("created_at", "")) or utcnow(),
                )
            )
        return people

    def _save_people(self, people: list[Person]) -> None:
        rows = [
            {
                "id": p.id,
                "first_name": p.first_name,
                "last_name": p.last_name,
                "email": p.email,
                "linkedin": p.linkedin or "",
                "twitter": p.twitter or "",
                "drink": p.drink or "",
                "food": p.food or "",
                "working_on": p.working_on or "",
                "sent_credits": _format_bool(p.sent_credits),
                "created_at": _format_time(p.created_at),
            }
            for p in people
        ]
        _write_rows(self.people_path, PEOPLE_FIELDS, rows)

    def _load_credits(self) -> list[CreditRecord]:
        credits = []
        for row in _read_rows(self.credits_path):
            if not row.get("url"):
                continue
            credits.append(
                CreditRecord(
                    id=row["id"],
                    url=row["url"],
                    code=row.get("code", ""),
                    amount=_parse_amount(row.get("amount", "")),
                    status=CreditStatus(row.get("status") or CreditStatus.AVAILABLE.value),
                    checked_at=_parse_time(row.get("checked_at", "")) or utcnow(),
                    assigned_to=_optional(row.get("assigned_to")),
                    sent_at=_parse_time(row.get("sent_at", "")),
                )
            )
        return credits

    def _save_credits(self, credits: list[CreditRecord]) -> None:
        rows = [
            {
                "id": c.id,
                "url": c.url,
                "code": c.code,
                "amount": str(c.amount),
                "status": c.status.value,
                "assigned_to": c.assigned_to or "",
                "checked_at": _format_time(c.checked_at),
                "sent_at": _format_time(c.sent_at),
            }
            for c in credits
        ]
        _write_rows(self.credits_path, CREDIT_FIELDS, rows)

    # -- people --

    def add_person(self, attendee: Attendee) -> AddPersonResult:
        people = self._load_people()
        email = attendee.email.lower()
        for person in people:
            if person.email.lower() == email:
                logger.info("person_skipped_duplicate", email=attendee.email)
                return AddPersonResult(added=False, skipped=True, person_id=person.id)

        person = Person(
            id=generate_id(),
            first_name=attendee.first_name,
            last_name=attendee.last_name,
            email=attendee.email,
            linkedin=attendee.linkedin,
            twitter=attendee.twitter,
            drink=attendee.drink,
            food=attendee.food,
            working_on=attendee.working_on,
        )
        people.append(person)
        self._save_people(people)

        logger.info("person_added", person_id=person.id, email=attendee.email)
        return AddPersonResult(added=True, skipped=False, person_id=person.id)

    def get_person(self, person_id: str) -> Person | None:
        return next((p for p in self._load_people() if p.id == person_id), None)

    def list_people(self) -> list[Person]:
        return self._load_people()

    # -- credits --

    def add_if_not_exists(self, url: str, code: str, amount: int) -> AddCreditResult:
        credits = self._load_credits()
        for credit in credits:
            if credit.code == code or credit.url == url:
                return AddCreditResult(added=False, existing=True, credit_id=credit.id)

        credit = CreditRecord(
            id=generate_id(),
            url=url,
            code=code,
            amount=amount,
            status=CreditStatus.AVAILABLE,
            checked_at=utcnow(),
        )
        credits.append(credit)
        self._save_credits(credits)

        logger.info("credit_added", credit_id=credit.id, code=code, amount=amount)
        return AddCreditResult(added=True, existing=False, credit_id=credit.id)

    def get_credit(self, credit_id: str) -> CreditRecord | None:
        return next((c for c in self._load_credits() if c.id == credit_id), None)

    def list_credits(self, status: CreditStatus | None = None) -> list[CreditRecord]:
        credits = self._load_credits()
        if status is None:
            return credits
        return [c for c in credits if c.status is status]

    def next_available(self) -> CreditRecord | None:
        return next(
            (c for c in self._load_credits() if c.status is CreditStatus.AVAILABLE),
            None,
        )

    def assign(self, credit_id: str, person_id: str) -> LedgerResult:
        credits = self._load_credits()
        credit = next((c for c in credits if c.id == credit_id), None)
        failure = check_transition(credit, credit_id, CreditStatus.AVAILABLE)
        if failure:
            return failure
        if self.get_person(person_id) is None:
            return LedgerResult.fail(FailureKind.NOT_FOUND, f"Person {person_id} not found")

        credit.status = CreditStatus.ASSIGNED
        credit.assigned_to = person_id
        self._save_credits(credits)

        logger.info("credit_assigned", credit_id=credit_id, person_id=person_id)
        return LedgerResult.success()

    def mark_sent(self, credit_id: str, person_id: str) -> LedgerResult:
        credits = self._load_credits()
        credit = next((c for c in credits if c.id == credit_id), None)
        failure = check_transition(credit, credit_id, CreditStatus.ASSIGNED)
        if failure:
            return failure

        people = self._load_people()
        person = next((p for p in people if p.id == person_id), None)
        if person is None:
            return LedgerResult.fail(FailureKind.NOT_FOUND, f"Person {person_id} not found")
        if credit.assigned_to != person_id:
            return LedgerResult.fail(
                FailureKind.INVALID_TRANSITION,
                f"Credit {credit_id} is reserved for another person",
            )

        credit.status = CreditStatus.SENT
        credit.sent_at = utcnow()
        person.sent_credits = True
        # Credit before person
        self._save_credits(credits)
        self._save_people(people)

        logger.info("credit_sent", credit_id=credit_id, person_id=person_id)
        return LedgerResult.success()

    def revert_to_available(self, credit_id: str) -> LedgerResult:
        credits = self._load_credits()
        credit = next((c for c in credits if c.id == credit_id), None)
        failure = check_transition(credit, credit_id, CreditStatus.ASSIGNED)
        if failure:
            return failure

        credit.status = CreditStatus.AVAILABLE
        credit.assigned_to = None
        self._save_credits(credits)

        logger.warning("credit_reverted", credit_id=credit_id)
        return LedgerResult.success()

    def mark_redeemed(self, credit_id: str) -> LedgerResult:
        credits = self._load_credits()
        credit = next((c for c in credits if c.id == credit_id), None)
        failure = check_transition(credit, credit_id, CreditStatus.AVAILABLE)
        if failure:
            return failure

        credit.status = CreditStatus.REDEEMED
        credit.checked_at = utcnow()
        self._save_credits(credits)

        logger.info("credit_redeemed", credit_id=credit_id)
        return LedgerResult.success()
