"""Database-backed ledger."""

from datetime import datetime, timezone

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

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
from cafe_credits.storage.db import Database
from cafe_credits.storage.ledger import Ledger, check_transition
from cafe_credits.storage.models import CreditModel, PersonModel

logger = get_logger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _to_person(row: PersonModel) -> Person:
    return Person(
        id=str(row.id),
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        linkedin=row.linkedin,
        twitter=row.twitter,
        drink=row.drink,
        food=row.food,
        working_on=row.working_on,
        sent_credits=bool(row.sent_credits),
        created_at=_aware(row.created_at),
    )


def _to_credit(row: CreditModel) -> CreditRecord:
    return CreditRecord(
        id=str(row.id),
        url=row.url,
        code=row.code,
        amount=row.amount,
        status=CreditStatus(row.status),
        checked_at=_aware(row.checked_at),
        assigned_to=str(row.assigned_to) if row.assigned_to is not None else None,
        sent_at=_aware(row.sent_at),
    )


class SqlLedger(Ledger):
    """Ledger stored in a networked (or SQLite) database."""

    def __init__(self, database: Database):
        self.db = database

    def _credit_row(self, session: Session, credit_id: str) -> CreditModel | None:
        row_id = _parse_id(credit_id)
        if row_id is None:
            return None
        return session.query(CreditModel).filter(CreditModel.id == row_id).first()

    def _person_row(self, session: Session, person_id: str) -> PersonModel | None:
        row_id = _parse_id(person_id)
        if row_id is None:
            return None
        return session.query(PersonModel).filter(PersonModel.id == row_id).first()

    # -- people --

    def add_person(self, attendee: Attendee) -> AddPersonResult:
        with self.db.session() as session:
            existing = (
                session.query(PersonModel)
                .filter(func.lower(PersonModel.email) == attendee.email.lower())
                .first()
            )
            if existing:
                logger.info("person_skipped_duplicate", email=attendee.email)
                return AddPersonResult(added=False, skipped=True, person_id=str(existing.id))

            person = PersonModel(
                first_name=attendee.first_name,
                last_name=attendee.last_name,
                email=attendee.email,
                linkedin=attendee.linkedin,
                twitter=attendee.twitter,
                drink=attendee.drink,
                food=attendee.food,
                working_on=attendee.working_on,
                sent_credits=False,
                created_at=utcnow(),
            )
            session.add(person)
            session.flush()
            person_id = str(person.id)

        logger.info("person_added", person_id=person_id, email=attendee.email)
        return AddPersonResult(added=True, skipped=False, person_id=person_id)

    def get_person(self, person_id: str) -> Person | None:
        with self.db.session() as session:
            row = self._person_row(session, person_id)
            return _to_person(row) if row else None

    def list_people(self) -> list[Person]:
        with self.db.session() as session:
            rows = session.query(PersonModel).order_by(PersonModel.id).all()
            return [_to_person(row) for row in rows]

    # -- credits --

    def add_if_not_exists(self, url: str, code: str, amount: int) -> AddCreditResult:
        with self.db.session() as session:
            existing = (
                session.query(CreditModel)
                .filter(or_(CreditModel.code == code, CreditModel.url == url))
                .first()
            )
            if existing:
                return AddCreditResult(added=False, existing=True, credit_id=str(existing.id))

            credit = CreditModel(
                url=url,
                code=code,
                amount=amount,
                status=CreditStatus.AVAILABLE.value,
                checked_at=utcnow(),
            )
            session.add(credit)
            session.flush()
            credit_id = str(credit.id)

        logger.info("credit_added", credit_id=credit_id, code=code, amount=amount)
        return AddCreditResult(added=True, existing=False, credit_id=credit_id)

    def get_credit(self, credit_id: str) -> CreditRecord | None:
        with self.db.session() as session:
            row = self._credit_row(session, credit_id)
            return _to_credit(row) if row else None

    def list_credits(self, status: CreditStatus | None = None) -> list[CreditRecord]:
        with self.db.session() as session:
            query = session.query(CreditModel)
            if status is not None:
                query = query.filter(CreditModel.status == status.value)
            return [_to_credit(row) for row in query.order_by(CreditModel.id).all()]

    def next_available(self) -> CreditRecord | None:
        with self.db.session() as session:
            row = (
                session.query(CreditModel)
                .filter(CreditModel.status == CreditStatus.AVAILABLE.value)
                .order_by(CreditModel.id)
                .first()
            )
            return _to_credit(row) if row else None

    def assign(self, credit_id: str, person_id: str) -> LedgerResult:
        with self.db.session() as session:
            row = self._credit_row(session, credit_id)
            failure = check_transition(row and _to_credit(row), credit_id, CreditStatus.AVAILABLE)
            if failure:
                return failure
            if self._person_row(session, person_id) is None:
                return LedgerResult.fail(FailureKind.NOT_FOUND, f"Person {person_id} not found")

            row.status = CreditStatus.ASSIGNED.value
            row.assigned_to = int(person_id)

        logger.info("credit_assigned", credit_id=credit_id, person_id=person_id)
        return LedgerResult.success()

    def mark_sent(self, credit_id: str, person_id: str) -> LedgerResult:
        with self.db.session() as session:
            row = self._credit_row(session, credit_id)
            failure = check_transition(row and _to_credit(row), credit_id, CreditStatus.ASSIGNED)
            if failure:
                return failure
            person = self._person_row(session, person_id)
            if person is None:
                return LedgerResult.fail(FailureKind.NOT_FOUND, f"Person {person_id} not found")
            if row.assigned_to != person.id:
                return LedgerResult.fail(
                    FailureKind.INVALID_TRANSITION,
                    f"Credit {credit_id} is reserved for another person",
                )

            row.status = CreditStatus.SENT.value
            row.sent_at = utcnow()
            person.sent_credits = True

        logger.info("credit_sent", credit_id=credit_id, person_id=person_id)
        return LedgerResult.success()

    def revert_to_available(self, credit_id: str) -> LedgerResult:
        with self.db.session() as session:
            row = self._credit_row(session, credit_id)
            failure = check_transition(row and _to_credit(row), credit_id, CreditStatus.ASSIGNED)
            if failure:
                return failure

            row.status = CreditStatus.AVAILABLE.value
            row.assigned_to = None

        logger.warning("credit_reverted", credit_id=credit_id)
        return LedgerResult.success()

    def mark_redeemed(self, credit_id: str) -> LedgerResult:
        with self.db.session() as session:
            row = self._credit_row(session, credit_id)
            failure = check_transition(row and _to_credit(row), credit_id, CreditStatus.AVAILABLE)
            if failure:
                return failure

            row.status = CreditStatus.REDEEMED.value
            row.checked_at = utcnow()

        logger.info("credit_redeemed", credit_id=credit_id)
        return LedgerResult.success()
