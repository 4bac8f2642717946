"""Allocation of credits to people.

Each send reserves a credit, tries to deliver it and then either confirms it
or releases the reservation:

    reserve (assigned) -> deliver -> sent
                                  -> available (reverted)

A call that runs to completion never leaves a credit assigned.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from cafe_credits.domain import AllocationResult, CreditRecord, DeliveryResult, FailureKind, Person
from cafe_credits.email.service import EmailService
from cafe_credits.email.templates import render_credit_email
from cafe_credits.logging_config import get_logger
from cafe_credits.storage.ledger import Ledger

logger = get_logger(__name__)


@dataclass
class BulkSendSummary:
    """Counts for a send-to-everyone run."""
    sent: int = 0
    failed: int = 0
    remaining: int = 0
    errors: dict[str, str] = field(default_factory=dict)


class AllocationCoordinator:
    """Hands out credits to people, one reservation at a time."""

    def __init__(self, ledger: Ledger, email_service: EmailService | None = None):
        """Initialize coordinator.

        Args:
            ledger: Credit ledger
            email_service: Outbound email; None means offline mode, where
                delivery is recording the assignment as final
        """
        self.ledger = ledger
        self.email_service = email_service

    async def send_credit_to(self, person_id: str) -> AllocationResult:
        """Allocate the next available credit to a person and deliver it."""
        person = self.ledger.get_person(person_id)
        if person is None:
            return AllocationResult(
                success=False,
                failure=FailureKind.NOT_FOUND,
                error="Person not found",
            )

        credit = self.ledger.next_available()
        if credit is None:
            return AllocationResult(
                success=False,
                failure=FailureKind.NO_CREDITS_AVAILABLE,
                error="No available credits. Please upload more credits first.",
                person=person,
            )

        reserved = self.ledger.assign(credit.id, person.id)
        if not reserved.ok:
            return AllocationResult(
                success=False,
                failure=reserved.failure,
                error=reserved.message,
                credit=credit,
                person=person,
            )

        delivery = await self._deliver(person, credit)
        if not delivery.success:
            self.ledger.revert_to_available(credit.id)
            logger.warning(
                "credit_delivery_failed",
                credit_id=credit.id,
                person_id=person.id,
                error=delivery.message,
            )
            return AllocationResult(
                success=False,
                failure=FailureKind.DELIVERY_FAILURE,
                error=delivery.message,
                credit=credit,
                person=person,
            )

        confirmed = self.ledger.mark_sent(credit.id, person.id)
        if not confirmed.ok:
            return AllocationResult(
                success=False,
                failure=confirmed.failure,
                error=confirmed.message,
                credit=credit,
                person=person,
            )

        logger.info(
            "credit_allocated",
            credit_id=credit.id,
            person_id=person.id,
            amount=credit.amount,
        )
        return AllocationResult(
            success=True,
            credit=self.ledger.get_credit(credit.id),
            person=self.ledger.get_person(person.id),
        )

    async def _deliver(self, person: Person, credit: CreditRecord) -> DeliveryResult:
        if self.email_service is None:
            return DeliveryResult(success=True)

        try:
            email = render_credit_email(
                first_name=person.first_name,
                credit_url=credit.url,
                code=credit.code,
                amount=credit.amount,
            )
            return await self.email_service.send(
                to_email=person.email,
                subject=email.subject,
                html_content=email.html,
                text_content=email.text,
            )
        except Exception as e:
            logger.exception("credit_delivery_error", credit_id=credit.id, person_id=person.id)
            return DeliveryResult(success=False, message=str(e) or type(e).__name__)

    async def send_to_pending(
        self,
        on_progress: Callable[[int, int, Person, AllocationResult], None] | None = None,
    ) -> BulkSendSummary:
        """Send a credit to every person who has not received one yet.

        Stops early when the ledger runs out of credits; the people left over
        are counted as remaining.
        """
        pending = [p for p in self.ledger.list_people() if not p.sent_credits]
        summary = BulkSendSummary()
        total = len(pending)

        for index, person in enumerate(pending, start=1):
            result = await self.send_credit_to(person.id)
            if on_progress:
                on_progress(index, total, person, result)

            if result.success:
                summary.sent += 1
            elif result.failure is FailureKind.NO_CREDITS_AVAILABLE:
                summary.remaining = total - index + 1
                break
            else:
                summary.failed += 1
                summary.errors[person.email] = result.error or "unknown error"

        logger.info(
            "bulk_send_completed",
            sent=summary.sent,
            failed=summary.failed,
            remaining=summary.remaining,
        )
        return summary
