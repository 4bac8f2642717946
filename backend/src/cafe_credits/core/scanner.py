"""Sequential batch scanning of referral URLs."""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from cafe_credits.core.browser import BrowserSession
from cafe_credits.core.prober import PROBE_TIMEOUT_SECONDS, ReferralProber
from cafe_credits.domain import CreditStatus, ProbeResult
from cafe_credits.extractors.referral import extract_code
from cafe_credits.logging_config import get_logger
from cafe_credits.storage.ledger import Ledger

logger = get_logger(__name__)

# Pause between probes
SCAN_DELAY_SECONDS = 1.0

ProgressCallback = Callable[[int, int, ProbeResult], None]


@dataclass
class ScanSummary:
    """Counts for one scan-and-record run."""
    total: int = 0
    available: int = 0
    redeemed: int = 0
    unknown: int = 0
    malformed: int = 0  # no referral code, never probed
    added: int = 0
    already_stored: int = 0
    added_amount: int = 0


@dataclass
class RecheckSummary:
    """Counts for one re-check of stored credits."""
    checked: int = 0
    still_available: int = 0
    redeemed: int = 0
    unknown: int = 0


class BatchScanner:
    """Probes referral URLs one at a time through a single browser."""

    def __init__(
        self,
        headless: bool | None = None,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
        delay: float = SCAN_DELAY_SECONDS,
        timeout: float = PROBE_TIMEOUT_SECONDS,
    ):
        self.headless = headless
        self.session_factory = session_factory
        self.delay = delay
        self.timeout = timeout

    async def scan(
        self,
        urls: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, ProbeResult]:
        """Probe each URL in order.

        Args:
            urls: Deduplicated referral URLs
            on_progress: Called with (index, total, result) after each probe,
                index starting at 1

        Returns:
            Results keyed by URL, in scan order
        """
        results: dict[str, ProbeResult] = {}
        total = len(urls)
        logger.info("scan_started", total=total)

        async with self.session_factory(headless=self.headless) as session:
            prober = ReferralProber(session=session, timeout=self.timeout)
            for index, url in enumerate(urls, start=1):
                result = await prober.probe(url)
                results[url] = result

                if on_progress:
                    on_progress(index, total, result)

                if index < total:
                    await asyncio.sleep(self.delay)

        logger.info(
            "scan_completed",
            total=total,
            available=sum(1 for r in results.values() if r.available),
            redeemed=sum(1 for r in results.values() if r.redeemed),
            unknown=sum(1 for r in results.values() if r.unknown and not r.malformed),
            malformed=sum(1 for r in results.values() if r.malformed),
        )
        return results

    async def scan_and_record(
        self,
        urls: Sequence[str],
        ledger: Ledger,
        on_progress: ProgressCallback | None = None,
    ) -> tuple[dict[str, ProbeResult], ScanSummary]:
        """Scan and store every available credit that is not already known."""
        results = await self.scan(urls, on_progress)
        summary = ScanSummary(total=len(results))

        for url, result in results.items():
            if result.redeemed:
                summary.redeemed += 1
                continue
            if result.malformed:
                summary.malformed += 1
                continue
            if result.unknown:
                summary.unknown += 1
                continue

            summary.available += 1
            code = extract_code(url)
            outcome = ledger.add_if_not_exists(url, code, result.amount)
            if outcome.added:
                summary.added += 1
                summary.added_amount += result.amount
            else:
                summary.already_stored += 1

        logger.info(
            "scan_recorded",
            malformed=summary.malformed,
            added=summary.added,
            already_stored=summary.already_stored,
            added_amount=summary.added_amount,
        )
        return results, summary

    async def recheck(
        self,
        ledger: Ledger,
        on_progress: ProgressCallback | None = None,
    ) -> RecheckSummary:
        """Re-probe every available credit and retire the redeemed ones.

        Unknown results leave the credit untouched.
        """
        credits = ledger.list_credits(CreditStatus.AVAILABLE)
        if not credits:
            return RecheckSummary()

        by_url = {credit.url: credit for credit in credits}
        results = await self.scan(list(by_url), on_progress)

        summary = RecheckSummary(checked=len(results))
        for url, result in results.items():
            if result.available:
                summary.still_available += 1
            elif result.redeemed:
                outcome = ledger.mark_redeemed(by_url[url].id)
                if outcome.ok:
                    summary.redeemed += 1
                else:
                    logger.warning("recheck_mark_failed", url=url, error=outcome.message)
            else:
                summary.unknown += 1

        logger.info(
            "recheck_completed",
            checked=summary.checked,
            redeemed=summary.redeemed,
            unknown=summary.unknown,
        )
        return summary
