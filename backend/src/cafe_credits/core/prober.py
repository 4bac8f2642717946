"""Referral status prober.

A referral page calls the service's status-check API while it loads. Instead
of calling that API directly, the prober loads the page in a real browser and
reads the response the page itself receives, racing it against a fixed
timeout. Every failure degrades to an ``unknown`` result; nothing here raises.
"""

import asyncio
import math
from collections.abc import Callable
from typing import Any

from cafe_credits.core.browser import BrowserSession
from cafe_credits.domain import DEFAULT_CREDIT_AMOUNT, FailureKind, ProbeResult
from cafe_credits.extractors.referral import extract_code
from cafe_credits.logging_config import get_logger

logger = get_logger(__name__)

STATUS_CHECK_PATH = "/api/dashboard/check-referral-code"
PROBE_TIMEOUT_SECONDS = 15.0

NO_CODE_ERROR = "Could not extract referral code from URL"


class NavigationFailed(Exception):
    """Navigation ended in an error before the status check was observed."""


def classify_payload(payload: Any) -> ProbeResult:
    """Classify the JSON body of a 200 status-check response.

    ``{"isValid": true, "userIsEligible": true, "metadata": {"amount": n}}``
    is available (amount defaults to 20), any other body carrying ``isValid``
    is redeemed, and so is an empty object. Anything else is unknown.
    """
    if not isinstance(payload, dict):
        return ProbeResult.make_unknown("Unrecognized status check response")

    if "isValid" in payload:
        if payload.get("isValid") and payload.get("userIsEligible"):
            return ProbeResult.make_available(_amount_from(payload.get("metadata")))
        return ProbeResult.make_redeemed()

    if not payload:
        return ProbeResult.make_redeemed()

    return ProbeResult.make_unknown("Unrecognized status check response")


def _amount_from(metadata: Any) -> int:
    """Whole-dollar amount from the metadata, else the default.

    Fractional, non-finite and non-numeric values fall back to the default.
    """
    if not isinstance(metadata, dict):
        return DEFAULT_CREDIT_AMOUNT
    amount = metadata.get("amount")
    if isinstance(amount, bool):
        return DEFAULT_CREDIT_AMOUNT
    if isinstance(amount, int):
        return amount
    if isinstance(amount, float) and math.isfinite(amount) and amount.is_integer():
        return int(amount)
    return DEFAULT_CREDIT_AMOUNT


async def classify_response(response: Any) -> ProbeResult:
    """Classify an intercepted status-check response."""
    if response.status != 200:
        return ProbeResult.make_unknown(f"Status check returned HTTP {response.status}")

    try:
        payload = await response.json()
    except Exception as e:
        return ProbeResult.make_unknown(f"Unreadable status check body: {e}")

    return classify_payload(payload)


class ReferralProber:
    """Determines whether referral codes can still be redeemed."""

    def __init__(
        self,
        session: BrowserSession | None = None,
        session_factory: Callable[[], BrowserSession] = BrowserSession,
        timeout: float = PROBE_TIMEOUT_SECONDS,
    ):
        """Initialize prober.

        Args:
            session: Open session to reuse; when None or closed, each probe
                opens a one-off session and closes it afterwards
            session_factory: Creates one-off sessions
            timeout: Seconds to wait for the status check
        """
        self.session = session
        self.session_factory = session_factory
        self.timeout = timeout

    async def probe(self, url: str) -> ProbeResult:
        """Probe one referral URL."""
        code = extract_code(url)
        if code is None:
            logger.warning("probe_skipped_no_code", url=url)
            return ProbeResult.make_unknown(NO_CODE_ERROR, FailureKind.MALFORMED_INPUT)

        try:
            if self.session is not None and self.session.is_open:
                result = await self._race(self.session.page, url)
            else:
                async with self.session_factory() as session:
                    result = await self._race(session.page, url)
        except Exception as e:
            logger.warning("probe_failed", code=code, error=str(e))
            return ProbeResult.make_unknown(str(e))

        logger.info(
            "probe_completed",
            code=code,
            status=result.status.value,
            amount=result.amount,
            error=result.error,
        )
        return result

    async def _race(self, page: Any, url: str) -> ProbeResult:
        """Race the status-check response against the timeout.

        Whichever settles first fills ``slot``; the listener is detached and
        the navigation task cancelled on every exit path.
        """
        loop = asyncio.get_running_loop()
        slot: asyncio.Future = loop.create_future()

        def on_response(response: Any) -> None:
            if not slot.done() and STATUS_CHECK_PATH in response.url:
                slot.set_result(response)

        async def navigate() -> None:
            try:
                await page.goto(url, wait_until="networkidle", timeout=self.timeout * 1000)
            except Exception as e:
                if not slot.done():
                    slot.set_exception(NavigationFailed(str(e)))

        page.on("response", on_response)
        navigation = asyncio.create_task(navigate())
        try:
            response = await asyncio.wait_for(slot, timeout=self.timeout)
        except asyncio.TimeoutError:
            return ProbeResult.make_unknown("Timed out waiting for status check")
        except NavigationFailed as e:
            return ProbeResult.make_unknown(f"Navigation failed: {e}")
        finally:
            page.remove_listener("response", on_response)
            if not navigation.done():
                navigation.cancel()
            await asyncio.gather(navigation, return_exceptions=True)

        return await classify_response(response)
