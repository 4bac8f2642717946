"""
Tests for the referral status prober.

Tests cover:
1. Payload classification
2. URLs without a code never navigate
3. Observer vs timeout race and listener cleanup
4. Navigation failures and disposable sessions
"""

import asyncio

import pytest

from cafe_credits.core.prober import NO_CODE_ERROR, ReferralProber, classify_payload
from cafe_credits.domain import FailureKind, ProbeStatus
from conftest import (
    FakePage,
    FakeResponse,
    FakeSession,
    available_payload,
    referral_url,
    status_response,
)

URL = referral_url("ABC123")


def probe_with(page: FakePage, url: str = URL, timeout: float = 1.0):
    session = FakeSession(page)
    session.opened = True
    prober = ReferralProber(session=session, timeout=timeout)
    return asyncio.run(prober.probe(url))


class TestClassifyPayload:
    """Tests for classification of status-check bodies."""

    @pytest.mark.parametrize("amount", [5, 20, 50, 100])
    def test_valid_and_eligible_uses_metadata_amount(self, amount):
        result = classify_payload(available_payload(amount))

        assert result.status is ProbeStatus.AVAILABLE
        assert result.amount == amount

    def test_amount_defaults_to_twenty(self):
        assert classify_payload(available_payload()).amount == 20
        assert classify_payload({"isValid": True, "userIsEligible": True}).amount == 20

    def test_zero_amount_is_kept(self):
        assert classify_payload(available_payload(0)).amount == 0

    def test_whole_float_amount_is_accepted(self):
        assert classify_payload(available_payload(50.0)).amount == 50

    @pytest.mark.parametrize("amount", [12.5, float("nan"), float("inf"), "50", True])
    def test_unusable_amount_falls_back_to_default(self, amount):
        result = classify_payload(available_payload(amount))

        assert result.available
        assert result.amount == 20

    @pytest.mark.parametrize(
        "payload",
        [
            {"isValid": False, "userIsEligible": True},
            {"isValid": True, "userIsEligible": False},
            {"isValid": False},
            {"isValid": None, "metadata": {"amount": 20}},
        ],
    )
    def test_is_valid_without_eligibility_is_redeemed(self, payload):
        assert classify_payload(payload).status is ProbeStatus.REDEEMED

    def test_empty_object_is_redeemed(self):
        result = classify_payload({})

        assert result.redeemed
        assert result.amount is None

    @pytest.mark.parametrize("payload", [None, [], "ok", 42, {"error": "rate limited"}])
    def test_unrecognized_shapes_are_unknown(self, payload):
        assert classify_payload(payload).status is ProbeStatus.UNKNOWN


class TestProbeWithoutCode:
    """URLs that do not match the referral pattern."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://other.com/referral?code=XYZ",
            "https://cursor.com/referral?code=",
            "https://cursor.com/pricing",
            "not a url",
        ],
    )
    def test_returns_unknown_without_navigating(self, url):
        created = []

        def factory():
            session = FakeSession()
            created.append(session)
            return session

        result = asyncio.run(ReferralProber(session_factory=factory).probe(url))

        assert result.unknown
        assert result.malformed
        assert result.failure is FailureKind.MALFORMED_INPUT
        assert result.error == NO_CODE_ERROR
        assert created == []

    def test_shared_page_is_not_touched(self):
        page = FakePage()

        result = probe_with(page, url="https://cursor.com/referral")

        assert result.unknown
        assert page.visited == []


class TestProbeRace:
    """Tests for the response observer racing the timeout."""

    def test_available_response_wins(self):
        page = FakePage({URL: [status_response(available_payload(50))]})

        result = probe_with(page)

        assert result.available
        assert result.amount == 50
        assert page.visited == [URL]
        assert page.listener_count() == 0

    def test_ignores_unrelated_responses(self):
        page = FakePage(
            {
                URL: [
                    FakeResponse("https://cursor.com/_next/static/app.js", payload={}),
                    FakeResponse("https://cursor.com/api/auth/me", status=401),
                    status_response(available_payload(25)),
                ]
            }
        )

        result = probe_with(page)

        assert result.available
        assert result.amount == 25

    def test_first_status_response_wins(self):
        page = FakePage({URL: [status_response({}), status_response(available_payload(50))]})

        assert probe_with(page).redeemed

    def test_empty_body_is_redeemed(self):
        page = FakePage({URL: [status_response({})]})

        assert probe_with(page).redeemed

    @pytest.mark.parametrize("status", [201, 403, 429, 500])
    def test_non_200_is_unknown(self, status):
        page = FakePage({URL: [status_response(available_payload(50), status=status)]})

        result = probe_with(page)

        assert result.unknown
        assert str(status) in result.error

    def test_unparseable_body_is_unknown(self):
        page = FakePage({URL: [status_response(json_error=ValueError("Expecting value"))]})

        result = probe_with(page)

        assert result.unknown
        assert page.listener_count() == 0

    def test_timeout_is_unknown_and_cancels_navigation(self):
        page = FakePage(hang=True)

        result = probe_with(page, timeout=0.05)

        assert result.unknown
        assert result.failure is FailureKind.PROBE_AMBIGUOUS
        assert not result.malformed
        assert "Timed out" in result.error
        assert page.listener_count() == 0
        assert page.cancelled_navigations == 1

    def test_navigation_finishing_without_status_call_times_out(self):
        page = FakePage({URL: [FakeResponse("https://cursor.com/", payload={})]})

        result = probe_with(page, timeout=0.05)

        assert result.unknown
        assert page.listener_count() == 0

    def test_navigation_error_is_unknown(self):
        page = FakePage(goto_error=RuntimeError("net::ERR_NAME_NOT_RESOLVED"))

        result = probe_with(page)

        assert result.unknown
        assert "ERR_NAME_NOT_RESOLVED" in result.error
        assert page.listener_count() == 0

    def test_reused_page_does_not_accumulate_listeners(self):
        page = FakePage({URL: [status_response({})]})
        session = FakeSession(page)
        session.opened = True
        prober = ReferralProber(session=session, timeout=0.05)

        async def run_many():
            return [await prober.probe(URL) for _ in range(5)]

        results = asyncio.run(run_many())

        assert all(r.redeemed for r in results)
        assert page.listener_count() == 0


class TestDisposableSession:
    """Probes without an open shared session."""

    def test_opens_and_closes_one_off_session(self):
        created = []

        def factory():
            session = FakeSession(FakePage({URL: [status_response(available_payload(20))]}))
            created.append(session)
            return session

        result = asyncio.run(ReferralProber(session_factory=factory).probe(URL))

        assert result.available
        assert len(created) == 1
        assert created[0].closed

    def test_closed_shared_session_falls_back_to_one_off(self):
        shared = FakeSession(FakePage())
        created = []

        def factory():
            session = FakeSession(FakePage({URL: [status_response({})]}))
            created.append(session)
            return session

        result = asyncio.run(ReferralProber(session=shared, session_factory=factory).probe(URL))

        assert result.redeemed
        assert shared.page.visited == []
        assert created[0].closed

    def test_browser_launch_failure_is_unknown(self):
        class BrokenSession(FakeSession):
            async def init(self):
                raise RuntimeError("Executable doesn't exist")

        result = asyncio.run(ReferralProber(session_factory=BrokenSession).probe(URL))

        assert result.unknown
        assert "Executable" in result.error
