"""
Tests for the credit email template and the Resend client.
"""

import asyncio
import json

import httpx
import pytest

from cafe_credits.email.service import EmailService
from cafe_credits.email.templates import render_credit_email

URL = "https://cursor.com/referral?code=ABC123"


def send_with(handler, **kwargs):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = EmailService(
                api_key="re_test", from_email="credits@example.com", from_name="Cafe Cursor", client=client, **kwargs
            )
            return await service.send("ann@example.com", "Hello", "<p>Hi</p>", "Hi")

    return asyncio.run(run())


class TestRenderCreditEmail:
    """Tests for the credit email content."""

    def test_subject_carries_amount(self):
        email = render_credit_email("Ann", URL, "ABC123", 50)

        assert email.subject == "Your Cursor Credits - $50"

    def test_bodies_contain_link_and_code(self):
        email = render_credit_email("Ann", URL, "ABC123", 20, event_name="Cafe Cursor Victoria")

        assert f'href="{URL}"' in email.html
        assert "ABC123" in email.html
        assert "Cafe Cursor Victoria" in email.html
        assert URL in email.text
        assert "Thanks for joining us, Ann!" in email.text

    def test_html_escapes_names(self):
        email = render_credit_email("<script>alert(1)</script>", URL, "ABC123", 20)

        assert "<script>" not in email.html
        assert "&lt;script&gt;" in email.html

    def test_community_link_is_optional(self):
        with_link = render_credit_email("Ann", URL, "ABC123", 20, community_url="https://example.org/")
        without_link = render_credit_email("Ann", URL, "ABC123", 20, community_url="")

        assert "https://example.org/" in with_link.html
        assert "Join the community" not in without_link.html

    def test_missing_url_raises(self):
        with pytest.raises(ValueError):
            render_credit_email("Ann", "", "ABC123", 20)


class TestEmailService:
    """Tests for the Resend client."""

    def test_success(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"id": "email_1"})

        result = send_with(handler)

        assert result.success
        assert str(requests[0].url) == EmailService.RESEND_API_URL
        body = json.loads(requests[0].content)
        assert body == {
            "from": "Cafe Cursor <credits@example.com>",
            "to": ["ann@example.com"],
            "subject": "Hello",
            "html": "<p>Hi</p>",
            "text": "Hi",
        }

    def test_api_error_message_is_reported(self):
        result = send_with(lambda request: httpx.Response(422, json={"message": "Invalid `to` field"}))

        assert not result.success
        assert result.message == "Invalid `to` field"

    def test_api_error_without_body(self):
        result = send_with(lambda request: httpx.Response(500, text="oops"))

        assert not result.success
        assert result.message == "Email API returned HTTP 500"

    def test_transport_error_is_a_failed_delivery(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        result = send_with(handler)

        assert not result.success
        assert "timed out" in result.message

    def test_missing_configuration_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                service = EmailService(api_key="", from_email="credits@example.com", client=client)
                return await service.send("ann@example.com", "Hello", "<p>Hi</p>")

        result = asyncio.run(run())

        assert not result.success
        assert result.message == "RESEND_API_KEY not configured"
