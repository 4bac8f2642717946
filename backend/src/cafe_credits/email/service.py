"""Email delivery through the Resend API."""

import httpx

from cafe_credits.domain import DeliveryResult
from cafe_credits.logging_config import get_logger
from cafe_credits.settings import settings

logger = get_logger(__name__)


class EmailService:
    """Sends transactional email via Resend.

    A missing API key or sender address is reported as a failed delivery,
    never raised.
    """

    RESEND_API_URL = "https://api.resend.com/emails"

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize email service.

        Args:
            api_key: Resend API key (defaults to settings)
            from_email: Sender address (defaults to settings)
            from_name: Sender display name (defaults to settings)
            client: HTTP client to reuse; a short-lived one is opened per send otherwise
        """
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.from_email = from_email if from_email is not None else settings.resend_from_email
        self.from_name = from_name or settings.resend_from_name
        self.client = client

        if not self.api_key:
            logger.warning("email_service_disabled", reason="CAFE_RESEND_API_KEY not set")

    @property
    def sender(self) -> str:
        if self.from_name:
            return f"{self.from_name} <{self.from_email}>"
        return self.from_email or ""

    async def send(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> DeliveryResult:
        """Send one email.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body (optional)

        Returns:
            Delivery outcome with an error message on failure
        """
        if not self.api_key:
            logger.warning("email_not_sent", reason="missing_api_key", to=to_email)
            return DeliveryResult(success=False, message="RESEND_API_KEY not configured")
        if not self.from_email:
            logger.warning("email_not_sent", reason="missing_from_email", to=to_email)
            return DeliveryResult(success=False, message="RESEND_FROM_EMAIL not configured")

        payload = {
            "from": self.sender,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            payload["text"] = text_content

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            if self.client is not None:
                response = await self.client.post(
                    self.RESEND_API_URL, json=payload, headers=headers, timeout=30.0
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self.RESEND_API_URL, json=payload, headers=headers, timeout=30.0
                    )
        except httpx.HTTPError as e:
            logger.error("email_send_error", to=to_email, error=str(e))
            return DeliveryResult(success=False, message=str(e) or type(e).__name__)

        if response.status_code in (200, 201, 202):
            logger.info("email_sent", to=to_email, subject=subject)
            return DeliveryResult(success=True)

        message = _error_message(response)
        logger.error(
            "email_send_failed",
            to=to_email,
            status=response.status_code,
            body=response.text[:200],
        )
        return DeliveryResult(success=False, message=message)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Email API returned HTTP {response.status_code}"
