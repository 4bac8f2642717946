"""Credit notification emails."""

from cafe_credits.email.service import EmailService
from cafe_credits.email.templates import RenderedEmail, render_credit_email

__all__ = ["EmailService", "RenderedEmail", "render_credit_email"]
