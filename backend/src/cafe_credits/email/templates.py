"""Credit email template."""

from dataclasses import dataclass
from html import escape

from cafe_credits.settings import settings


@dataclass
class RenderedEmail:
    subject: str
    html: str
    text: str


def render_credit_email(
    first_name: str,
    credit_url: str,
    code: str,
    amount: int,
    event_name: str | None = None,
    community_url: str | None = None,
) -> RenderedEmail:
    """Render the email that hands a referral credit to an attendee.

    Args:
        first_name: Recipient's first name
        credit_url: Referral URL to redeem
        code: Referral code
        amount: Credit amount in dollars
        event_name: Event name (defaults to settings)
        community_url: Optional community link (defaults to settings)

    Returns:
        Subject, HTML and plain-text bodies
    """
    if not credit_url:
        raise ValueError("Credit URL is required to render the credit email")

    event_name = event_name or settings.event_name
    community_url = community_url if community_url is not None else settings.community_url

    subject = f"Your Cursor Credits - ${amount}"

    name = escape(first_name)
    url = escape(credit_url, quote=True)
    community_html = ""
    community_text = ""
    if community_url:
        community_html = f"""
                <hr class="divider">
                <p class="muted">Want more events like this?</p>
                <p style="text-align: center;">
                    <a href="{escape(community_url, quote=True)}" class="button secondary">Join the community</a>
                </p>
        """
        community_text = f"\nWant more events like this? {community_url}\n"

    html = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <style>
                body {{ background-color: #000000; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #fafafa; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; background-color: #0a0a0a; }}
                .header {{ text-align: center; margin-bottom: 30px; }}
                .logo {{ font-size: 24px; font-weight: bold; }}
                .credit-card {{ border: 1px solid #262626; border-radius: 8px; padding: 20px; text-align: center; margin: 20px 0; }}
                .credit-amount {{ font-size: 40px; font-weight: bold; }}
                .button {{ display: inline-block; background-color: #fafafa; color: #0a0a0a; padding: 12px 30px; text-decoration: none; border-radius: 6px; margin: 20px 0; }}
                .button.secondary {{ background-color: #262626; color: #fafafa; }}
                .divider {{ border: none; border-top: 1px solid #262626; margin: 30px 0; }}
                .muted {{ color: #a3a3a3; }}
                .footer {{ margin-top: 40px; font-size: 12px; color: #737373; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <div class="logo">{escape(event_name)}</div>
                </div>

                <p>Your credits are ready</p>
                <p class="muted">Thanks for joining us, {name}</p>

                <div class="credit-card">
                    <div class="muted">Credit Amount</div>
                    <div class="credit-amount">${amount}</div>
                    <div class="muted">Ready to redeem on Cursor</div>
                </div>

                <p style="text-align: center;">
                    <a href="{url}" class="button">Redeem Your Credits</a>
                </p>
                {community_html}
                <div class="footer">
                    <p>If the button doesn't work, copy and paste this URL:</p>
                    <p style="word-break: break-all;"><a href="{url}">{url}</a></p>
                    <p>Referral code: {escape(code)}</p>
                </div>
            </div>
        </body>
        </html>
        """

    text = f"""
Your credits are ready

Thanks for joining us, {first_name}!

Credit amount: ${amount}
Redeem on Cursor: {credit_url}
Referral code: {code}
{community_text}
---
{event_name}
        """

    return RenderedEmail(subject=subject, html=html, text=text)
