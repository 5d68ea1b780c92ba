"""
Invitation e-mails via the Resend HTTP API.

Sending is best effort: a missing API key skips the send and a failed send
is logged, neither interrupts the caller.
"""

import html
import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


def plan_link() -> str:
    return f"{settings.frontend_url.rstrip('/')}/exam-prep"


def _invitation_html(inviter_name: str, link: str) -> str:
    inviter = html.escape(inviter_name)
    return f"""
<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>You've been invited!</h2>
  <p><strong>{inviter}</strong> has invited you to collaborate on a Study Plan in Engine Board.</p>
  <p><a href="{link}">Join Study Plan</a></p>
  <p style="color: #666; font-size: 14px;">If the link doesn't work, copy and paste this into your browser: {link}</p>
</div>
"""


class EmailService:
    """Sends collaborator invitations."""

    async def send_invitation(self, to: str, inviter_name: str) -> bool:
        """Send a plan invitation; returns True if Resend accepted it."""
        if not settings.resend_api_key:
            logger.warning("RESEND_API_KEY not set, invitation e-mail skipped")
            return False

        link = plan_link()
        payload = {
            "from": settings.email_from,
            "to": [to],
            "subject": f"{inviter_name} invited you to collaborate on a Study Plan",
            "html": _invitation_html(inviter_name, link),
        }
        headers = {
            "Authorization": f"Bearer {settings.resend_api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=5.0)) as client:
                response = await client.post(f"{settings.resend_api_url}/emails", json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send invitation e-mail to {to}: {e}")
            return False

        logger.info(f"Invitation e-mail sent to {to}")
        return True


email_service = EmailService()
