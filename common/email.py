"""
Loopcraft - Email Provider (Resend)
=====================================
Transactional email over Resend's HTTP API.

NOTE: the default sender (onboarding@resend.dev) only delivers to the
account owner's address. Set RESEND_FROM_EMAIL to a verified domain.
"""

import logging
import requests

from config.settings import RESEND_API_KEY, RESEND_FROM_EMAIL

logger = logging.getLogger("loopcraft.email")

RESEND_API_URL = "https://api.resend.com/emails"

if not RESEND_API_KEY:
    logger.warning("RESEND_API_KEY not set - email sending disabled")


class EmailSender:
    """Thin Resend client. Never raises: returns True on success."""

    def send(self, to: str, subject: str, html: str) -> bool:
        if not RESEND_API_KEY:
            logger.warning("Email skipped: no Resend API key configured")
            return False
        if not to:
            logger.warning("Email skipped: no recipient address")
            return False

        try:
            response = requests.post(
                RESEND_API_URL,
                json={
                    "from": RESEND_FROM_EMAIL,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                },
                headers={"Authorization": f"Bearer {RESEND_API_KEY}"},
                timeout=10,
            )

            if response.status_code in (200, 201):
                email_id = response.json().get("id")
                logger.info(f"Email sent to {to} (id={email_id})")
                return True
            else:
                logger.error(f"Resend Error: {response.status_code} - {response.text}")
                return False

        except requests.exceptions.Timeout:
            logger.error("Resend Timeout")
            return False
        except Exception as e:
            logger.error(f"Resend Failed: {e}")
            return False


email_sender = EmailSender()
