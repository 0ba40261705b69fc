import logging
from typing import Optional

import httpx

import settings

logger = logging.getLogger(__name__)

BREVO_ENDPOINT = "https://api.brevo.com/v3/smtp/email"


class MailerError(Exception):
    """Outbound e-mail could not be delivered to the provider."""


class BrevoMailer:
    """Sends transactional mail through the Brevo HTTP API."""

    def __init__(self, api_key: Optional[str], endpoint: str = BREVO_ENDPOINT, timeout: float = 10.0):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout

    def send(self, sender: str, to: str, subject: str, html: str) -> None:
        if not self.api_key:
            raise MailerError("BREVO_API_KEY is not configured")
        payload = {
            "sender": {"email": sender},
            "to": [{"email": to}],
            "subject": subject,
            "htmlContent": html,
        }
        try:
            response = httpx.post(
                self.endpoint,
                json=payload,
                headers={"accept": "application/json", "api-key": self.api_key},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise MailerError(f"Mail provider unreachable: {e}") from e
        if response.status_code >= 400:
            raise MailerError(f"Mail provider error {response.status_code}: {response.text[:200]}")
        logger.info("Mail sent to %s: %s", to, subject)


_mailer = BrevoMailer(settings.BREVO_API_KEY)


def get_mailer() -> BrevoMailer:
    return _mailer
