"""Alert email transport: SendGrid v3 API, or a console mock when MAIL_ENABLED=False.

When MAIL_ENABLED is False, the message is written to the log instead of
being sent, and a synthetic message id is returned so callers behave the
same in development as in production.
"""
import logging
import uuid

import httpx

from forge_crm.core.config import settings
from forge_crm.core.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class ConsoleMailer:
    """Logs the message instead of sending it."""

    async def send(
        self,
        to: str,
        cc: list[str],
        subject: str,
        html_body: str,
        text_body: str,
    ) -> str:
        message_id = f"console-{uuid.uuid4().hex}"
        logger.info(
            "\n"
            "=== ALERT EMAIL ===\n"
            "To: %s\n"
            "Cc: %s\n"
            "Subject: %s\n"
            "%s\n"
            "===================",
            to,
            ", ".join(cc) or "-",
            subject,
            text_body,
        )
        return message_id


class SendGridMailer:
    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str | None = None,
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.api_url = api_url
        self.timeout = timeout
        self._client = client

    def _payload(self, to: str, cc: list[str], subject: str, html_body: str, text_body: str) -> dict:
        personalization: dict = {"to": [{"email": to}], "subject": subject}
        # SendGrid rejects a CC that repeats the To address.
        cc_list = [{"email": addr} for addr in dict.fromkeys(cc) if addr and addr != to]
        if cc_list:
            personalization["cc"] = cc_list
        sender = {"email": self.from_email}
        if self.from_name:
            sender["name"] = self.from_name
        return {
            "personalizations": [personalization],
            "from": sender,
            "content": [
                {"type": "text/plain", "value": text_body},
                {"type": "text/html", "value": html_body},
            ],
        }

    async def send(
        self,
        to: str,
        cc: list[str],
        subject: str,
        html_body: str,
        text_body: str,
    ) -> str:
        """Send one message and return the provider message id.

        Raises:
            DeliveryError: transport failure or a non-2xx response.
        """
        payload = self._payload(to, cc, subject, html_body, text_body)
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self._client is not None:
                resp = await self._client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"SendGrid request failed: {exc}") from exc

        if resp.status_code >= 300:
            raise DeliveryError(f"SendGrid rejected message: {resp.status_code} {resp.text[:200]}")

        return resp.headers.get("X-Message-Id") or f"sendgrid-{uuid.uuid4().hex}"


def get_mailer():
    """Mailer for the current configuration."""
    if not settings.MAIL_ENABLED:
        return ConsoleMailer()
    if not settings.SENDGRID_API_KEY:
        logger.warning("MAIL_ENABLED=True but SENDGRID_API_KEY is empty. Falling back to console mailer.")
        return ConsoleMailer()
    return SendGridMailer(
        api_key=settings.SENDGRID_API_KEY,
        from_email=settings.MAIL_FROM,
        from_name=settings.MAIL_FROM_NAME,
        api_url=settings.SENDGRID_API_URL,
        timeout=settings.ALERT_IO_TIMEOUT_SECONDS,
    )
