"""Outbound mail client.

Providers:
- "mailtrap": Mailtrap send API over HTTPS, falls back to SMTP when configured
- "smtp": plain SMTP (STARTTLS on 587/2525, implicit TLS on 465)
- "mock": logs the message and pretends it was delivered

Retries the HTTP API with a growing delay; SMTP is attempted once.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import httpx
import structlog

from app.config import Settings, get_settings
from app.domain.schemas.notification import MailMessage

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


class MailDeliveryError(Exception):
    """Raised when a message could not be handed to any provider."""


class MailClient:
    """Mail transport constructed once at startup and shared by handlers and the dispatcher."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_retries: int = 3,
        retry_delay: float = 2,
    ):
        self.settings = settings or get_settings()
        self.provider = self.settings.MAIL_PROVIDER.lower()
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._http = http_client or httpx.AsyncClient(timeout=30)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.settings.SMTP_USER and self.settings.SMTP_PASS)

    async def send(self, message: MailMessage) -> dict:
        """Deliver `message`; raises MailDeliveryError on failure."""
        if self.provider == "mock":
            logger.info("Mock email", to=message.to, subject=message.subject, preview=message.text[:100])
            return {"provider": "mock", "accepted": message.to}

        if self.provider == "smtp":
            return await self._send_via_smtp(message)

        if self.provider != "mailtrap":
            raise MailDeliveryError(f"Unknown mail provider: {self.provider}")

        if not self.settings.MAILTRAP_API_TOKEN:
            if self.smtp_configured:
                return await self._send_via_smtp(message)
            raise MailDeliveryError("No mail provider configured (MAILTRAP_API_TOKEN or SMTP_USER/SMTP_PASS)")

        try:
            return await self._send_via_api(message)
        except MailDeliveryError as api_error:
            if not self.smtp_configured:
                raise
            logger.warning("Mail API failed, falling back to SMTP", error=str(api_error))
            try:
                return await self._send_via_smtp(message)
            except MailDeliveryError as smtp_error:
                raise MailDeliveryError(f"API failed ({api_error}) and SMTP failed ({smtp_error})") from smtp_error

    async def _send_via_api(self, message: MailMessage) -> dict:
        url = f"{self.settings.MAILTRAP_API_URL.rstrip('/')}/{self.settings.MAILTRAP_INBOX_ID}"
        headers = {
            "Authorization": f"Bearer {self.settings.MAILTRAP_API_TOKEN.strip()}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        payload = {
            "from": {"email": self.settings.MAIL_FROM_ADDRESS, "name": self.settings.MAIL_FROM_NAME},
            "to": [{"email": address} for address in message.to],
            "subject": message.subject,
            "text": message.text,
            "html": message.html or message.text,
        }

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self._http.post(url, json=payload, headers=headers)
                response.raise_for_status()
                result = response.json() if response.content else {}
                logger.info("Email sent via API", to=message.to, subject=message.subject, attempt=attempt)
                return {"provider": "mailtrap", "accepted": message.to, "response": result}
            except httpx.HTTPStatusError as e:
                last_error = e
                logger.warning(
                    "Mail API error",
                    attempt=attempt,
                    max_retries=self.max_retries,
                    status_code=e.response.status_code,
                    body=e.response.text[:200],
                )
                # Client errors other than rate limiting will not improve on retry
                if e.response.status_code not in RETRYABLE_STATUS:
                    break
            except httpx.HTTPError as e:
                last_error = e
                logger.warning("Mail API connection error", attempt=attempt, max_retries=self.max_retries, error=str(e))

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        raise MailDeliveryError(f"Mail API failed after {attempt} attempt(s): {last_error}")

    async def _send_via_smtp(self, message: MailMessage) -> dict:
        try:
            await asyncio.to_thread(self._smtp_send, message)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"SMTP error: {e}") from e
        logger.info("Email sent via SMTP", to=message.to, subject=message.subject)
        return {"provider": "smtp", "accepted": message.to}

    def _smtp_send(self, message: MailMessage) -> None:
        s = self.settings
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = f"{s.MAIL_FROM_NAME} <{s.MAIL_FROM_ADDRESS}>" if s.MAIL_FROM_NAME else s.MAIL_FROM_ADDRESS
        msg["To"] = ", ".join(message.to)
        msg.attach(MIMEText(message.text, "plain", "utf-8"))
        if message.html:
            msg.attach(MIMEText(message.html, "html", "utf-8"))

        if s.SMTP_PORT == 465:
            server = smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT, timeout=30)
        else:
            server = smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=30)
        with server:
            if s.SMTP_PORT in (587, 2525):
                server.starttls()
            if s.SMTP_USER:
                server.login(s.SMTP_USER, s.SMTP_PASS)
            server.sendmail(s.MAIL_FROM_ADDRESS, message.to, msg.as_string())

    async def aclose(self) -> None:
        await self._http.aclose()
