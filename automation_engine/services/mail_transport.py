"""SMTP mail transport used by email actions"""

import asyncio
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import List, Optional

from automation_engine.core.config import Settings, settings as default_settings
from automation_engine.core.exceptions import MailTransportError, MailTransportNotConfiguredError
from automation_engine.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class OutgoingEmail:
    """A fully resolved message ready for delivery"""
    to: List[str]
    subject: str
    body: str
    html: bool = False
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    reply_to: Optional[str] = None

    @property
    def recipients(self) -> List[str]:
        return [*self.to, *self.cc, *self.bcc]


class SMTPMailTransport:
    """
    Delivers OutgoingEmail messages over SMTP.

    Host, port and credentials come from settings. A transport without
    host or credentials raises MailTransportNotConfiguredError on send;
    it never silently drops mail. Every connection is opened with
    SMTP_TIMEOUT_SECONDS so a stalled server surfaces as an error.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    @property
    def is_configured(self) -> bool:
        return self.config.smtp_configured

    def build_message(self, email: OutgoingEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.SMTP_FROM or self.config.SMTP_USER
        message["To"] = ", ".join(email.to)
        if email.cc:
            message["Cc"] = ", ".join(email.cc)
        if email.reply_to:
            message["Reply-To"] = email.reply_to
        message["Subject"] = email.subject

        # Bcc recipients only appear in the envelope
        if email.html:
            message.set_content(email.body, subtype="html")
        else:
            message.set_content(email.body)
        return message

    def _deliver(self, message: EmailMessage, recipients: List[str]) -> None:
        timeout = self.config.SMTP_TIMEOUT_SECONDS
        if self.config.SMTP_SECURE:
            server = smtplib.SMTP_SSL(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=timeout)
        else:
            server = smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=timeout)

        try:
            if not self.config.SMTP_SECURE:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
            server.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD)
            server.send_message(message, to_addrs=recipients)
        finally:
            try:
                server.quit()
            except smtplib.SMTPException:
                server.close()

    async def send(self, email: OutgoingEmail) -> None:
        """
        Deliver one message.

        Raises:
            MailTransportNotConfiguredError: If SMTP host or credentials are missing
            MailTransportError: If the message has no recipients or delivery fails
        """
        if not self.is_configured:
            logger.warning("smtp_not_configured", subject=email.subject)
            raise MailTransportNotConfiguredError()

        if not email.to:
            raise MailTransportError("Email action has no recipients")

        message = self.build_message(email)

        try:
            await asyncio.to_thread(self._deliver, message, email.recipients)
        except (smtplib.SMTPException, OSError) as e:
            # socket timeouts are OSError subclasses
            raise MailTransportError(
                f"Failed to send email: {e}",
                details={"smtp_host": self.config.SMTP_HOST, "error_type": type(e).__name__}
            ) from e

        logger.info(
            "email_sent",
            to=email.to,
            cc_count=len(email.cc),
            bcc_count=len(email.bcc),
            subject=email.subject
        )
