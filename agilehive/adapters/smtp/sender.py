"""
SMTP email sender adapter - Implements EmailSender protocol.

Delivers plain-text messages through an SMTP relay using the standard
library smtplib. Transport errors are translated to DeliveryFailed.
"""

import logging
import smtplib
from email.message import EmailMessage

from agilehive.domain.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """
    Implements EmailSender protocol over SMTP.

    A new connection is opened per message. STARTTLS and login are used
    when configured.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver a message through the configured relay.

        Raises:
            DeliveryFailed: If connecting, authenticating or sending fails
        """
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                if self._use_tls:
                    smtp.starttls()
                if self._username:
                    smtp.login(self._username, self._password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s via %s:%s failed: %s", to, self._host, self._port, exc)
            raise DeliveryFailed(to) from exc

        logger.info("Email sent to %s", to)
