"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging outgoing messages for local development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - never fails.
    """

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Log the message instead of delivering it.

        The message is logged as given, at INFO level, so the code it
        carries can be read from docker-compose logs.

        Args:
            to: Recipient email address (normalized by domain layer)
            subject: Message subject
            body: Plain-text body
        """
        logger.info("[VERIFICATION] Email: %s Subject: %s\n%s", to, subject, body)
