"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging confirmation and recovery links for demo
purposes.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints links to stdout.
    """

    def send_confirmation_link(self, email: str, link: str) -> None:
        """
        Log the sign-up confirmation link (simulates email delivery).

        Logged at INFO level to be visible in docker-compose logs.

        Args:
            email: Recipient email address (normalized by domain layer)
            link: Callback URL carrying the one-time confirmation code
        """
        logger.info("[CONFIRM EMAIL] Email: %s Link: %s", email, link)

    def send_password_reset_link(self, email: str, link: str) -> None:
        """
        Log the password recovery link (simulates email delivery).

        Args:
            email: Recipient email address (normalized by domain layer)
            link: Redirect URL carrying the one-time recovery code
        """
        logger.info("[PASSWORD RESET] Email: %s Link: %s", email, link)
