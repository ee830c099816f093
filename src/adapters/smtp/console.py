"""
Console notification adapter - Implements EmailSender protocol.

Writes every outgoing message to the application log instead of sending
mail. Used in development and in the integration tests, which read codes
back out of the log.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol by logging at INFO.

    Structural subtyping only; no inheritance from the Protocol.
    """

    def send_verification_code(self, email: str, code: str) -> None:
        logger.info("[VERIFICATION] Email: %s Code: %s", email, code)

    def send_password_reset_link(self, email: str, url: str) -> None:
        """The link carries the reset code as its ``token`` query parameter."""
        logger.info("[PASSWORD RESET] Email: %s Link: %s", email, url)

    def send_verification_success(self, email: str, username: str) -> None:
        logger.info("[WELCOME] Email: %s Username: %s", email, username)

    def send_account_deletion_notice(self, email: str, username: str) -> None:
        logger.info("[ACCOUNT DELETED] Email: %s Username: %s", email, username)
