"""
Account domain service - Login, profile maintenance and account closure.

Logins accept both credential formats. A legacy plaintext credential that
verifies is replaced by a bcrypt digest within the same transaction.
"""

import logging
from dataclasses import dataclass

from .credentials import DEFAULT_COST, check_and_upgrade, hash_password
from .exceptions import (
    AdminInactive,
    EmailTaken,
    ErrorKind,
    InvalidCredentials,
    UserNotFound,
    UsernameTaken,
)
from .models import Admin, User
from .ports import EmailSender, IdentityStore
from .verification import normalize_email

logger = logging.getLogger(__name__)


@dataclass
class AccountService:
    """Domain service for registered users and admins."""

    store: IdentityStore
    email_sender: EmailSender
    bcrypt_cost: int = DEFAULT_COST

    def login(self, email: str, password: str) -> User:
        """
        Authenticate a user by email and password.

        Raises:
            InvalidCredentials: unknown email or wrong password
        """
        email = normalize_email(email)
        with self.store.unit_of_work() as session:
            user = session.find_user_by_email(email)
            if user is None:
                logger.warning("Login failed: unknown email")
                raise InvalidCredentials()

            verified, replacement = check_and_upgrade(password, user.password, rounds=self.bcrypt_cost)
            if not verified:
                logger.warning("Login failed for user id %s", user.id)
                raise InvalidCredentials()
            if replacement is not None:
                session.update_user_password(user.id, replacement)
                user.password = replacement
                logger.info("Upgraded legacy credential for user id %s", user.id)

        logger.info("Login successful for user id %s", user.id)
        return user

    def admin_login(self, email: str, password: str) -> Admin:
        """
        Authenticate an admin.

        Raises:
            InvalidCredentials: unknown email or wrong password
            AdminInactive: the admin account is deactivated
        """
        email = normalize_email(email)
        with self.store.unit_of_work() as session:
            admin = session.find_admin_by_email(email)
            if admin is None:
                raise InvalidCredentials()
            if not admin.is_active:
                logger.warning("Login refused for deactivated admin id %s", admin.id)
                raise AdminInactive()

            verified, replacement = check_and_upgrade(password, admin.password, rounds=self.bcrypt_cost)
            if not verified:
                raise InvalidCredentials()
            if replacement is not None:
                session.update_admin_password(admin.id, replacement)
                admin.password = replacement
                logger.info("Upgraded legacy credential for admin id %s", admin.id)

        return admin

    def update_profile(
        self,
        user_id: int,
        username: str,
        email: str,
        new_password: str | None = None,
        age: int | None = None,
        gender: str | None = None,
    ) -> User:
        """
        Update a user's profile fields and optionally the password.

        Raises:
            UserNotFound: no user with this id
            UsernameTaken, EmailTaken: value belongs to another user
        """
        username = username.strip()
        email = normalize_email(email)
        with self.store.unit_of_work() as session:
            user = session.find_user_by_id(user_id)
            if user is None:
                raise UserNotFound()
            if username != user.username and session.username_exists(username, exclude_user_id=user_id):
                raise UsernameTaken()
            if email != user.email and session.email_exists(email, exclude_user_id=user_id):
                raise EmailTaken()

            user.username = username
            user.email = email
            user.age = age
            user.gender = gender
            if new_password and new_password.strip():
                user.password = hash_password(new_password, rounds=self.bcrypt_cost)
            session.update_user(user)

        logger.info("Profile updated for user id %s", user_id)
        return user

    def delete_account(self, user_id: int) -> None:
        """
        Delete a user and the user's assessment results.

        The deletion notice goes out first, on a best-effort basis.

        Raises:
            UserNotFound: no user with this id
        """
        with self.store.unit_of_work() as session:
            user = session.find_user_by_id(user_id)
            if user is None:
                raise UserNotFound()
            try:
                self.email_sender.send_account_deletion_notice(user.email, user.username)
            except Exception:
                logger.warning(
                    "Failed to send account deletion notice to %s (%s)",
                    user.email,
                    ErrorKind.DEPENDENCY_FAILURE.value,
                    exc_info=True,
                )
            session.delete_user(user_id)

        logger.info("Deleted account for user id %s", user_id)
