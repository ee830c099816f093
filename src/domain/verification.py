"""
Verification domain service - Code lifecycle for registration and password reset.

Every issued code moves through the record state machine
(see RecordState in models.py):

    ACTIVE -> CONSUMED   correct code, record used
    ACTIVE -> EXPIRED    now > expires_at, evaluated lazily at read time
    ACTIVE -> LOCKED     attempts >= max_attempts

Checks on a record always run in the same order: missing, consumed,
expired, locked, code mismatch. A mismatch increments the attempt counter
and the increment commits even though the caller sees a failure.

Registration: start_registration() creates a PendingRegistration holding the
pre-hashed password. confirm_code() with the right code creates the User and
removes the pending record in the same transaction.

Password reset is two-phase. confirm_code(purpose=RESET) only proves the
code is valid. execute_reset() checks the code again against the same record
and the same attempt counter, then writes the new password and consumes the
record. Consumed resets stay in the table until the next purge so that a
replayed reset reports CONSUMED.

Expired records are purged when a new registration or reset is started,
not by a background job. Notification failures are logged and swallowed;
they never roll back a state transition.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlencode

from .codes import code_matches, digest_code, generate_code
from .credentials import DEFAULT_COST, hash_password, verify_password
from .exceptions import (
    EmailTaken,
    ErrorKind,
    NoPendingRegistration,
    SamePassword,
    UsernameTaken,
    VerificationInProgress,
)
from .models import PasswordReset, PendingRegistration, RecordState, User, VerificationRecord
from .ports import Clock, EmailSender, IdentityStore, Purpose, VerifyResult

logger = logging.getLogger(__name__)

_STATE_RESULTS = {
    RecordState.CONSUMED: VerifyResult.CONSUMED,
    RecordState.EXPIRED: VerifyResult.EXPIRED,
    RecordState.LOCKED: VerifyResult.LOCKED,
}


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


@dataclass(frozen=True)
class Confirmation:
    """Outcome of confirm_code(). ``user`` is set when a registration completed."""

    result: VerifyResult
    user: User | None = None

    @property
    def ok(self) -> bool:
        return self.result is VerifyResult.SUCCESS


@dataclass
class VerificationService:
    """
    Domain service for verification codes.

    Orchestrates issuing, resending, confirming and consuming codes for
    both the registration and the password reset flow.
    """

    store: IdentityStore
    email_sender: EmailSender
    clock: Clock
    code_ttl: timedelta = timedelta(minutes=5)
    max_attempts: int = 3
    bcrypt_cost: int = DEFAULT_COST
    reset_base_url: str = "http://localhost:3000/reset-password"

    # Registration

    def start_registration(self, username: str, email: str, password: str) -> str:
        """
        Begin a registration and send its verification code.

        Args:
            username: Requested username
            email: User's email address (will be normalized)
            password: User's password (stored hashed, never in plaintext)

        Returns:
            Normalized email address

        Raises:
            UsernameTaken: username belongs to a registered user
            EmailTaken: email belongs to a registered user
            VerificationInProgress: an unexpired pending registration exists
        """
        username = username.strip()
        email = normalize_email(email)
        password_hash = hash_password(password, rounds=self.bcrypt_cost)
        code = generate_code()

        with self.store.unit_of_work() as session:
            if session.username_exists(username):
                raise UsernameTaken()
            if session.email_exists(email):
                raise EmailTaken()

            purged = session.purge_expired_registrations(self.clock.now())
            if purged:
                logger.info("Purged %d expired pending registration(s)", purged)

            record = PendingRegistration(
                email=email,
                code_hash=digest_code(code),
                expires_at=self.clock.now() + self.code_ttl,
                username=username,
                password_hash=password_hash,
            )
            if not session.insert_pending_registration(record):
                logger.warning("Registration already in progress for %s", email)
                raise VerificationInProgress()

        logger.info("Pending registration created for %s", email)
        self._notify("verification code", self.email_sender.send_verification_code, email, code)
        return email

    def resend_registration_code(self, email: str) -> None:
        """
        Issue a new code for an existing pending registration.

        The previous code stops working. Expired and locked records are
        revived with a fresh expiry and attempt budget.

        Raises:
            NoPendingRegistration: nothing to resend for this email
        """
        email = normalize_email(email)
        code = generate_code()

        with self.store.unit_of_work() as session:
            record = session.find_pending_registration(email)
            if record is None or record.consumed:
                raise NoPendingRegistration()
            record.reissue(digest_code(code), self.clock.now() + self.code_ttl)
            session.save_pending_registration(record)

        logger.info("Verification code reissued for %s", email)
        self._notify("verification code", self.email_sender.send_verification_code, email, code)

    # Password reset

    def start_password_reset(self, email: str, reset_base_url: str | None = None) -> None:
        """
        Send a password reset link if the email belongs to a user.

        Unknown emails get the same silent success as known ones and no
        record is created. An existing unconsumed reset is overwritten in
        place with the new code.

        Raises:
            VerificationInProgress: a concurrent request created the record first
        """
        email = normalize_email(email)
        code = generate_code()

        with self.store.unit_of_work() as session:
            purged = session.purge_expired_password_resets(self.clock.now())
            if purged:
                logger.info("Purged %d expired or consumed password reset(s)", purged)

            user = session.find_user_by_email(email)
            if user is None:
                logger.info("Password reset requested for unknown email")
                return

            code_hash = digest_code(code)
            expires_at = self.clock.now() + self.code_ttl
            record = session.find_password_reset(email)
            if record is not None and not record.consumed:
                record.reissue(code_hash, expires_at)
                session.save_password_reset(record)
                logger.info("Password reset reissued for %s", email)
            else:
                record = PasswordReset(
                    email=email, code_hash=code_hash, expires_at=expires_at, user_id=user.id
                )
                if not session.insert_password_reset(record):
                    raise VerificationInProgress()
                logger.info("Password reset created for %s", email)

        link = self._reset_link(reset_base_url or self.reset_base_url, email, code)
        self._notify("password reset link", self.email_sender.send_password_reset_link, email, link)

    def execute_reset(self, email: str, token: str, new_password: str) -> VerifyResult:
        """
        Check the reset code again, then replace the password and consume the record.

        Shares the attempt counter with confirm_code(purpose=RESET).

        Returns:
            VerifyResult.SUCCESS when the password was changed, otherwise the
            reason the code was rejected

        Raises:
            SamePassword: new password matches the current credential
        """
        email = normalize_email(email)

        with self.store.unit_of_work() as session:
            record = session.find_password_reset(email)
            result = self._check(record, token)
            if result is VerifyResult.INVALID_CODE:
                session.save_password_reset(record)
            if result is not VerifyResult.SUCCESS:
                return result

            user = session.find_user_by_id(record.user_id)
            if user is None:
                return VerifyResult.NOT_FOUND
            if verify_password(new_password, user.password):
                raise SamePassword()

            session.update_user_password(user.id, hash_password(new_password, rounds=self.bcrypt_cost))
            record.consumed = True
            session.save_password_reset(record)

        logger.info("Password reset completed for %s", email)
        return VerifyResult.SUCCESS

    # Shared

    def send_code(self, email: str, purpose: Purpose = Purpose.REGISTER, reset_base_url: str | None = None) -> None:
        """Resend a registration code, or start a password reset."""
        if purpose is Purpose.RESET:
            self.start_password_reset(email, reset_base_url)
        else:
            self.resend_registration_code(email)

    def confirm_code(self, email: str, code: str, purpose: Purpose = Purpose.REGISTER) -> Confirmation:
        """
        Check a verification code.

        For registration, a correct code creates the user and removes the
        pending record. For password reset, a correct code changes nothing;
        execute_reset() does the consuming.

        Raises:
            UsernameTaken, EmailTaken: the candidate identity was registered
                by someone else while the code was pending
        """
        email = normalize_email(email)
        if purpose is Purpose.RESET:
            return Confirmation(self._confirm_reset(email, code))
        return self._confirm_registration(email, code)

    def _confirm_registration(self, email: str, code: str) -> Confirmation:
        with self.store.unit_of_work() as session:
            record = session.find_pending_registration(email)
            if record is None and session.email_exists(email):
                # A concurrent confirm already completed this registration
                return Confirmation(VerifyResult.CONSUMED)

            result = self._check(record, code)
            if result is VerifyResult.INVALID_CODE:
                session.save_pending_registration(record)
            if result is not VerifyResult.SUCCESS:
                return Confirmation(result)

            user = session.create_user(record.username, record.email, record.password_hash)
            record.consumed = True
            session.save_pending_registration(record)
            session.delete_pending_registration(email)

        logger.info("Registration confirmed for %s (user id %s)", email, user.id)
        self._notify(
            "verification success", self.email_sender.send_verification_success, email, user.username
        )
        return Confirmation(VerifyResult.SUCCESS, user)

    def _confirm_reset(self, email: str, code: str) -> VerifyResult:
        with self.store.unit_of_work() as session:
            record = session.find_password_reset(email)
            result = self._check(record, code)
            if result is VerifyResult.INVALID_CODE:
                session.save_password_reset(record)
        return result

    def _check(self, record: VerificationRecord | None, code: str) -> VerifyResult:
        """Evaluate a record against a submitted code. Increments attempts on mismatch."""
        if record is None:
            return VerifyResult.NOT_FOUND

        state = record.state(self.clock.now(), self.max_attempts)
        if state is not RecordState.ACTIVE:
            logger.warning("Code check for %s rejected: record %s", record.email, state.value)
            return _STATE_RESULTS[state]

        if not code_matches(code, record.code_hash):
            record.attempts += 1
            logger.warning(
                "Invalid code for %s (attempt %d of %d)", record.email, record.attempts, self.max_attempts
            )
            return VerifyResult.INVALID_CODE

        return VerifyResult.SUCCESS

    @staticmethod
    def _reset_link(base_url: str, email: str, code: str) -> str:
        separator = "&" if "?" in base_url else "?"
        return base_url + separator + urlencode({"email": email, "token": code})

    @staticmethod
    def _notify(label: str, send, *args: str) -> None:
        try:
            send(*args)
        except Exception:
            logger.warning(
                "Failed to send %s to %s (%s)", label, args[0], ErrorKind.DEPENDENCY_FAILURE.value, exc_info=True
            )
