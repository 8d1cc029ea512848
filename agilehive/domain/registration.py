"""
Registration domain service - OTP registration state machine.

This module contains the core business logic for registration and login,
orchestrating one-time code issuance, delivery, verification, first-time
account creation and session token issuance.

Registration State Machine (per email)
======================================

States:
- NO_ACCOUNT: No account and no live pending verification
- OTP_PENDING: A pending verification holds the latest code
- ACCOUNT_CREATED: Terminal state after successful verification

Transitions:
    NO_ACCOUNT      -> OTP_PENDING      (request_code)
    OTP_PENDING     -> OTP_PENDING      (request_code again, supersedes old code)
    OTP_PENDING     -> NO_ACCOUNT       (retention window elapses)
    OTP_PENDING     -> ACCOUNT_CREATED  (verify_and_create with live code)
    ACCOUNT_CREATED -> ACCOUNT_CREATED  (repeated verify_and_create returns a token)

The password is not stored until verification. The client resubmits it
with the code, so no unverified account ever exists.

Write ordering in verify_and_create:
    1. pending lookup and account lookup (no mutation)
    2. account insert
    3. pending deletion
    4. token issuance
A failure at any step is raised before the next step runs.
"""

import logging
import secrets
from dataclasses import dataclass
from enum import Enum

import bcrypt

from .exceptions import (
    AccountAlreadyExists,
    DeliveryFailed,
    InvalidCredentials,
    InvalidOrExpiredCode,
)
from .ports import Account, AccountRepository, EmailSender, Role
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)

OTP_EMAIL_SUBJECT = "AgileHive: Your OTP for Registration"

BCRYPT_MAX_PASSWORD_BYTES = 72

# Pre-computed bcrypt hash for timing oracle prevention.
# Login compares against it when the email has no account.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


class RegistrationState(str, Enum):
    """Registration lifecycle states for a single email."""

    NO_ACCOUNT = "NO_ACCOUNT"
    OTP_PENDING = "OTP_PENDING"
    ACCOUNT_CREATED = "ACCOUNT_CREATED"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful verification or login."""

    token: str
    account: Account
    created: bool = False


@dataclass
class RegistrationService:
    """
    Domain service for registration and login.

    Collaborators are injected at construction: the account repository,
    the email sender used to deliver codes, and the session token issuer.
    """

    repository: AccountRepository
    email_sender: EmailSender
    token_issuer: TokenIssuer
    otp_length: int = 6
    otp_ttl_seconds: int = 600
    bcrypt_cost: int = 10

    def request_code(self, email: str, password: str) -> str:
        """
        Issue a fresh one-time code for an unregistered email.

        Any earlier pending code for the email is deleted first, so only
        the most recently requested code can be verified.

        Args:
            email: User's email address (will be normalized)
            password: User's password (checked by the caller, not stored here)

        Returns:
            Normalized email address

        Raises:
            AccountAlreadyExists: If an account exists for the email
            DeliveryFailed: If the email could not be sent. The new code
                is already stored and stays valid.
            StorageError: On persistence failure
        """
        normalized_email = self._normalize_email(email)

        if self.repository.get_account_by_email(normalized_email) is not None:
            raise AccountAlreadyExists(normalized_email)

        self.repository.delete_pending(normalized_email)
        code = self._generate_code()
        self.repository.save_pending(normalized_email, code)

        try:
            self.email_sender.send(
                normalized_email, OTP_EMAIL_SUBJECT, self._build_code_email(code)
            )
        except DeliveryFailed:
            logger.error("Failed to deliver verification code to %s", normalized_email)
            raise

        logger.info("Verification code issued for %s", normalized_email)
        return normalized_email

    def verify_and_create(self, email: str, code: str, password: str) -> AuthResult:
        """
        Verify a one-time code and create the account on first success.

        Safe to retry: when the account already exists the caller gets a
        fresh token for it instead of a second account.

        Args:
            email: User's email (will be normalized)
            code: One-time code from the verification email
            password: Password to set on the new account

        Returns:
            AuthResult with created=True for a new account, False otherwise

        Raises:
            InvalidOrExpiredCode: If no live code matches and the request is
                not a repeat of an earlier successful verification
            DuplicateAccount: If a concurrent verification created the account first
            StorageError: On persistence failure
        """
        normalized_email = self._normalize_email(email)
        clean_code = code.strip()

        pending = self.repository.find_pending(normalized_email, clean_code)
        existing = self.repository.get_account_by_email(normalized_email)

        if existing is not None:
            if pending is not None:
                self.repository.consume_pending(normalized_email, clean_code)
            elif not self._check_password(password, existing.password_hash):
                logger.warning("Rejected verification for %s", normalized_email)
                raise InvalidOrExpiredCode(normalized_email)
            logger.info("Repeat verification for existing account %s", existing.id)
            return AuthResult(token=self._issue_token(existing), account=existing)

        if pending is None:
            logger.warning("Invalid or expired code for %s", normalized_email)
            raise InvalidOrExpiredCode(normalized_email)

        account = self.repository.create_account(
            normalized_email, self._hash_password(password), Role.MEMBER
        )
        self.repository.consume_pending(normalized_email, clean_code)
        logger.info("Account %s created for %s", account.id, normalized_email)

        return AuthResult(token=self._issue_token(account), account=account, created=True)

    def login(self, email: str, password: str) -> AuthResult:
        """
        Authenticate with email and password.

        Unknown email and wrong password raise the same error, and bcrypt
        runs in both cases.

        Raises:
            InvalidCredentials: If the email is unknown or the password is wrong
            StorageError: On persistence failure
        """
        normalized_email = self._normalize_email(email)
        account = self.repository.get_account_by_email(normalized_email)

        stored_hash = account.password_hash if account is not None else _DUMMY_BCRYPT_HASH
        password_valid = self._check_password(password, stored_hash)

        if account is None or not password_valid:
            logger.warning("Failed login for %s", normalized_email)
            raise InvalidCredentials(normalized_email)

        logger.info("Account %s logged in", account.id)
        return AuthResult(token=self._issue_token(account), account=account)

    def state_of(self, email: str) -> RegistrationState:
        """Report where an email currently sits in the registration lifecycle."""
        normalized_email = self._normalize_email(email)
        if self.repository.get_account_by_email(normalized_email) is not None:
            return RegistrationState.ACCOUNT_CREATED
        if self.repository.has_pending(normalized_email):
            return RegistrationState.OTP_PENDING
        return RegistrationState.NO_ACCOUNT

    def _issue_token(self, account: Account) -> str:
        return self.token_issuer.issue(account.id, account.role)

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()

    def _generate_code(self) -> str:
        """
        Generate a cryptographically secure numeric code.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(self.otp_length))

    def _build_code_email(self, code: str) -> str:
        minutes = max(1, self.otp_ttl_seconds // 60)
        return (
            "Dear User,\n\n"
            "Your One-Time Password (OTP) for AgileHive registration is:\n\n"
            f"    {code}\n\n"
            f"This OTP is valid for {minutes} minutes. Do not share it with anyone.\n"
            "If you did not request this, please ignore this email.\n\n"
            "Thanks,\nThe AgileHive Team"
        )

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()

    def _check_password(self, password: str, password_hash: str) -> bool:
        # No stored hash can come from a password bcrypt refuses to hash.
        if len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(password.encode(), password_hash.encode())
