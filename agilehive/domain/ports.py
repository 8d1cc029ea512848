"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the records the domain works with and the interfaces
(ports) it requires from infrastructure. Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """
    Account roles used by the auth gate.

    New accounts are created as MEMBER. Promotion to MANAGER or ADMIN
    happens outside the registration flow.
    """

    MEMBER = "member"
    MANAGER = "manager"
    ADMIN = "admin"


@dataclass(frozen=True)
class Account:
    """Persisted account record."""

    id: str
    email: str
    password_hash: str
    role: Role
    created_at: datetime

    def public_fields(self) -> dict[str, str]:
        """Fields safe to return to clients (never the hash)."""
        return {"id": self.id, "email": self.email, "role": self.role.value}


@dataclass(frozen=True)
class PendingVerification:
    """One-time code waiting to be consumed by verification."""

    email: str
    code: str
    created_at: datetime


class AccountRepository(Protocol):
    """Port interface for account and pending-verification persistence."""

    def get_account_by_email(self, email: str) -> Account | None:
        """
        Fetch an account by normalized email.

        Returns:
            The account, or None when no account exists for the email
        """
        ...

    def get_account_by_id(self, account_id: str) -> Account | None:
        """Fetch an account by its identifier."""
        ...

    def create_account(self, email: str, password_hash: str, role: Role) -> Account:
        """
        Insert a new account.

        Args:
            email: Normalized email address
            password_hash: bcrypt hash of the password
            role: Role assigned at creation

        Returns:
            The stored account with its generated id

        Raises:
            DuplicateAccount: If the unique email constraint rejects the insert
            StorageError: On any other persistence failure
        """
        ...

    def delete_pending(self, email: str) -> int:
        """
        Remove every pending verification for the email.

        Returns:
            Number of records removed
        """
        ...

    def save_pending(self, email: str, code: str) -> PendingVerification:
        """
        Store a new pending verification with a fresh created_at.

        The store expires the record on its own after its retention window.
        """
        ...

    def find_pending(self, email: str, code: str) -> PendingVerification | None:
        """
        Return the live pending verification matching (email, code).

        Expired records are never returned.
        """
        ...

    def consume_pending(self, email: str, code: str) -> None:
        """Delete the pending verification matching (email, code)."""
        ...

    def has_pending(self, email: str) -> bool:
        """Return True when the email has a live pending verification."""
        ...

    def ping(self) -> None:
        """Raise if the store is unreachable."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver a plain-text message.

        Args:
            to: Recipient email address
            subject: Message subject
            body: Plain-text body

        Raises:
            DeliveryFailed: If the message could not be delivered
        """
        ...
