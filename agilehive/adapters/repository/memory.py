"""
In-memory repository adapter - Implements AccountRepository protocol.

Keeps accounts and pending verifications in process memory. Used for
local development (STORAGE_BACKEND=memory) and for tests. Each method
holds a lock for its whole body, giving the same per-call atomicity as
a single SQL statement.
"""

import secrets
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from agilehive.domain.exceptions import DuplicateAccount
from agilehive.domain.ports import Account, PendingVerification, Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryAccountRepository:
    """
    Implements AccountRepository protocol with dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The clock is injectable so tests can move past the retention window.
    """

    def __init__(
        self,
        otp_ttl_seconds: int = 600,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = timedelta(seconds=otp_ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._accounts: dict[str, Account] = {}  # keyed by email
        self._pending: list[PendingVerification] = []

    def get_account_by_email(self, email: str) -> Account | None:
        with self._lock:
            return self._accounts.get(email)

    def get_account_by_id(self, account_id: str) -> Account | None:
        with self._lock:
            for account in self._accounts.values():
                if account.id == account_id:
                    return account
            return None

    def create_account(self, email: str, password_hash: str, role: Role) -> Account:
        with self._lock:
            if email in self._accounts:
                raise DuplicateAccount(email)
            account = Account(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=password_hash,
                role=Role(role),
                created_at=self._clock(),
            )
            self._accounts[email] = account
            return account

    def delete_pending(self, email: str) -> int:
        with self._lock:
            before = len(self._pending)
            self._pending = [p for p in self._pending if p.email != email]
            return before - len(self._pending)

    def save_pending(self, email: str, code: str) -> PendingVerification:
        with self._lock:
            now = self._clock()
            self._pending = [p for p in self._pending if self._is_live(p, now)]
            record = PendingVerification(email=email, code=code, created_at=now)
            self._pending.append(record)
            return record

    def find_pending(self, email: str, code: str) -> PendingVerification | None:
        with self._lock:
            now = self._clock()
            for record in reversed(self._pending):
                if (
                    record.email == email
                    and secrets.compare_digest(record.code.encode(), code.encode())
                    and self._is_live(record, now)
                ):
                    return record
            return None

    def consume_pending(self, email: str, code: str) -> None:
        with self._lock:
            self._pending = [
                p for p in self._pending if not (p.email == email and p.code == code)
            ]

    def has_pending(self, email: str) -> bool:
        with self._lock:
            now = self._clock()
            return any(p.email == email and self._is_live(p, now) for p in self._pending)

    def pending_count(self, email: str) -> int:
        """Number of stored records for the email, expired ones included."""
        with self._lock:
            return sum(1 for p in self._pending if p.email == email)

    def account_count(self) -> int:
        with self._lock:
            return len(self._accounts)

    def ping(self) -> None:
        """Nothing to check for process memory."""

    def _is_live(self, record: PendingVerification, now: datetime) -> bool:
        return now - record.created_at < self._ttl
