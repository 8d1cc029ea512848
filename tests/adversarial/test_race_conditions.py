"""
Adversarial tests for concurrent registration.

Verifies that interleaved requests for the same email cannot create
duplicate accounts or leave more than one live code behind:
- Concurrent verifications with the same code create exactly one account
- Losers either log in to the winner's account or get DuplicateAccount
- A code request after a burst of requests leaves exactly one pending record
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from agilehive.adapters.repository.memory import InMemoryAccountRepository
from agilehive.domain.exceptions import DuplicateAccount, InvalidOrExpiredCode
from agilehive.domain.registration import RegistrationService
from agilehive.domain.tokens import TokenIssuer

pytestmark = pytest.mark.adversarial


class TestConcurrentVerification:
    """Simulates a client double-submitting the verification form."""

    def test_concurrent_verifications_create_one_account(
        self, service: RegistrationService, repository: InMemoryAccountRepository,
        sender: Mock, token_issuer: TokenIssuer, read_code,
    ) -> None:
        """Exactly one account, every other attempt resolves cleanly."""
        service.request_code("race@x.com", "secret1")
        code = read_code(sender)
        start = threading.Barrier(5)
        outcomes: list[str] = []
        lock = threading.Lock()

        def attempt() -> None:
            start.wait()
            try:
                result = service.verify_and_create("race@x.com", code, "secret1")
                outcome = "created" if result.created else "logged_in"
                token_issuer.decode(result.token)
            except DuplicateAccount:
                outcome = "duplicate"
            with lock:
                outcomes.append(outcome)

        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(attempt) for _ in range(5)]
            for f in futures:
                f.result()

        assert outcomes.count("created") == 1
        assert len(outcomes) == 5
        assert set(outcomes) <= {"created", "logged_in", "duplicate"}
        assert repository.account_count() == 1

    def test_duplicate_loser_leaves_consistent_state(
        self, repository: InMemoryAccountRepository, sender: Mock,
        token_issuer: TokenIssuer, read_code,
    ) -> None:
        """A creation race lost at the store keeps the winner's account intact."""
        service = RegistrationService(
            repository=repository, email_sender=sender, token_issuer=token_issuer, bcrypt_cost=4
        )
        service.request_code("race@x.com", "secret1")
        code = read_code(sender)

        # Another request creates the account between our lookup and our insert.
        original_create = repository.create_account

        def create_after_rival(email, password_hash, role):
            original_create(email, password_hash, role)
            return original_create(email, password_hash, role)

        repository.create_account = create_after_rival
        with pytest.raises(DuplicateAccount):
            service.verify_and_create("race@x.com", code, "secret1")
        repository.create_account = original_create

        assert repository.account_count() == 1
        # The code was never consumed, so the retry converges.
        retry = service.verify_and_create("race@x.com", code, "secret1")
        assert retry.created is False


class TestConcurrentCodeRequests:
    """Simulates rapid repeated clicks on 'send code'."""

    def test_request_after_burst_leaves_one_code(
        self, service: RegistrationService, repository: InMemoryAccountRepository,
        sender: Mock,
    ) -> None:
        """A burst never blocks; the next request leaves exactly one record."""
        start = threading.Barrier(5)

        def attempt() -> None:
            start.wait()
            service.request_code("burst@x.com", "secret1")

        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(attempt) for _ in range(5)]
            for f in futures:
                f.result()

        # A follow-up request always supersedes whatever the burst left behind.
        service.request_code("burst@x.com", "secret1")
        assert repository.pending_count("burst@x.com") == 1


class TestCodeGuessing:
    """Guessing codes never creates an account."""

    def test_wrong_codes_never_create_account(
        self, service: RegistrationService, repository: InMemoryAccountRepository,
        sender: Mock, read_code,
    ) -> None:
        service.request_code("victim@x.com", "secret1")
        real = read_code(sender)

        for guess in ("000000", "111111", "123456", "999999"):
            if guess == real:
                continue
            with pytest.raises(InvalidOrExpiredCode):
                service.verify_and_create("victim@x.com", guess, "attacker-password")

        assert repository.account_count() == 0
        assert repository.has_pending("victim@x.com") is True
