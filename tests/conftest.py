"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory repository driven by a controllable clock
- A mock email sender and helpers to read the code it was given
- A token issuer and a registration service wired to the above
"""

import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from agilehive.adapters.repository.memory import InMemoryAccountRepository
from agilehive.domain.registration import RegistrationService
from agilehive.domain.tokens import TokenIssuer

TEST_JWT_SECRET = "test-secret-key-for-agilehive-tokens"

# Lowest cost bcrypt accepts; keeps the suite fast.
TEST_BCRYPT_COST = 4

_CODE_IN_BODY = re.compile(r"\b(\d{6})\b")


class FakeClock:
    """Clock whose time only moves when a test advances it."""

    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def sent_code(sender: Mock) -> str:
    """Extract the one-time code from the last message given to a mock sender."""
    body = sender.send.call_args[0][2]
    match = _CODE_IN_BODY.search(body)
    assert match is not None, f"No code found in email body: {body!r}"
    return match.group(1)


@pytest.fixture
def read_code() -> Callable[[Mock], str]:
    """Expose sent_code to test modules."""
    return sent_code


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock shared by the repository under test."""
    return FakeClock()


@pytest.fixture
def repository(clock: FakeClock) -> InMemoryAccountRepository:
    """In-memory repository with the default 10-minute retention window."""
    return InMemoryAccountRepository(otp_ttl_seconds=600, clock=clock)


@pytest.fixture
def sender() -> Mock:
    """Email sender that records messages instead of delivering them."""
    return Mock()


@pytest.fixture
def token_issuer() -> TokenIssuer:
    """Token issuer signing with a fixed test secret."""
    return TokenIssuer(secret=TEST_JWT_SECRET)


@pytest.fixture
def service(
    repository: InMemoryAccountRepository, sender: Mock, token_issuer: TokenIssuer
) -> RegistrationService:
    """Registration service wired to in-memory collaborators."""
    return RegistrationService(
        repository=repository,
        email_sender=sender,
        token_issuer=token_issuer,
        bcrypt_cost=TEST_BCRYPT_COST,
    )
