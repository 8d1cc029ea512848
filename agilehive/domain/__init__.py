"""
Domain layer - Pure business logic with zero web framework imports.

This package contains the core business logic for the AgileHive
registration and login flow. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .exceptions import (
    AccountAlreadyExists,
    DeliveryFailed,
    DuplicateAccount,
    InvalidCredentials,
    InvalidOrExpiredCode,
    RegistrationError,
    StorageError,
)
from .ports import Account, AccountRepository, EmailSender, PendingVerification, Role
from .registration import AuthResult, RegistrationService, RegistrationState
from .tokens import TokenClaims, TokenError, TokenIssuer

__all__ = [
    "Account",
    "AccountAlreadyExists",
    "AccountRepository",
    "AuthResult",
    "DeliveryFailed",
    "DuplicateAccount",
    "EmailSender",
    "InvalidCredentials",
    "InvalidOrExpiredCode",
    "PendingVerification",
    "RegistrationError",
    "RegistrationService",
    "RegistrationState",
    "Role",
    "StorageError",
    "TokenClaims",
    "TokenError",
    "TokenIssuer",
]
