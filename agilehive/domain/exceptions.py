"""
Domain exceptions - Semantic error types for registration and login.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class AccountAlreadyExists(RegistrationError):
    """A code was requested for an email that already has an account."""

    pass


class InvalidOrExpiredCode(RegistrationError):
    """No live pending verification matches the submitted email and code."""

    pass


class InvalidCredentials(RegistrationError):
    """Unknown email or password mismatch on login."""

    pass


class DeliveryFailed(RegistrationError):
    """The verification email could not be handed to the mail transport."""

    pass


class DuplicateAccount(RegistrationError):
    """The account store rejected creation on its unique email constraint."""

    pass


class StorageError(RegistrationError):
    """Any other persistence failure."""

    pass
