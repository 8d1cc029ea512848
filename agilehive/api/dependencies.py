"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting domain services
and infrastructure adapters into routes, and the bearer-token auth gate
that protects routes.
"""

import logging
from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from agilehive.config.settings import get_settings
from agilehive.domain.ports import AccountRepository, EmailSender, Role
from agilehive.domain.registration import RegistrationService
from agilehive.domain.tokens import TokenClaims, TokenError, TokenIssuer

logger = logging.getLogger(__name__)


def get_repository(request: Request) -> AccountRepository:
    """
    Get the account repository from app state.

    The repository is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.repository


def get_email_sender(request: Request) -> EmailSender:
    """Get the configured email sender from app state."""
    return request.app.state.email_sender


def get_token_issuer(request: Request) -> TokenIssuer:
    """Get the session token issuer from app state."""
    return request.app.state.token_issuer


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the repository, email sender and token issuer for the
    domain service.
    """
    settings = get_settings()
    return RegistrationService(
        repository=get_repository(request),
        email_sender=get_email_sender(request),
        token_issuer=get_token_issuer(request),
        otp_length=settings.otp_length,
        otp_ttl_seconds=settings.otp_ttl_seconds,
        bcrypt_cost=settings.bcrypt_cost,
    )


# Bearer security scheme for OpenAPI documentation.
# auto_error is off so a missing header gets our own 401 message.
http_bearer = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    """
    Verify the bearer token and expose its identity and role.

    Fails closed: any problem with the token rejects the request before
    the route body runs.

    Returns:
        Decoded token claims (account id, role, expiry)
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied, no token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return token_issuer.decode(credentials.credentials)
    except TokenError as exc:
        logger.warning("Token verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


def require_roles(*roles: Role) -> Callable[..., TokenClaims]:
    """
    Build a dependency that admits only principals holding one of the roles.

    Usage:
        @router.delete("/projects/{id}", dependencies=[Depends(require_roles(Role.ADMIN))])
    """
    allowed = frozenset(Role(role) for role in roles)

    def dependency(principal: TokenClaims = Depends(get_current_principal)) -> TokenClaims:
        if principal.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied, insufficient permissions.",
            )
        return principal

    return dependency
