"""
Auth routes.

Defines REST endpoints for code-based registration, login and the
current-user lookup.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from agilehive.api.dependencies import (
    get_current_principal,
    get_registration_service,
    get_repository,
)
from agilehive.api.models import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RegisterOtpRequest,
    UserOut,
    VerifyOtpRequest,
)
from agilehive.domain.exceptions import (
    AccountAlreadyExists,
    DeliveryFailed,
    DuplicateAccount,
    InvalidCredentials,
    InvalidOrExpiredCode,
    StorageError,
)
from agilehive.domain.ports import AccountRepository
from agilehive.domain.registration import AuthResult, RegistrationService
from agilehive.domain.tokens import TokenClaims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(message: str, result: AuthResult) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=result.token,
        user=UserOut(**result.account.public_fields()),
    )


def _server_error(operation: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Server error during {operation}.",
    )


@router.post(
    "/register-otp-request",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Account already exists"},
        500: {"model": ErrorResponse, "description": "Email delivery or server failure"},
        422: {"description": "Validation error"},
    },
    summary="Request a registration code",
    description="Submit email and password to begin registration. "
    "A 6-digit code valid for 10 minutes is sent to the email address.",
)
def register_otp_request(
    request_data: RegisterOtpRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    """
    Issue a one-time registration code.

    - **email**: Email address to register
    - **password**: Password (minimum 6 characters), resubmitted at verification
    """
    try:
        service.request_code(request_data.email, request_data.password)
    except AccountAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists.",
        ) from None
    except DeliveryFailed:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="OTP generated, but failed to send email. Please request a new code.",
        ) from None
    except StorageError:
        logger.exception("Storage failure during code request")
        raise _server_error("OTP request") from None

    return MessageResponse(
        message="OTP sent to your email. Please verify to complete registration."
    )


@router.post(
    "/verify-otp",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": AuthResponse, "description": "Account already registered, logged in"},
        400: {"model": ErrorResponse, "description": "Invalid or expired code"},
        500: {"model": ErrorResponse, "description": "Server failure"},
        422: {"description": "Validation error"},
    },
    summary="Verify code and create account",
    description="Submit the code received by email together with the password. "
    "Creates the account on first success and returns a session token.",
)
def verify_otp(
    request_data: VerifyOtpRequest,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
) -> AuthResponse:
    """
    Verify a one-time code and create the account.

    Repeating a successful verification returns 200 with a fresh token
    for the same account.
    """
    try:
        result = service.verify_and_create(
            request_data.email, request_data.otp, request_data.password
        )
    except InvalidOrExpiredCode:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired OTP.",
        ) from None
    except DuplicateAccount:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists.",
        ) from None
    except StorageError:
        logger.exception("Storage failure during verification")
        raise _server_error("OTP verification") from None

    if not result.created:
        response.status_code = status.HTTP_200_OK
        return _auth_response("User already registered and verified. Logged in.", result)
    return _auth_response("Registration successful!", result)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid credentials"},
        500: {"model": ErrorResponse, "description": "Server failure"},
        422: {"description": "Validation error"},
    },
    summary="Log in",
    description="Exchange email and password for a session token.",
)
def login(
    request_data: LoginRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> AuthResponse:
    """
    Authenticate and issue a session token.

    Unknown email and wrong password return the same error.
    """
    try:
        result = service.login(request_data.email, request_data.password)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid credentials.",
        ) from None
    except StorageError:
        logger.exception("Storage failure during login")
        raise _server_error("login") from None

    return _auth_response("Logged in successfully!", result)


@router.get(
    "/me",
    response_model=UserOut,
    responses={
        401: {"model": ErrorResponse, "description": "Missing, invalid or expired token"},
        404: {"model": ErrorResponse, "description": "Account no longer exists"},
    },
    summary="Current user",
    description="Return the account behind the presented bearer token.",
)
def me(
    principal: TokenClaims = Depends(get_current_principal),
    repository: AccountRepository = Depends(get_repository),
) -> UserOut:
    """Look up the caller's own account."""
    try:
        account = repository.get_account_by_id(principal.account_id)
    except StorageError:
        logger.exception("Storage failure loading current user")
        raise _server_error("user lookup") from None

    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return UserOut(**account.public_fields())
