"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

# bcrypt only uses the first 72 bytes of a password
PASSWORD_MAX_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    return value


class RegisterOtpRequest(BaseModel):
    """Request model for requesting a registration code."""

    email: EmailStr
    password: str = Field(
        ...,
        min_length=6,
        max_length=PASSWORD_MAX_BYTES,
        description="User password (min 6 characters, max 72 bytes)",
    )

    _password_bytes = field_validator("password")(_check_password_bytes)


class VerifyOtpRequest(BaseModel):
    """Request model for verifying a code and creating the account."""

    email: EmailStr
    otp: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^[0-9]{6}$",
        description="6-digit one-time code",
    )
    password: str = Field(
        ...,
        min_length=6,
        max_length=PASSWORD_MAX_BYTES,
        description="Password for the new account",
    )

    _password_bytes = field_validator("password")(_check_password_bytes)


class LoginRequest(BaseModel):
    """Request model for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_BYTES)

    _password_bytes = field_validator("password")(_check_password_bytes)


class MessageResponse(BaseModel):
    """Response model carrying only a human-readable message."""

    message: str


class UserOut(BaseModel):
    """Public account fields."""

    id: str
    email: str
    role: str


class AuthResponse(BaseModel):
    """Response model for verification and login."""

    message: str
    token: str
    user: UserOut


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
