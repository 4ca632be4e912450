"""Pydantic schemas for authentication endpoints."""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, StringConstraints

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _within_bcrypt_limit(value: str) -> str:
    # bcrypt only uses the first 72 bytes of a password.
    if len(value.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes")
    return value


Password = Annotated[str, Field(min_length=8, max_length=72), AfterValidator(_within_bcrypt_limit)]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=128)]


class RegisterRequest(BaseModel):
    first_name: Name
    last_name: Name
    email: str = Field(max_length=256, pattern=EMAIL_PATTERN)
    password: Password


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=72)


class VerifyUserRequest(BaseModel):
    token: str = Field(min_length=1, max_length=256)


class ForgotPasswordRequest(BaseModel):
    email: str = Field(max_length=256, pattern=EMAIL_PATTERN)


class TokenRequest(BaseModel):
    token: str = Field(min_length=1, max_length=256)


class SetPasswordRequest(BaseModel):
    token: str = Field(min_length=1, max_length=256)
    password: Password


class TokenData(BaseModel):
    token: str


class UserProfile(BaseModel):
    id: int
    first_name: str
    last_name: str
    username: str
    email: str
    is_verified: bool
