"""Domain errors raised by the authentication workflow.

Each error carries the user-facing message and the HTTP status it maps to;
``main.py`` turns them into the standard error envelope.
"""


class AuthError(Exception):
    """Base class for authentication workflow errors."""

    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateUserError(AuthError):
    """A user with the same email or username already exists."""

    status_code = 409
    default_message = "An account with these details already exists"


class InvalidCredentialsError(AuthError):
    """Login failed. The message never says which part was wrong."""

    status_code = 401
    default_message = "Invalid email or password"


class InvalidTokenError(AuthError):
    """Verification or reset token does not exist."""

    status_code = 401
    default_message = "Token is invalid!"


class TokenExpiredError(AuthError):
    """Reset token exists but is older than its lifetime."""

    status_code = 401
    default_message = "Token is expired."


class NotAuthenticatedError(AuthError):
    """Missing, malformed or revoked access token."""

    status_code = 401
    default_message = "Not authenticated"
