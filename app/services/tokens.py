"""Random token generation."""

import secrets
import string

ALPHABET = string.ascii_letters + string.digits

EMAIL_VERIFICATION_TOKEN_LENGTH = 60
LATEST_KEY_LENGTH = 12
PASSWORD_RESET_TOKEN_LENGTH = 64


def random_string(length: int) -> str:
    """Return a cryptographically random alphanumeric string of ``length`` characters."""
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
