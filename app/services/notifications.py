"""Fire-and-forget user notifications.

Messages are queued on FastAPI ``BackgroundTasks`` so they run after the
response is sent. Delivery failures are logged and never reach the caller.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlencode

from fastapi import BackgroundTasks

from app.config import get_settings
from app.models.user import User
from app.services.mail import EmailDeliveryError, build_message, send_email

logger = logging.getLogger("keystone")

WELCOME_SUBJECT = "Welcome New User"
PASSWORD_RESET_SUBJECT = "Reset Your Password"


@dataclass(frozen=True)
class Recipient:
    """Detached copy of the user fields a message needs."""

    email: str
    first_name: str
    last_name: str
    username: str

    @classmethod
    def from_user(cls, user: User) -> "Recipient":
        return cls(email=user.email, first_name=user.first_name, last_name=user.last_name, username=user.username)


@dataclass(frozen=True)
class WelcomeEvent:
    user: Recipient
    verification_token: str


@dataclass(frozen=True)
class PasswordResetEvent:
    user: Recipient
    token: str


def frontend_link(path: str, **params: str) -> str:
    base_url = get_settings().FRONTEND_URL.rstrip("/")
    return f"{base_url}/{path.lstrip('/')}?{urlencode(params)}"


def send_welcome_email(event: WelcomeEvent) -> None:
    message = build_message(
        event.user.email,
        WELCOME_SUBJECT,
        "welcome_new_user",
        {
            "user": event.user,
            "verification_link": frontend_link("verify-email", token=event.verification_token),
        },
    )
    _deliver(message)


def send_password_reset_email(event: PasswordResetEvent) -> None:
    message = build_message(
        event.user.email,
        PASSWORD_RESET_SUBJECT,
        "password_reset",
        {
            "user": event.user,
            "reset_link": frontend_link("reset-password", token=event.token),
            "token": event.token,
            "expire_minutes": get_settings().PASSWORD_RESET_EXPIRE_MINUTES,
        },
    )
    _deliver(message)


def _deliver(message) -> None:
    try:
        send_email(message)
    except EmailDeliveryError:
        logger.exception("Notification %r to %s was not delivered", message["Subject"], message["To"])


class NotificationDispatcher:
    """Queues notifications to run after the current request."""

    def __init__(self, background_tasks: BackgroundTasks | None = None) -> None:
        self.background_tasks = background_tasks

    def _dispatch(self, handler: Callable, event: object) -> None:
        if self.background_tasks is not None:
            self.background_tasks.add_task(handler, event)
        else:
            handler(event)

    def dispatch_welcome(self, user: User, verification_token: str) -> None:
        self._dispatch(send_welcome_email, WelcomeEvent(Recipient.from_user(user), verification_token))

    def dispatch_password_reset(self, user: User, token: str) -> None:
        self._dispatch(send_password_reset_email, PasswordResetEvent(Recipient.from_user(user), token))
