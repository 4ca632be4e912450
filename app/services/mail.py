"""Rendering and delivery of transactional emails."""

import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import Settings, get_settings

logger = logging.getLogger("keystone")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "mail"

_environment = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    keep_trailing_newline=True,
)


class EmailDeliveryError(Exception):
    """Raised when an email could not be delivered."""


def build_message(
    recipient: str,
    subject: str,
    template: str,
    context: dict[str, Any],
    settings: Settings | None = None,
) -> EmailMessage:
    """Render ``<template>.txt`` and ``<template>.html`` into a multipart message."""
    settings = settings or get_settings()
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.MAIL_FROM
    message["To"] = recipient
    message.set_content(_environment.get_template(f"{template}.txt").render(**context))
    message.add_alternative(_environment.get_template(f"{template}.html").render(**context), subtype="html")
    return message


def send_email(message: EmailMessage, settings: Settings | None = None) -> None:
    """Deliver ``message`` through the configured mail backend."""
    settings = settings or get_settings()

    if settings.MAIL_BACKEND != "smtp":
        body = message.get_body(preferencelist=("plain",))
        logger.info(
            "MAIL to=%s subject=%r\n%s",
            message["To"],
            message["Subject"],
            body.get_content() if body is not None else "",
        )
        return

    try:
        with smtplib.SMTP(host=settings.SMTP_HOST, port=settings.SMTP_PORT) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError(f"Failed to send email to {message['To']}") from exc
