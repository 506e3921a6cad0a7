"""Notify module for emailing givers their assignments."""

from src.notify.emailjs import (
    EmailDeliveryError,
    EmailSendReport,
    build_template_params,
    send_assignment_emails,
    send_test_email,
    validate_email_config,
)

__all__ = [
    "EmailDeliveryError",
    "EmailSendReport",
    "build_template_params",
    "send_assignment_emails",
    "send_test_email",
    "validate_email_config",
]
