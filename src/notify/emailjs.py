"""Assignment notification emails via the EmailJS REST API.

The EmailJS template is expected to use the variables ``to_name``,
``to_email``, ``recipient_name``, ``recipient_wishlist`` and
``recipient_address``.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import httpx

from src.config import EmailConfig
from src.participants.models import Assignment

logger = logging.getLogger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"
REQUEST_TIMEOUT = 10.0

ProgressCallback = Callable[[int, int], None]


class EmailDeliveryError(Exception):
    """Raised when EmailJS rejects or fails to receive a send request."""


@dataclass
class EmailSendReport:
    """Summary of a batch send."""
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


@asynccontextmanager
async def _client_scope(client: Optional[httpx.AsyncClient]) -> AsyncIterator[httpx.AsyncClient]:
    """Use the caller's client as-is, or open and close a new one."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as owned:
        yield owned


def validate_email_config(config: EmailConfig) -> bool:
    """Check that all EmailJS credentials are filled in."""
    return bool(config.service_id and config.template_id and config.public_key)


def build_template_params(assignment: Assignment) -> Dict[str, str]:
    """Template variables for the email sent to the giver."""
    return {
        "to_name": assignment.giver_name,
        "to_email": assignment.giver_email,
        "recipient_name": assignment.recipient_name,
        "recipient_wishlist": assignment.recipient_wishlist or "No wishlist provided",
        "recipient_address": assignment.recipient_address or "No address provided",
    }


async def _send(
    client: httpx.AsyncClient,
    config: EmailConfig,
    template_params: Dict[str, Any],
) -> None:
    payload = {
        "service_id": config.service_id,
        "template_id": config.template_id,
        "user_id": config.public_key,
        "template_params": template_params,
    }
    try:
        response = await client.post(EMAILJS_SEND_URL, json=payload)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise EmailDeliveryError(
            f"EmailJS returned {e.response.status_code}: {e.response.text.strip()}"
        ) from e
    except httpx.RequestError as e:
        raise EmailDeliveryError(f"Request to EmailJS failed: {e}") from e


async def send_assignment_emails(
    assignments: List[Assignment],
    config: EmailConfig,
    on_progress: Optional[ProgressCallback] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> EmailSendReport:
    """Email every giver their recipient.

    A failed send is recorded in the report and does not stop the batch.

    Args:
        assignments: Assignments to notify, one email per giver
        config: EmailJS credentials
        on_progress: Called with (sent, total) after each email
        client: Optional HTTP client to use instead of a new one

    Returns:
        EmailSendReport with success and failure counts
    """
    report = EmailSendReport()
    total = len(assignments)

    async with _client_scope(client) as http:
        for i, assignment in enumerate(assignments):
            try:
                await _send(http, config, build_template_params(assignment))
                report.success += 1
                logger.debug(f"Sent assignment email to {assignment.giver_email}")
            except EmailDeliveryError as e:
                report.failed += 1
                report.errors.append(f"Failed to send to {assignment.giver_name}: {e}")
                logger.warning(f"Failed to send to {assignment.giver_email}: {e}")

            if on_progress:
                on_progress(i + 1, total)

            # Pause between emails to stay under the rate limit
            if i < total - 1 and config.delay_seconds > 0:
                await asyncio.sleep(config.delay_seconds)

    logger.info(f"Assignment emails: {report.success} sent, {report.failed} failed")
    return report


async def send_test_email(
    config: EmailConfig,
    test_email: str,
    test_name: str,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """Send a sample assignment email to check the EmailJS setup.

    Raises:
        EmailDeliveryError: If the email could not be sent
    """
    params = {
        "to_name": test_name,
        "to_email": test_email,
        "recipient_name": "Test Recipient (Santa Claus)",
        "recipient_wishlist": (
            "This is a test wishlist:\n• A new sleigh\n• More cookies\n• Extra milk\n"
            "• Vacation time after Christmas"
        ),
        "recipient_address": "Test Address:\n123 North Pole Lane\nArctic Circle\nH0H 0H0",
    }
    async with _client_scope(client) as http:
        await _send(http, config, params)
