"""EmailJS notification tests.

Requests go through ``httpx.MockTransport``, nothing leaves the machine.
"""

import asyncio
import json

import httpx
import pytest

from src.config import EmailConfig
from src.notify import (
    EmailDeliveryError,
    build_template_params,
    send_assignment_emails,
    send_test_email,
    validate_email_config,
)
from src.notify.emailjs import EMAILJS_SEND_URL
from src.participants.models import Assignment


@pytest.fixture
def config() -> EmailConfig:
    return EmailConfig(service_id="svc", template_id="tpl", public_key="key", delay_seconds=0)


class RecordingTransport:
    """Records request payloads and fails for the given recipient emails."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.payloads = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.payloads.append(payload)
        if payload["template_params"]["to_email"] in self.fail_for:
            return httpx.Response(400, text="The template ID is invalid")
        return httpx.Response(200, text="OK")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def run_send(transport, assignments, config, **kwargs):
    async def go():
        async with transport.client() as client:
            return await send_assignment_emails(assignments, config, client=client, **kwargs)

    return asyncio.run(go())


class TestValidateEmailConfig:

    def test_complete_config(self, config):
        assert validate_email_config(config)

    def test_missing_key(self):
        assert not validate_email_config(EmailConfig(service_id="svc", template_id="tpl"))


class TestBuildTemplateParams:

    def test_uses_recipient_details(self, alice, bob):
        params = build_template_params(Assignment.between(bob, alice))

        assert params == {
            "to_name": "Bob",
            "to_email": "bob@example.com",
            "recipient_name": "Alice",
            "recipient_wishlist": "Books",
            "recipient_address": "1 Main St",
        }

    def test_placeholders_for_missing_details(self, alice, bob):
        params = build_template_params(Assignment.between(alice, bob))

        assert params["recipient_wishlist"] == "No wishlist provided"
        assert params["recipient_address"] == "No address provided"


class TestSendAssignmentEmails:

    def test_sends_one_email_per_assignment(self, config, alice, bob):
        transport = RecordingTransport()
        assignments = [Assignment.between(alice, bob), Assignment.between(bob, alice)]

        report = run_send(transport, assignments, config)

        assert report.success == 2
        assert report.failed == 0
        assert len(transport.payloads) == 2
        assert transport.payloads[0]["service_id"] == "svc"
        assert transport.payloads[0]["template_id"] == "tpl"
        assert transport.payloads[0]["user_id"] == "key"
        assert transport.payloads[1]["template_params"]["recipient_name"] == "Alice"

    def test_failures_do_not_stop_the_batch(self, config, trio):
        alice, bob, carol = trio
        transport = RecordingTransport(fail_for={bob.email})
        assignments = [
            Assignment.between(alice, bob),
            Assignment.between(bob, carol),
            Assignment.between(carol, alice),
        ]

        report = run_send(transport, assignments, config)

        assert report.success == 2
        assert report.failed == 1
        assert len(transport.payloads) == 3
        assert report.errors[0].startswith("Failed to send to Bob:")
        assert "400" in report.errors[0]

    def test_progress_callback(self, config, alice, bob):
        progress = []
        assignments = [Assignment.between(alice, bob), Assignment.between(bob, alice)]

        run_send(
            RecordingTransport(),
            assignments,
            config,
            on_progress=lambda sent, total: progress.append((sent, total)),
        )

        assert progress == [(1, 2), (2, 2)]

    def test_empty_batch(self, config):
        report = run_send(RecordingTransport(), [], config)

        assert (report.success, report.failed, report.errors) == (0, 0, [])


class TestSendTestEmail:

    def test_sends_sample_assignment(self, config):
        transport = RecordingTransport()

        async def go():
            async with transport.client() as client:
                await send_test_email(config, "me@example.com", "Me", client=client)

        asyncio.run(go())

        params = transport.payloads[0]["template_params"]
        assert params["to_email"] == "me@example.com"
        assert params["recipient_name"] == "Test Recipient (Santa Claus)"

    def test_rejection_raises(self, config):
        transport = RecordingTransport(fail_for={"me@example.com"})

        async def go():
            async with transport.client() as client:
                await send_test_email(config, "me@example.com", "Me", client=client)

        with pytest.raises(EmailDeliveryError, match="400"):
            asyncio.run(go())

    def test_network_error_raises(self, config):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
                await send_test_email(config, "me@example.com", "Me", client=client)

        with pytest.raises(EmailDeliveryError, match="Request to EmailJS failed"):
            asyncio.run(go())

    def test_posts_to_emailjs(self, config):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200)

        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                await send_test_email(config, "me@example.com", "Me", client=client)

        asyncio.run(go())

        assert seen == [EMAILJS_SEND_URL]
