"""
Unit tests for completion notifiers.

WHAT: Test the Resend e-mail notifier and its skip conditions
WHY: Notifications must never break the finishing session
HOW: Mock the Resend API with respx
"""

import json

import httpx
import pytest
import respx

from negbot.models.negotiation import GroupRecord
from negbot.services.notifier import RESEND_API_URL, LoggingNotifier, NotificationError, ResendNotifier


GROUP = GroupRecord(id=12, name="Laptops Q4", status="finished")


@pytest.fixture
def resend_settings(test_settings):
    return test_settings.model_copy(update={
        "RESEND_API_KEY": "re_test",
        "NOTIFY_EMAIL": "buyer@example.com",
        "DASHBOARD_URL": "http://dashboard.test",
    })


@pytest.mark.unit
class TestResendNotifier:
    """Test the Resend notifier."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_sends_email_with_dashboard_link(self, resend_settings):
        route = respx.post(RESEND_API_URL).mock(return_value=httpx.Response(200, json={"id": "email-1"}))

        await ResendNotifier(resend_settings, client=httpx.AsyncClient()).notify(GROUP)

        request = route.calls[0].request
        assert request.headers["authorization"] == "Bearer re_test"
        body = json.loads(request.content)
        assert body["to"] == ["buyer@example.com"]
        assert body["subject"] == "Negotiation Complete: Laptops Q4"
        assert "http://dashboard.test/negotiation/12" in body["html"]
        assert "http://dashboard.test/negotiation/12" in body["text"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_rejected_email_raises(self, resend_settings):
        respx.post(RESEND_API_URL).mock(return_value=httpx.Response(422, json={"message": "invalid from"}))
        with pytest.raises(NotificationError) as exc_info:
            await ResendNotifier(resend_settings, client=httpx.AsyncClient()).notify(GROUP)
        assert exc_info.value.details == {"status_code": 422}

    @pytest.mark.asyncio
    @respx.mock
    async def test_unreachable_raises(self, resend_settings):
        respx.post(RESEND_API_URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(NotificationError):
            await ResendNotifier(resend_settings, client=httpx.AsyncClient()).notify(GROUP)

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_skipped_without_api_key(self, test_settings):
        route = respx.post(RESEND_API_URL)
        await ResendNotifier(test_settings, client=httpx.AsyncClient()).notify(GROUP)
        assert not route.called

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_skipped_without_recipient(self, resend_settings):
        route = respx.post(RESEND_API_URL)
        settings = resend_settings.model_copy(update={"NOTIFY_EMAIL": ""})
        await ResendNotifier(settings, client=httpx.AsyncClient()).notify(GROUP)
        assert not route.called


@pytest.mark.unit
@pytest.mark.asyncio
async def test_logging_notifier_logs(caplog):
    with caplog.at_level("INFO"):
        await LoggingNotifier().notify(GROUP)
    assert "Laptops Q4" in caplog.text
