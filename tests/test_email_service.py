"""Tests for rendering and sending notification emails."""
import json

import httpx
import pytest

from fitness_challenge_api.config import Settings
from fitness_challenge_api.errors import NotificationDeliveryError
from fitness_challenge_api.models import NotificationEvent, NotificationKind
from fitness_challenge_api.services.email_service import (
    RESEND_API_URL,
    EmailService,
    is_retryable_error,
    render_email,
)


def event(kind=NotificationKind.MILESTONE, streak=14, email="asha@example.com", name="Asha"):
    return NotificationEvent(user_id="u1", user_email=email, user_name=name, kind=kind, streak_value=streak)


@pytest.fixture
def config(monkeypatch) -> Settings:
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    return Settings()


def _service(config, statuses, calls):
    responses = iter(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(next(responses), json={})

    return EmailService(
        config=config,
        transport=httpx.MockTransport(handler),
        min_wait_seconds=0,
        max_wait_seconds=0,
    )


class TestRenderEmail:

    def test_milestone(self):
        subject, body = render_email(event(NotificationKind.MILESTONE, 14))
        assert subject == "🎉 You just completed Day 14!"
        assert "Day 14 of the 45-Day Challenge" in body

    def test_reset(self):
        subject, body = render_email(event(NotificationKind.RESET, 10))
        assert subject == "Your 45-Day Challenge has been Reset"
        assert "after 10 days" in body

    def test_reminder_mentions_next_day(self):
        subject, body = render_email(event(NotificationKind.REMINDER, 5))
        assert subject == "Friendly reminder for your challenge!"
        assert "Day 6" in body

    def test_name_is_escaped(self):
        _, body = render_email(event(name="<script>"))
        assert "<script>" not in body
        assert "&lt;script&gt;" in body

    def test_missing_name(self):
        _, body = render_email(event(name=None))
        assert body.startswith("Hi there,")


class TestRetryable:

    def _status_error(self, status):
        request = httpx.Request("POST", RESEND_API_URL)
        return httpx.HTTPStatusError("err", request=request, response=httpx.Response(status, request=request))

    def test_classification(self):
        assert is_retryable_error(httpx.ConnectTimeout("slow"))
        assert is_retryable_error(self._status_error(429))
        assert is_retryable_error(self._status_error(503))
        assert not is_retryable_error(self._status_error(422))
        assert not is_retryable_error(ValueError("nope"))


class TestSend:

    @pytest.mark.asyncio
    async def test_sends_payload(self, config):
        calls = []
        sent = await _service(config, [200], calls).send(event())

        assert sent is True
        assert len(calls) == 1
        request = calls[0]
        assert str(request.url) == RESEND_API_URL
        assert request.headers["Authorization"] == "Bearer re_test_key"
        payload = json.loads(request.content)
        assert payload["to"] == "asha@example.com"
        assert payload["from"] == config.EMAIL_FROM
        assert payload["subject"] == "🎉 You just completed Day 14!"

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, config):
        calls = []
        sent = await _service(config, [503, 429, 200], calls).send(event())

        assert sent is True
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, config):
        calls = []
        with pytest.raises(NotificationDeliveryError):
            await _service(config, [500, 500, 500], calls).send(event())
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, config):
        calls = []
        with pytest.raises(NotificationDeliveryError):
            await _service(config, [422], calls).send(event())
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_skips_without_address(self, config):
        calls = []
        assert await _service(config, [], calls).send(event(email=None)) is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_skips_without_api_key(self):
        calls = []
        assert await _service(Settings(), [], calls).send(event()) is False
        assert calls == []
