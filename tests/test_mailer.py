import asyncio
import json

import httpx
import pytest

from app.config import Settings
from app.domain.schemas.notification import MailMessage
from app.infrastructure.mailer import MailClient, MailDeliveryError

MESSAGE = MailMessage(to=["ana@mail.pt"], subject="Olá", text="Texto", html="<p>Texto</p>")


def _client(handler, **settings):
    config = Settings(
        MAIL_PROVIDER="mailtrap",
        MAILTRAP_API_TOKEN="tok",
        MAILTRAP_INBOX_ID="42",
        SMTP_USER="",
        SMTP_PASS="",
        **settings,
    )
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MailClient(config, http_client=http, max_retries=3, retry_delay=0)


def test_api_payload_and_auth():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    result = asyncio.run(_client(handler).send(MESSAGE))

    assert result["provider"] == "mailtrap"
    assert seen[0].url.path.endswith("/42")
    assert seen[0].headers["Authorization"] == "Bearer tok"
    body = json.loads(seen[0].content)
    assert body["to"] == [{"email": "ana@mail.pt"}]
    assert body["html"] == "<p>Texto</p>"


def test_server_errors_are_retried():
    responses = iter([httpx.Response(503), httpx.Response(500), httpx.Response(200, json={})])
    calls = []

    def handler(request):
        calls.append(request)
        return next(responses)

    asyncio.run(_client(handler).send(MESSAGE))

    assert len(calls) == 3


def test_client_errors_fail_fast():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, json={"errors": ["Unauthorized"]})

    with pytest.raises(MailDeliveryError):
        asyncio.run(_client(handler).send(MESSAGE))
    assert len(calls) == 1


def test_connection_errors_exhaust_retries():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(MailDeliveryError):
        asyncio.run(_client(handler).send(MESSAGE))
    assert len(calls) == 3


def test_missing_credentials_raise():
    client = MailClient(Settings(MAIL_PROVIDER="mailtrap", MAILTRAP_API_TOKEN="", SMTP_USER="", SMTP_PASS=""))

    with pytest.raises(MailDeliveryError):
        asyncio.run(client.send(MESSAGE))


def test_mock_provider_does_not_touch_the_network():
    def handler(request):
        raise AssertionError("network used")

    config = Settings(MAIL_PROVIDER="mock")
    client = MailClient(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert asyncio.run(client.send(MESSAGE))["provider"] == "mock"


def test_retry_count_must_allow_one_attempt():
    with pytest.raises(ValueError):
        MailClient(Settings(MAIL_PROVIDER="mock"), max_retries=0)
