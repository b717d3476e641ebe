import json

import httpx
import pytest

from application.dtos.notifications import EmailMessage
from application.services.attribution import build_attribution_order
from domain.common.exceptions import NotificationError
from domain.order.entity import Customer, Order
from infrastructure.external.notifications.resend_client import ResendEmailClient
from infrastructure.external.notifications.utmify_client import UtmifyClient


def _message():
    return EmailMessage(to="maria@example.com", subject="✅ Compra Aprovada - Curso", html="<p>ok</p>", kind="purchase_approved")


def _attribution_order():
    order = Order(
        id=42,
        correlation_id="sellpay_abc_12345678",
        product_id="prod-1",
        plan_id="plan-1",
        customer=Customer(name="Maria Silva", email="maria@example.com", phone="11987654321"),
        amount=9700,
    )
    return build_attribution_order(order, status="paid", product_name="Curso Python", plan_name="Vitalício")


@pytest.mark.asyncio
async def test_resend_posts_email():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_123"})

    client = ResendEmailClient(
        "re_test",
        base_url="https://api.resend.test",
        sender="SellPay <suporte@example.com>",
        transport=httpx.MockTransport(handler),
    )
    message_id = await client.send(_message())
    await client.aclose()

    assert message_id == "email_123"
    assert seen["url"] == "https://api.resend.test/emails"
    assert seen["auth"] == "Bearer re_test"
    assert seen["body"] == {
        "from": "SellPay <suporte@example.com>",
        "to": "maria@example.com",
        "subject": "✅ Compra Aprovada - Curso",
        "html": "<p>ok</p>",
    }


@pytest.mark.asyncio
async def test_resend_failure_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"message": "busy"})

    client = ResendEmailClient("re_test", base_url="https://api.resend.test", transport=httpx.MockTransport(handler))
    with pytest.raises(NotificationError) as exc_info:
        await client.send(_message())

    assert len(calls) == 1
    assert exc_info.value.status_code == 503
    assert exc_info.value.channel == "email"
    assert exc_info.value.message == "busy"


@pytest.mark.asyncio
async def test_resend_without_key():
    client = ResendEmailClient("", transport=httpx.MockTransport(lambda r: httpx.Response(200)))

    with pytest.raises(NotificationError, match="RESEND__API_KEY"):
        await client.send(_message())


@pytest.mark.asyncio
async def test_utmify_posts_payload_with_token():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["token"] = request.headers.get("x-api-token")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"OK": True})

    client = UtmifyClient(
        "utm_token",
        endpoint="https://utmify.test/api-credentials/orders",
        transport=httpx.MockTransport(handler),
    )
    await client.send(_attribution_order())

    assert seen["url"] == "https://utmify.test/api-credentials/orders"
    assert seen["token"] == "utm_token"
    body = seen["body"]
    assert body["orderId"] == "42"
    assert body["status"] == "paid"
    assert body["paymentMethod"] == "pix"
    assert body["commission"]["gatewayFeeInCents"] == 291
    assert body["products"][0]["planName"] == "Vitalício"
    assert "isTest" not in body


@pytest.mark.asyncio
async def test_utmify_retries_transient_errors():
    responses = iter([httpx.Response(502), httpx.Response(429), httpx.Response(200, json={})])
    calls = []

    def handler(request):
        calls.append(request)
        return next(responses)

    client = UtmifyClient(
        "utm_token",
        endpoint="https://utmify.test/orders",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )
    await client.send(_attribution_order())

    assert len(calls) == 3


@pytest.mark.asyncio
async def test_utmify_gives_up_after_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, json={"message": "down"})

    client = UtmifyClient(
        "utm_token",
        endpoint="https://utmify.test/orders",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )
    with pytest.raises(NotificationError) as exc_info:
        await client.send(_attribution_order())

    assert len(calls) == 3
    assert exc_info.value.status_code == 500
    assert exc_info.value.channel == "attribution"


@pytest.mark.asyncio
async def test_utmify_client_error_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, json={"message": "invalid token"})

    client = UtmifyClient("bad", endpoint="https://utmify.test/orders", retry_delay=0, transport=httpx.MockTransport(handler))
    with pytest.raises(NotificationError, match="invalid token"):
        await client.send(_attribution_order())
    assert len(calls) == 1
