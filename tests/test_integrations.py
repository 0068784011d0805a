from decimal import Decimal

import pytest
import redis
import requests

from storefront.domain.errors import PaymentGatewayError
from storefront.services import notification_service
from storefront.services.notification_service import NotificationService, send_order_confirmation_task
from storefront.services.payment_gateway import MercadoPagoGateway
from storefront.utils.retry import lock_retry


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def mp():
    return MercadoPagoGateway(access_token="TEST-TOKEN", base_url="https://mp.test", timeout=1)


def test_create_preference_posts_cart(mp, monkeypatch):
    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json, headers=headers, timeout=timeout)
        return FakeResponse({"id": "pref-1", "init_point": "https://mp.test/pay/pref-1"})

    monkeypatch.setattr(mp.session, "post", fake_post)

    url = mp.create_preference(
        items=[{"id": "1", "title": "Keyboard", "unit_price": 100.0, "quantity": 2, "currency_id": "ARS"}],
        back_urls={"success": "s", "failure": "f", "pending": "p"},
        external_reference="7",
        notification_url="https://shop.test/api/orders/webhook/mercadopago",
    )

    assert url == "https://mp.test/pay/pref-1"
    assert sent["url"] == "https://mp.test/checkout/preferences"
    assert sent["json"]["external_reference"] == "7"
    assert sent["json"]["auto_return"] == "approved"
    assert sent["json"]["notification_url"].endswith("/webhook/mercadopago")
    assert sent["headers"]["Authorization"] == "Bearer TEST-TOKEN"
    assert sent["headers"]["X-Idempotency-Key"]
    assert sent["timeout"] == 1


def test_create_preference_without_init_point(mp, monkeypatch):
    monkeypatch.setattr(mp.session, "post", lambda *a, **k: FakeResponse({"id": "pref-1"}))

    with pytest.raises(PaymentGatewayError):
        mp.create_preference(items=[], back_urls={}, external_reference="7")


def test_http_error_becomes_gateway_error(mp, monkeypatch):
    monkeypatch.setattr(mp.session, "get", lambda *a, **k: FakeResponse({"message": "nope"}, status_code=401))

    with pytest.raises(PaymentGatewayError):
        mp.get_payment("1")


def test_get_payment_parses_the_authoritative_payload(mp, monkeypatch):
    payload = {
        "id": 123,
        "status": "approved",
        "transaction_amount": 200.0,
        "external_reference": "7",
        "additional_info": {
            "items": [{"id": "1", "title": "Keyboard", "quantity": "2", "unit_price": "100.0"}],
        },
    }
    monkeypatch.setattr(mp.session, "get", lambda *a, **k: FakeResponse(payload))

    payment = mp.get_payment("123")

    assert payment.id == "123"
    assert payment.approved
    assert payment.transaction_amount == Decimal("200.0")
    assert payment.external_reference == "7"
    assert payment.items[0].id == "1"
    assert payment.items[0].quantity == "2"


def test_get_payment_without_status_is_unexpected(mp, monkeypatch):
    monkeypatch.setattr(mp.session, "get", lambda *a, **k: FakeResponse({"id": 1}))

    with pytest.raises(PaymentGatewayError):
        mp.get_payment("1")


def test_notification_is_skipped_without_url():
    assert NotificationService(webhook_url="").send_order_confirmation({"orderId": 1}) is False


def test_broker_failure_is_swallowed(monkeypatch):
    def broken_delay(*args, **kwargs):
        raise ConnectionError("broker down")

    monkeypatch.setattr(send_order_confirmation_task, "delay", broken_delay)

    svc = NotificationService(webhook_url="https://hooks.test/order")
    assert svc.send_order_confirmation({"orderId": 1}) is False


def test_enqueues_when_configured(monkeypatch):
    calls = []
    monkeypatch.setattr(send_order_confirmation_task, "delay", lambda *args: calls.append(args))

    svc = NotificationService(webhook_url="https://hooks.test/order")

    assert svc.send_order_confirmation({"orderId": 9}) is True
    assert calls == [("https://hooks.test/order", {"orderId": 9})]


def test_hook_timeout_is_logged_and_abandoned(monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.Timeout("too slow")

    monkeypatch.setattr(notification_service.requests, "post", timeout)

    result = send_order_confirmation_task.run("https://hooks.test/order", {"orderId": 5})

    assert result == {"order_id": 5, "status": "failed"}


def test_hook_success(monkeypatch):
    posted = {}

    def fake_post(url, json=None, timeout=None):
        posted.update(url=url, json=json)
        return FakeResponse({})

    monkeypatch.setattr(notification_service.requests, "post", fake_post)

    result = send_order_confirmation_task.run("https://hooks.test/order", {"orderId": 5, "email": "a@b.c"})

    assert result == {"order_id": 5, "status": "sent"}
    assert posted["json"]["email"] == "a@b.c"


def test_lock_retry_recovers_from_dropped_connection():
    calls = []

    @lock_retry()
    def acquire():
        calls.append(1)
        if len(calls) < 3:
            raise redis.ConnectionError("connection reset")
        return "token"

    assert acquire() == "token"
    assert len(calls) == 3


def test_lock_retry_does_not_repeat_command_errors():
    calls = []

    @lock_retry()
    def release():
        calls.append(1)
        raise redis.ResponseError("NOSCRIPT")

    with pytest.raises(redis.ResponseError):
        release()
    assert len(calls) == 1
