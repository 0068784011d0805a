# storefront/services/payment_gateway.py
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List

import requests
from requests import RequestException

from storefront.domain.errors import PaymentGatewayError
from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    MERCADO_PAGO_ACCESS_TOKEN,
    MERCADO_PAGO_API_URL,
    GATEWAY_TIMEOUT_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PaymentItem:
    """Line item as echoed back by the gateway (values still untyped strings)."""

    id: str | None
    title: str | None
    quantity: object
    unit_price: object


@dataclass
class GatewayPayment:
    id: str
    status: str
    transaction_amount: Decimal | None
    external_reference: str | None
    items: List[PaymentItem] = field(default_factory=list)

    @property
    def approved(self) -> bool:
        return self.status == "approved"


def _to_decimal(value) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class MercadoPagoGateway:
    """
    Thin REST client for Mercado Pago.
    - create_preference: POST /checkout/preferences -> init_point
    - get_payment: GET /v1/payments/{id} -> authoritative payment state
    """

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.access_token = access_token if access_token is not None else MERCADO_PAGO_ACCESS_TOKEN
        self.base_url = (base_url or MERCADO_PAGO_API_URL).rstrip("/")
        self.timeout = timeout or GATEWAY_TIMEOUT_SECONDS
        self.session = requests.Session()

    def _headers(self, idempotency_key: str | None = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    @http_retry()
    def _post(self, path: str, body: dict, idempotency_key: str) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(f"MercadoPago POST {url}")
        resp = self.session.post(
            url,
            json=body,
            headers=self._headers(idempotency_key),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    @http_retry()
    def _get(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(f"MercadoPago GET {url}")
        resp = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def create_preference(
        self,
        items: List[dict],
        back_urls: dict,
        external_reference: str,
        notification_url: str | None = None,
    ) -> str:
        body = {
            "items": items,
            "back_urls": back_urls,
            "auto_return": "approved",
            "external_reference": external_reference,
        }
        if notification_url:
            body["notification_url"] = notification_url

        # same key for every retry attempt, the gateway dedupes on it
        idempotency_key = str(uuid.uuid4())

        try:
            data = self._post("/checkout/preferences", body, idempotency_key)
        except RequestException as e:
            logger.error(f"Preference creation failed: {e}")
            raise PaymentGatewayError("Payment gateway request failed") from e

        init_point = data.get("init_point") if isinstance(data, dict) else None
        if not init_point:
            raise PaymentGatewayError("Payment gateway returned no init_point")
        return init_point

    def get_payment(self, payment_id: str) -> GatewayPayment:
        try:
            data = self._get(f"/v1/payments/{payment_id}")
        except RequestException as e:
            logger.error(f"Fetching payment {payment_id} failed: {e}")
            raise PaymentGatewayError("Payment gateway request failed") from e

        if not isinstance(data, dict) or "status" not in data:
            raise PaymentGatewayError(f"Unexpected payment payload for {payment_id}")

        additional_info = data.get("additional_info") or {}
        raw_items = additional_info.get("items") or []

        items = [
            PaymentItem(
                id=i.get("id"),
                title=i.get("title"),
                quantity=i.get("quantity"),
                unit_price=i.get("unit_price"),
            )
            for i in raw_items
            if isinstance(i, dict)
        ]

        external_reference = data.get("external_reference")

        return GatewayPayment(
            id=str(data.get("id", payment_id)),
            status=data["status"],
            transaction_amount=_to_decimal(data.get("transaction_amount")),
            external_reference=str(external_reference) if external_reference not in (None, "") else None,
            items=items,
        )
