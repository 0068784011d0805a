# storefront/services/webhook_service.py
import enum
from decimal import InvalidOperation
from typing import Any, List

from sqlalchemy.orm import Session

from storefront.domain.errors import (
    DuplicatePaymentError,
    InvalidPaymentPayloadError,
)
from storefront.domain.money import to_money
from storefront.repos.order_repo import OrderRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService, OrderLineData
from storefront.services.payment_gateway import GatewayPayment, MercadoPagoGateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class WebhookOutcome(str, enum.Enum):
    IGNORED = "ignored"
    IN_PROGRESS = "in_progress"
    NOT_APPROVED = "not_approved"
    DUPLICATE = "duplicate"
    CREATED = "created"


def extract_payment_id(payload: Any) -> str | None:
    """`{type: "payment", data: {id}}` -> id, anything else -> None."""
    if not isinstance(payload, dict) or payload.get("type") != "payment":
        return None
    data = payload.get("data")
    if not isinstance(data, dict):
        return None
    payment_id = data.get("id")
    # bool is an int subclass, never a payment id
    if isinstance(payment_id, bool) or not isinstance(payment_id, (str, int)):
        return None
    payment_id = str(payment_id).strip()
    return payment_id or None


def _positive_int(value, what: str) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidPaymentPayloadError(f"Payment item has an invalid {what}: {value!r}")
    if number <= 0:
        raise InvalidPaymentPayloadError(f"Payment item has an invalid {what}: {value!r}")
    return number


class WebhookService:
    """
    Reconciles gateway payment notifications with the order ledger.

    Only the payment id from the notification is used; everything else is
    fetched back from the gateway. Redelivery is safe: an order that already
    carries the payment id short-circuits, and the unique constraint on
    orders.payment_gateway_id catches the race the lookup cannot.
    """

    def __init__(
        self,
        db: Session,
        gateway: MercadoPagoGateway,
        lock_service: LockService,
        notification_service: NotificationService,
    ):
        self.db = db
        self.gateway = gateway
        self.lock_service = lock_service
        self.notification_service = notification_service
        self.order_repo = OrderRepo(db)
        self.user_repo = UserRepo(db)
        self.orders = OrderService(db)

    def handle_notification(self, payload: Any) -> WebhookOutcome:
        payment_id = extract_payment_id(payload)
        if payment_id is None:
            logger.info("Webhook ignored, not a payment notification")
            return WebhookOutcome.IGNORED

        logger.info(f"Webhook received for payment {payment_id}")

        token = self.lock_service.acquire_payment_lock(payment_id)
        if token is None:
            logger.info(f"Payment {payment_id} is already being reconciled by another delivery")
            return WebhookOutcome.IN_PROGRESS

        try:
            return self._reconcile(payment_id)
        finally:
            self.lock_service.release_payment_lock(payment_id, token)

    def _reconcile(self, payment_id: str) -> WebhookOutcome:
        payment = self.gateway.get_payment(payment_id)

        if not payment.approved:
            logger.info(f"Payment {payment_id} has status '{payment.status}', nothing to do")
            return WebhookOutcome.NOT_APPROVED

        user = self._resolve_user(payment)
        lines = self._lines_from_payment(payment)

        if self.order_repo.get_by_payment_gateway_id(payment_id):
            logger.info(f"Payment {payment_id} already has an order, skipping")
            return WebhookOutcome.DUPLICATE

        try:
            order = self.orders.materialize(
                user_id=user.id,
                status="paid",
                lines=lines,
                payment_gateway_id=payment_id,
            )
        except DuplicatePaymentError:
            logger.info(f"Payment {payment_id} was materialized concurrently, skipping")
            return WebhookOutcome.DUPLICATE

        if payment.transaction_amount is not None and to_money(payment.transaction_amount) != order.total_amount:
            logger.warning(
                f"Payment {payment_id} approved amount {payment.transaction_amount} "
                f"differs from order {order.id} total {order.total_amount}"
            )

        logger.info(f"Order {order.id} created from payment {payment_id}")

        if user.email:
            self.notification_service.send_order_confirmation(
                {
                    "email": user.email,
                    "firstName": user.first_name,
                    "orderId": order.id,
                    "totalAmount": str(order.total_amount),
                    "items": [
                        {
                            "productId": l.product_id,
                            "quantity": l.quantity,
                            "priceAtPurchase": str(l.price_at_purchase),
                        }
                        for l in lines
                    ],
                }
            )

        return WebhookOutcome.CREATED

    def _resolve_user(self, payment: GatewayPayment):
        reference = payment.external_reference
        if not reference:
            raise InvalidPaymentPayloadError(f"Payment {payment.id} has no external_reference")

        try:
            user_id = int(reference)
        except ValueError:
            raise InvalidPaymentPayloadError(
                f"Payment {payment.id} external_reference {reference!r} is not a user id"
            )

        user = self.user_repo.find(user_id)
        if not user:
            raise InvalidPaymentPayloadError(f"Payment {payment.id} references unknown user {user_id}")
        return user

    @staticmethod
    def _lines_from_payment(payment: GatewayPayment) -> List[OrderLineData]:
        if not payment.items:
            raise InvalidPaymentPayloadError(f"Payment {payment.id} has no line items")

        lines = []
        for item in payment.items:
            try:
                price = to_money(item.unit_price)
            except (InvalidOperation, TypeError, ValueError):
                raise InvalidPaymentPayloadError(
                    f"Payment {payment.id} item has an invalid unit_price: {item.unit_price!r}"
                )
            if not price.is_finite() or price <= 0:
                raise InvalidPaymentPayloadError(
                    f"Payment {payment.id} item has an invalid unit_price: {item.unit_price!r}"
                )

            lines.append(
                OrderLineData(
                    product_id=_positive_int(item.id, "product id"),
                    quantity=_positive_int(item.quantity, "quantity"),
                    price_at_purchase=price,
                )
            )
        return lines
