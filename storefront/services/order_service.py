# storefront/services/order_service.py
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel, ORDER_STATUSES
from storefront.data.models.order_line import OrderLineModel
from storefront.domain.errors import (
    DuplicatePaymentError,
    OrderNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from storefront.domain.money import to_money, order_total
from storefront.domain.schemas import ManualOrderIn
from storefront.repos.order_repo import OrderRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.stock_service import StockService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderLineData:
    product_id: int
    quantity: int
    price_at_purchase: Decimal


class OrderService:
    """
    Order ledger use cases.
    Commands: materialize (shared by the webhook and the admin path),
    create_manual_order, update_status.
    Queries: list_orders, list_user_orders, get_order_detail.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.user_repo = UserRepo(db)
        self.stock = StockService(db)

    # --- commands ---

    def materialize(
        self,
        user_id: int,
        status: str,
        lines: Sequence[OrderLineData],
        payment_gateway_id: str | None = None,
    ) -> OrderModel:
        """
        One transaction: stock check under row locks, order row, line rows,
        stock decrement. Either everything is committed or nothing is.
        IntegrityError on payment_gateway_id surfaces as DuplicatePaymentError.
        """
        if not lines:
            raise ValidationError("An order needs at least one line")
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status '{status}'")

        total = order_total((l.quantity, l.price_at_purchase) for l in lines)

        try:
            self.stock.reserve((l.product_id, l.quantity) for l in lines)

            order = self.repo.add_order(
                OrderModel(
                    user_id=user_id,
                    status=status,
                    total_amount=total,
                    payment_gateway_id=payment_gateway_id,
                )
            )

            for l in lines:
                self.repo.add_line(
                    OrderLineModel(
                        order_id=order.id,
                        product_id=l.product_id,
                        quantity=l.quantity,
                        price_at_purchase=to_money(l.price_at_purchase),
                    )
                )

            self.repo.commit()

        except IntegrityError as e:
            self.repo.rollback()
            if payment_gateway_id and self._is_payment_conflict(payment_gateway_id):
                raise DuplicatePaymentError(payment_gateway_id) from e
            logger.error(f"Order transaction for user {user_id} failed, rolled back: {e}")
            raise
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Order transaction for user {user_id} failed, rolled back: {e}")
            raise

        logger.info(
            f"Order {order.id} created for user {user_id} "
            f"(status={status}, total={total}, payment={payment_gateway_id})"
        )
        return order

    def _is_payment_conflict(self, payment_gateway_id: str) -> bool:
        return self.repo.get_by_payment_gateway_id(payment_gateway_id) is not None

    def create_manual_order(self, payload: ManualOrderIn) -> OrderModel:
        """
        Back-office order. Trusted input after schema validation, but the
        total has to match the lines and the stock rule is the same as for
        gateway orders.
        """
        if not self.user_repo.find(payload.user_id):
            raise UserNotFoundError(payload.user_id)

        lines = [
            OrderLineData(
                product_id=i.product_id,
                quantity=i.quantity,
                price_at_purchase=to_money(i.price_at_purchase),
            )
            for i in payload.items
        ]

        computed = order_total((l.quantity, l.price_at_purchase) for l in lines)
        if to_money(payload.total_amount) != computed:
            raise ValidationError(
                f"totalAmount {to_money(payload.total_amount)} does not match the sum of the lines ({computed})"
            )

        if payload.payment_gateway_id and self.repo.get_by_payment_gateway_id(payload.payment_gateway_id):
            raise DuplicatePaymentError(payload.payment_gateway_id)

        return self.materialize(
            user_id=payload.user_id,
            status=payload.status,
            lines=lines,
            payment_gateway_id=payload.payment_gateway_id,
        )

    def update_status(self, order_id: int, status: str) -> OrderModel:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status '{status}'")

        order = self.repo.update_order_status(order_id, status)
        if not order:
            raise OrderNotFoundError(order_id)

        logger.info(f"Order {order_id} status set to {status}")
        return order

    # --- queries ---

    @staticmethod
    def _summary(order: OrderModel) -> dict:
        user = order.user
        return {
            "id": order.id,
            "user_id": order.user_id,
            "total_amount": order.total_amount,
            "status": order.status,
            "payment_gateway_id": order.payment_gateway_id,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
            "first_name": user.first_name if user else None,
            "last_name": user.last_name if user else None,
            "email": user.email if user else None,
        }

    def list_orders(self) -> List[dict]:
        return [self._summary(o) for o in self.repo.list_orders()]

    def list_user_orders(self, user_id: int) -> List[OrderModel]:
        return self.repo.list_orders_for_user(user_id)

    def get_order_detail(self, order_id: int, user_id: int, is_admin: bool = False) -> dict:
        order = self.repo.get_order_with_lines(order_id)

        if not order:
            raise OrderNotFoundError(order_id)

        if not is_admin and order.user_id != user_id:
            raise PermissionError("You do not have access to this order")

        detail = self._summary(order)
        detail["items"] = [
            {
                "product_id": l.product_id,
                "product_name": l.product.name if l.product else None,
                "cover_image_url": l.product.cover_image_url if l.product else None,
                "quantity": l.quantity,
                "price_at_purchase": l.price_at_purchase,
            }
            for l in order.lines
        ]
        return detail
