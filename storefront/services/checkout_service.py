# storefront/services/checkout_service.py
from typing import Sequence

from sqlalchemy.orm import Session

from storefront.domain.errors import EmptyCartError, ProductNotFoundError
from storefront.domain.money import to_money
from storefront.domain.schemas import CartItemIn
from storefront.repos.product_repo import ProductRepo
from storefront.services.payment_gateway import MercadoPagoGateway
from storefront.services.stock_service import StockService
from storefront.utils.settings import STORE_CURRENCY, FRONTEND_URL, PAYMENT_NOTIFICATION_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """
    Cart -> gateway preference.
    Prices and names always come from the catalog, never from the client.
    Nothing is written locally; stock is only checked here and decremented
    when the payment comes back approved.
    """

    def __init__(self, db: Session, gateway: MercadoPagoGateway):
        self.repo = ProductRepo(db)
        self.gateway = gateway

    def back_urls(self) -> dict:
        return {
            "success": f"{FRONTEND_URL}/payment-success",
            "failure": f"{FRONTEND_URL}/payment-failure",
            "pending": f"{FRONTEND_URL}/payment-pending",
        }

    def build_items(self, cart: Sequence[CartItemIn]) -> list[dict]:
        """Validates the whole cart, then turns it into gateway line items."""
        if not cart:
            raise EmptyCartError()

        products = self.repo.get_products_by_ids(i.product_id for i in cart)

        #missing or archived products first, before any stock check
        for item in cart:
            product = products.get(item.product_id)
            if product is None or not product.is_active:
                raise ProductNotFoundError(item.product_id)

        StockService.ensure_available(products, ((i.product_id, i.quantity) for i in cart))

        return [
            {
                "id": str(item.product_id),
                "title": products[item.product_id].name,
                "unit_price": float(to_money(products[item.product_id].price)),
                "quantity": item.quantity,
                "currency_id": STORE_CURRENCY,
            }
            for item in cart
        ]

    def create_preference(self, user_id: int, cart: Sequence[CartItemIn]) -> str:
        try:
            items = self.build_items(cart)
        finally:
            # no transaction (and no pooled connection) held while the gateway is called
            self.repo.release()

        logger.info(f"Creating payment preference for user {user_id} with {len(items)} line(s)")

        init_point = self.gateway.create_preference(
            items=items,
            back_urls=self.back_urls(),
            external_reference=str(user_id),
            notification_url=PAYMENT_NOTIFICATION_URL or None,
        )

        logger.info(f"Payment preference created for user {user_id}")
        return init_point
