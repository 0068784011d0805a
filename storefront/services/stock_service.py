# storefront/services/stock_service.py
from collections import OrderedDict
from typing import Iterable, Mapping, Tuple

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.errors import InsufficientStockError, ProductNotFoundError
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def merge_quantities(lines: Iterable[Tuple[int, int]]) -> "OrderedDict[int, int]":
    """(product_id, quantity) pairs -> {product_id: total quantity}, first-seen order."""
    merged: "OrderedDict[int, int]" = OrderedDict()
    for product_id, quantity in lines:
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


class StockService:
    """
    Stock checks and decrements.
    - ensure_available: read-only check, used before talking to the gateway
    - reserve: check + decrement inside the caller's transaction
    Never commits, the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepo(db)

    @staticmethod
    def ensure_available(
        products_by_id: Mapping[int, ProductModel],
        lines: Iterable[Tuple[int, int]],
    ) -> None:
        for product_id, quantity in merge_quantities(lines).items():
            product = products_by_id.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            if product.stock < quantity:
                raise InsufficientStockError(
                    product_id=product.id,
                    product_name=product.name,
                    available=product.stock,
                    requested=quantity,
                )

    def try_reserve(self, product_id: int, quantity: int) -> bool:
        """Atomic conditional decrement. False means the row did not have enough stock."""
        return self.repo.decrement_stock(product_id, quantity) == 1

    def reserve(self, lines: Iterable[Tuple[int, int]]) -> None:
        wanted = merge_quantities(lines)

        # row locks first, then the whole check, then the writes
        locked = self.repo.lock_products(wanted.keys())
        self.ensure_available(locked, wanted.items())

        for product_id, quantity in wanted.items():
            if not self.try_reserve(product_id, quantity):
                product = locked[product_id]
                # row changed under us, e.g. no FOR UPDATE on sqlite
                raise InsufficientStockError(
                    product_id=product_id,
                    product_name=product.name,
                    available=product.stock,
                    requested=quantity,
                )
            logger.info(f"Stock of product {product_id} decremented by {quantity}")

        # the UPDATE bypassed the identity map
        for product in locked.values():
            self.db.expire(product, ["stock"])
