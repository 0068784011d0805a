# storefront/repos/product_repo.py
from typing import Iterable, List

from sqlalchemy import select, update, exists
from sqlalchemy.orm import Session, joinedload

from storefront.data.models.product import ProductModel
from storefront.data.models.order_line import OrderLineModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def list_products(self, only_active: bool = True) -> List[ProductModel]:
        stmt = select(ProductModel).options(joinedload(ProductModel.category))
        if only_active:
            stmt = stmt.where(ProductModel.is_active.is_(True))
        stmt = stmt.order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def get_products_by_ids(self, product_ids: Iterable[int]) -> dict[int, ProductModel]:
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(ProductModel).where(ProductModel.id.in_(ids))
        ).scalars().all()
        return {p.id: p for p in rows}

    def lock_products(self, product_ids: Iterable[int]) -> dict[int, ProductModel]:
        """
        SELECT ... FOR UPDATE on the given rows, always in ascending id order
        so two transactions never wait on each other in opposite directions.
        populate_existing refreshes rows already present in the session.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(ProductModel)
            .where(ProductModel.id.in_(ids))
            .order_by(ProductModel.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        return {p.id: p for p in rows}

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        # UPDATE products SET stock = stock - q WHERE id = :id AND stock >= q
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def is_referenced_by_orders(self, product_id: int) -> bool:
        return self.db.execute(
            select(exists().where(OrderLineModel.product_id == product_id))
        ).scalar()

    def add(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def delete(self, product: ProductModel) -> None:
        self.db.delete(product)
        self.db.flush()

    def refresh(self, product: ProductModel) -> None:
        self.db.refresh(product)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def release(self):
        """Ends the current read-only transaction and hands the connection back to the pool."""
        self.db.rollback()
