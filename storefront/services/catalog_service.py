# storefront/services/catalog_service.py
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel
from storefront.domain.errors import (
    CategoryNotFoundError,
    DuplicateCategoryError,
    ProductInUseError,
    ProductNotFoundError,
)
from storefront.domain.schemas import CategoryIn, ProductIn
from storefront.repos.category_repo import CategoryRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogService:
    """Products and categories for the storefront and the back-office."""

    def __init__(self, db: Session):
        self.products = ProductRepo(db)
        self.categories = CategoryRepo(db)

    # --- products: queries ---

    @staticmethod
    def _product_dict(product: ProductModel) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "description": product.description,
            "price": product.price,
            "stock": product.stock,
            "category_id": product.category_id,
            "category_name": product.category.name if product.category else None,
            "is_active": product.is_active,
            "cover_image_url": product.cover_image_url,
            "specs": product.specs,
            "created_at": product.created_at,
        }

    def list_products(self, include_archived: bool = False) -> List[dict]:
        return [self._product_dict(p) for p in self.products.list_products(only_active=not include_archived)]

    def get_product(self, product_id: int) -> dict:
        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFoundError(product_id)
        return self._product_dict(product)

    # --- products: commands ---

    def _check_category(self, category_id: int | None):
        if category_id is not None and not self.categories.get_category(category_id):
            raise CategoryNotFoundError(category_id)

    def create_product(self, payload: ProductIn) -> dict:
        self._check_category(payload.category_id)

        product = self.products.add(
            ProductModel(
                name=payload.name,
                description=payload.description,
                price=payload.price,
                stock=payload.stock,
                category_id=payload.category_id,
                cover_image_url=payload.cover_image_url,
                specs=payload.specs,
                is_active=True,
            )
        )
        self.products.commit()
        self.products.refresh(product)

        logger.info(f"Product {product.id} created")
        return self._product_dict(product)

    def update_product(self, product_id: int, payload: ProductIn) -> dict:
        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFoundError(product_id)

        self._check_category(payload.category_id)

        # existing order lines keep their own price_at_purchase
        product.name = payload.name
        product.description = payload.description
        product.price = payload.price
        product.stock = payload.stock
        product.category_id = payload.category_id
        if payload.cover_image_url is not None:
            product.cover_image_url = payload.cover_image_url
        if payload.specs is not None:
            product.specs = payload.specs

        self.products.commit()
        self.products.refresh(product)

        logger.info(f"Product {product_id} updated")
        return self._product_dict(product)

    def archive_product(self, product_id: int) -> None:
        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFoundError(product_id)

        product.is_active = False
        self.products.commit()
        logger.info(f"Product {product_id} archived")

    def delete_product(self, product_id: int) -> None:
        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFoundError(product_id)

        if self.products.is_referenced_by_orders(product_id):
            raise ProductInUseError(product_id)

        self.products.delete(product)
        self.products.commit()
        logger.info(f"Product {product_id} deleted permanently")

    # --- categories ---

    def list_categories(self) -> List[CategoryModel]:
        return self.categories.list_categories()

    def create_category(self, payload: CategoryIn) -> CategoryModel:
        name = payload.name.strip()
        if self.categories.get_by_name(name):
            raise DuplicateCategoryError(name)

        try:
            category = self.categories.add(CategoryModel(name=name, description=payload.description))
            self.categories.commit()
        except IntegrityError as e:
            self.categories.rollback()
            raise DuplicateCategoryError(name) from e

        logger.info(f"Category {category.id} ({name}) created")
        return category

    def update_category(self, category_id: int, payload: CategoryIn) -> CategoryModel:
        category = self.categories.get_category(category_id)
        if not category:
            raise CategoryNotFoundError(category_id)

        name = payload.name.strip()
        existing = self.categories.get_by_name(name)
        if existing and existing.id != category_id:
            raise DuplicateCategoryError(name)

        category.name = name
        category.description = payload.description
        try:
            self.categories.commit()
        except IntegrityError as e:
            self.categories.rollback()
            raise DuplicateCategoryError(name) from e

        return category

    def delete_category(self, category_id: int) -> None:
        category = self.categories.get_category(category_id)
        if not category:
            raise CategoryNotFoundError(category_id)

        self.categories.delete(category)
        self.categories.commit()
        logger.info(f"Category {category_id} deleted, its products are now uncategorized")
