# storefront/repos/category_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel


class CategoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_category(self, category_id: int) -> CategoryModel | None:
        return self.db.get(CategoryModel, category_id)

    def get_by_name(self, name: str) -> CategoryModel | None:
        return self.db.execute(
            select(CategoryModel).where(CategoryModel.name == name)
        ).scalar_one_or_none()

    def list_categories(self) -> List[CategoryModel]:
        return list(
            self.db.execute(select(CategoryModel).order_by(CategoryModel.name.asc())).scalars().all()
        )

    def add(self, category: CategoryModel) -> CategoryModel:
        self.db.add(category)
        self.db.flush()
        return category

    def delete(self, category: CategoryModel) -> None:
        # the FK says SET NULL, but not every backend enforces it (sqlite)
        self.db.execute(
            update(ProductModel)
            .where(ProductModel.category_id == category.id)
            .values(category_id=None)
        )
        self.db.delete(category)
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
