# storefront/repos/user_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel


class UserRepo:
    """User records only; credentials and sessions belong to the identity provider."""

    def __init__(self, db: Session):
        self.db = db

    def find(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def find_by_email(self, email: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(UserModel.email == email)
        ).scalar_one_or_none()

    def list_users(self) -> List[UserModel]:
        return list(self.db.execute(select(UserModel).order_by(UserModel.id.asc())).scalars().all())

    def add(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.flush()
        return user

    def deactivate(self, user_id: int) -> bool:
        """Flags the row inactive; False when no such user."""
        res = self.db.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        return res.rowcount == 1

    def commit(self):
        self.db.commit()
