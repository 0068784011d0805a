from typing import List

from sqlalchemy.orm import Session
from storefront.data.models.user import UserModel
from storefront.domain.errors import UserNotFoundError, ConflictError, SelfDeactivationError
from storefront.repos.user_repo import UserRepo
from storefront.domain.schemas import UserCreate, UserRead, UserProfileIn, UserProfileOut
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    @staticmethod
    def _read(user: UserModel) -> UserRead:
        return UserRead(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def create_user(self, payload: UserCreate) -> UserRead:
        # re-provisioning a known id is a no-op
        if payload.id is not None:
            existing = self.repo.find(payload.id)
            if existing:
                return self._read(existing)

        if payload.email and self.repo.find_by_email(payload.email):
            raise ConflictError("Email already registered")

        user = self.repo.add(
            UserModel(
                id=payload.id,
                first_name=payload.first_name,
                last_name=payload.last_name,
                email=payload.email,
                role=payload.role,
            )
        )
        self.repo.commit()
        logger.info(f"Provisioned user {user.id} ({user.role})")
        return self._read(user)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.find(user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return self._read(user)

    def list_users(self) -> List[UserRead]:
        return [self._read(u) for u in self.repo.list_users()]

    def update_profile(self, user_id: int, payload: UserProfileIn) -> UserProfileOut:
        user = self.repo.find(user_id)
        if not user:
            raise UserNotFoundError(user_id)

        user.first_name = payload.first_name
        user.last_name = payload.last_name
        self.repo.commit()
        return UserProfileOut(message="Profile updated", user=self._read(user))

    def deactivate_user(self, admin_id: int, user_id: int) -> None:
        if admin_id == user_id:
            raise SelfDeactivationError()
        if not self.repo.deactivate(user_id):
            raise UserNotFoundError(user_id)
        self.repo.commit()
        logger.info(f"User {user_id} deactivated by admin {admin_id}")
