from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from storefront.api.deps import Principal, get_current_principal, require_admin
from storefront.data.database import get_db
from storefront.domain.errors import ConflictError, NotFoundError, SelfDeactivationError
from storefront.services.user_service import UserService
from storefront.domain.schemas import UserCreate, UserRead, UserProfileIn, UserProfileOut, MessageOut

router = APIRouter(prefix="/api/users", tags=["users"])

@router.get("", response_model=List[UserRead])
def list_users(_: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return UserService(db).list_users()

@router.post("", response_model=UserRead, status_code=201)
def create_user(
    payload: UserCreate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    try:
        return service.create_user(payload)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

@router.get("/me", response_model=UserRead)
def get_me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    service = UserService(db)
    try:
        return service.get_user(principal.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.patch("/profile/details", response_model=UserProfileOut)
def update_profile_details(
    payload: UserProfileIn,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    try:
        return service.update_profile(principal.user_id, payload)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, _: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    service = UserService(db)
    try:
        return service.get_user(user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.delete("/{user_id}", response_model=MessageOut)
def deactivate_user(user_id: int, admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    service = UserService(db)
    try:
        service.deactivate_user(admin.user_id, user_id)
    except SelfDeactivationError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return MessageOut(message=f"User {user_id} deactivated")
