# storefront/api/routers/categories.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import Principal, require_admin
from storefront.data.database import get_db
from storefront.domain.errors import ConflictError, NotFoundError
from storefront.domain.schemas import CategoryIn, CategoryOut, MessageOut
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/api/categories", tags=["categories"])


def get_service(db: Session):
    return CatalogService(db)


@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return get_service(db).list_categories()


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryIn,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).create_category(payload)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryIn,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).update_category(category_id, payload)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{category_id}", response_model=MessageOut)
def delete_category(
    category_id: int,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        get_service(db).delete_category(category_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return MessageOut(message="Category deleted, its products are now uncategorized")
