# storefront/api/routers/products.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.api.deps import Principal, require_admin
from storefront.data.database import get_db
from storefront.domain.errors import ConflictError, NotFoundError
from storefront.domain.schemas import MessageOut, ProductIn, ProductOut
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/api/products", tags=["products"])


def get_service(db: Session):
    return CatalogService(db)


@router.get("", response_model=List[ProductOut])
def list_products(db: Session = Depends(get_db)):
    return get_service(db).list_products()


@router.get("/admin/all", response_model=List[ProductOut])
def list_all_products(
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return get_service(db).list_products(include_archived=True)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    try:
        return get_service(db).get_product(product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductIn,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).create_product(payload)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductIn,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).update_product(product_id, payload)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{product_id}", response_model=MessageOut)
def delete_product(
    product_id: int,
    permanent: bool = Query(False),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Archives by default. permanent=true removes the row, only for products
    no order ever referenced.
    """
    svc = get_service(db)
    try:
        if permanent:
            svc.delete_product(product_id)
            return MessageOut(message="Product deleted")
        svc.archive_product(product_id)
        return MessageOut(message="Product archived")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
