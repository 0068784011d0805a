# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import Principal, get_current_principal, require_admin, get_webhook_service
from storefront.data.database import get_db
from storefront.domain.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidPaymentPayloadError,
    NotFoundError,
    ValidationError,
)
from storefront.domain.schemas import (
    ManualOrderIn,
    ManualOrderOut,
    OrderDetailOut,
    OrderOut,
    OrderStatusIn,
    OrderStatusOut,
    OrderSummaryOut,
)
from storefront.services.order_service import OrderService
from storefront.services.webhook_service import WebhookService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.get("", response_model=List[OrderSummaryOut])
def list_orders(
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All orders with their customer, newest first (admin)."""
    return get_service(db).list_orders()


@router.get("/my-orders", response_model=List[OrderOut])
def my_orders(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return get_service(db).list_user_orders(principal.user_id)


@router.get("/{order_id}", response_model=OrderDetailOut)
def get_order(
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Order header, customer and lines. Owner or admin only.
    """
    svc = get_service(db)
    try:
        return svc.get_order_detail(order_id, principal.user_id, is_admin=principal.is_admin)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=ManualOrderOut, status_code=201)
def create_order(
    payload: ManualOrderIn,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Manual order from the back-office (bank transfer, cash...).
    Same atomic write and stock rule as gateway orders.
    """
    svc = get_service(db)
    try:
        order = svc.create_manual_order(payload)
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ManualOrderOut(message=f"Order {order.id} created", order_id=order.id)


@router.put("/{order_id}/status", response_model=OrderStatusOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        order = svc.update_status(order_id, payload.status)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return OrderStatusOut(message="Order status updated", order=OrderOut.model_validate(order))


@router.post("/webhook/mercadopago")
async def mercadopago_webhook(
    request: Request,
    svc: WebhookService = Depends(get_webhook_service),
):
    """
    Payment notifications from Mercado Pago. Public on purpose: the payment
    is fetched back from the gateway and the order is keyed on the payment id.
    200 = done or nothing to do, 400 = approved payment we cannot map,
    500 = please deliver again.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.info("Webhook body is not JSON, ignoring")
        return JSONResponse(status_code=200, content={"status": "ignored"})

    try:
        outcome = await run_in_threadpool(svc.handle_notification, payload)
    except InvalidPaymentPayloadError as e:
        logger.error(f"Webhook rejected: {e}")
        return JSONResponse(status_code=400, content={"message": str(e)})
    except Exception:
        logger.exception("Webhook processing failed, gateway should retry")
        return JSONResponse(status_code=500, content={"message": "Internal error"})

    return JSONResponse(status_code=200, content={"status": outcome.value})
