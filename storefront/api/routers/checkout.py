# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import Principal, get_current_principal, get_checkout_service
from storefront.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    PaymentGatewayError,
    ValidationError,
)
from storefront.domain.schemas import CheckoutIn, CheckoutOut
from storefront.services.checkout_service import CheckoutService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


@router.post("/create_preference", response_model=CheckoutOut, status_code=201)
def create_preference(
    payload: CheckoutIn,
    principal: Principal = Depends(get_current_principal),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Validates the cart against the catalog (existence, stock) and returns
    the hosted payment page url.
    """
    try:
        init_point = svc.create_preference(principal.user_id, payload.items)
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PaymentGatewayError:
        logger.exception(f"Checkout for user {principal.user_id} failed at the payment gateway")
        raise HTTPException(status_code=502, detail="Payment provider unavailable, try again later")

    return CheckoutOut(init_point=init_point)
