# storefront/api/deps.py
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.services.checkout_service import CheckoutService
from storefront.services.webhook_service import WebhookService
from storefront.utils.settings import JWT_SECRET, JWT_ALGORITHM

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _invalid_token() -> HTTPException:
    # same answer for every failure, no hints about why
    return HTTPException(
        status_code=401,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise _invalid_token()

    try:
        claims = jwt.decode(credentials.credentials, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        user_id = int(claims["userId"])
        role = claims["role"]
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise _invalid_token()

    if role not in ("customer", "admin"):
        raise _invalid_token()

    return Principal(user_id=user_id, role=role)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return principal


def get_checkout_service(request: Request, db: Session = Depends(get_db)) -> CheckoutService:
    return CheckoutService(db=db, gateway=request.app.state.gateway)


def get_webhook_service(request: Request, db: Session = Depends(get_db)) -> WebhookService:
    return WebhookService(
        db=db,
        gateway=request.app.state.gateway,
        lock_service=request.app.state.lock_service,
        notification_service=request.app.state.notification_service,
    )
