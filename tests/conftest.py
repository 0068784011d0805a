import os

# before anything from storefront is imported
os.environ["DATABASE_URL"] = "sqlite://"
TEST_SECRET = "storefront-test-secret-0123456789abcdef"
os.environ["JWT_SECRET"] = TEST_SECRET
os.environ["JWT_ALGORITHM"] = "HS256"

from decimal import Decimal

import jwt
import pytest
from fastapi.testclient import TestClient

from storefront.data.database import Base, engine, SessionLocal
from storefront.data.models import ProductModel, UserModel, CategoryModel
from storefront.domain.errors import PaymentGatewayError
from storefront.main import create_app
from storefront.services.payment_gateway import GatewayPayment, PaymentItem


class FakeGateway:
    def __init__(self):
        self.preferences = []
        self.payments = {}
        self.fetches = []
        self.fail = False

    def create_preference(self, items, back_urls, external_reference, notification_url=None):
        if self.fail:
            raise PaymentGatewayError("gateway down")
        self.preferences.append(
            {
                "items": items,
                "back_urls": back_urls,
                "external_reference": external_reference,
                "notification_url": notification_url,
            }
        )
        return f"https://gateway.test/checkout?pref={len(self.preferences)}"

    def get_payment(self, payment_id):
        self.fetches.append(payment_id)
        if self.fail or payment_id not in self.payments:
            raise PaymentGatewayError(f"cannot fetch {payment_id}")
        return self.payments[payment_id]

    def add_payment(self, payment_id, status="approved", user_id=7, items=None, amount=None):
        items = items if items is not None else [("1", 2, "100.00")]
        self.payments[payment_id] = GatewayPayment(
            id=payment_id,
            status=status,
            transaction_amount=Decimal(amount) if amount is not None else None,
            external_reference=str(user_id) if user_id is not None else None,
            items=[PaymentItem(id=pid, title=f"product {pid}", quantity=q, unit_price=p) for pid, q, p in items],
        )


class FakeLockService:
    def __init__(self):
        self.held = set()
        self.acquired = []

    def acquire_payment_lock(self, payment_id):
        if payment_id in self.held:
            return None
        self.held.add(payment_id)
        self.acquired.append(payment_id)
        return f"token-{payment_id}"

    def release_payment_lock(self, payment_id, token):
        self.held.discard(payment_id)
        return True


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def send_order_confirmation(self, summary):
        self.sent.append(summary)
        return True


def make_token(user_id: int, role: str = "customer") -> str:
    return jwt.encode({"userId": user_id, "role": role}, TEST_SECRET, algorithm="HS256")


def auth(user_id: int, role: str = "customer") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seed(db):
    """
    users: 1 admin, 3 customer without email, 7 customer with email
    products: 1 stock 5 @ 100.00, 2 stock 0 @ 50.00, 3 stock 10 @ 19.99
    """
    category = CategoryModel(name="Keyboards", description="Mechanical keyboards")
    db.add(category)
    db.flush()

    db.add_all(
        [
            UserModel(id=1, first_name="Ada", last_name="Admin", email="admin@shop.test", role="admin"),
            UserModel(id=3, first_name="Bob", last_name="NoMail", email=None, role="customer"),
            UserModel(id=7, first_name="Carla", last_name="Customer", email="carla@shop.test", role="customer"),
            ProductModel(id=1, name="Keyboard", price=Decimal("100.00"), stock=5, category_id=category.id),
            ProductModel(id=2, name="Mouse", price=Decimal("50.00"), stock=0, category_id=category.id),
            ProductModel(id=3, name="Cable", price=Decimal("19.99"), stock=10),
        ]
    )
    db.commit()
    return db


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(db, gateway, lock_service, notifier):
    app = create_app(gateway=gateway, lock_service=lock_service, notification_service=notifier)
    return TestClient(app)


def stock_of(db, product_id: int) -> int:
    db.expire_all()
    return db.get(ProductModel, product_id).stock
