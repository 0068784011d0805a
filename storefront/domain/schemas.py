# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal, Any
from decimal import Decimal
from datetime import datetime

OrderStatus = Literal["pending", "paid", "shipped", "cancelled"]


class CamelModel(BaseModel):
    """Accepts both camelCase (wire) and snake_case field names."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# --- checkout ---

class CartItemIn(CamelModel):
    product_id: int = Field(..., alias="productId", gt=0)
    quantity: int = Field(..., gt=0)


class CheckoutIn(CamelModel):
    items: List[CartItemIn] = Field(default_factory=list)


class CheckoutOut(CamelModel):
    init_point: str = Field(..., alias="initPoint")


# --- orders ---

class OrderLineIn(CamelModel):
    product_id: int = Field(..., alias="productId", gt=0)
    quantity: int = Field(..., gt=0)
    price_at_purchase: Decimal = Field(..., alias="priceAtPurchase", gt=0, decimal_places=2)


class ManualOrderIn(CamelModel):
    """Schema for an order created by hand in the back-office."""

    user_id: int = Field(..., alias="userId", gt=0)
    status: OrderStatus
    total_amount: Decimal = Field(..., alias="totalAmount", gt=0, decimal_places=2)
    payment_gateway_id: str | None = Field(None, alias="paymentGatewayId", min_length=1)
    items: List[OrderLineIn] = Field(..., min_length=1)


class ManualOrderOut(CamelModel):
    message: str
    order_id: int = Field(..., alias="orderId")


class OrderStatusIn(BaseModel):
    status: OrderStatus


class OrderOut(CamelModel):
    id: int
    user_id: int = Field(..., alias="userId")
    total_amount: Decimal = Field(..., alias="totalAmount")
    status: str
    payment_gateway_id: str | None = Field(None, alias="paymentGatewayId")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")


class OrderSummaryOut(OrderOut):
    """Admin listing row, order joined with its customer."""

    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    email: str | None = None


class OrderLineOut(CamelModel):
    product_id: int = Field(..., alias="productId")
    product_name: str | None = Field(None, alias="productName")
    cover_image_url: str | None = Field(None, alias="coverImageUrl")
    quantity: int
    price_at_purchase: Decimal = Field(..., alias="priceAtPurchase")


class OrderDetailOut(OrderSummaryOut):
    items: List[OrderLineOut]


class OrderStatusOut(CamelModel):
    message: str
    order: OrderOut


# --- catalog ---

class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class CategoryOut(CamelModel):
    id: int
    name: str
    description: str | None = None


class ProductIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    price: Decimal = Field(..., gt=0, decimal_places=2)
    stock: int = Field(..., ge=0)
    category_id: int | None = Field(None, alias="categoryId", gt=0)
    cover_image_url: str | None = Field(None, alias="coverImageUrl")
    specs: dict[str, Any] | None = None


class ProductOut(CamelModel):
    id: int
    name: str
    description: str | None = None
    price: Decimal
    stock: int
    category_id: int | None = Field(None, alias="categoryId")
    category_name: str | None = Field(None, alias="categoryName")
    is_active: bool = Field(..., alias="isActive")
    cover_image_url: str | None = Field(None, alias="coverImageUrl")
    specs: dict[str, Any] | None = None
    created_at: datetime | None = Field(None, alias="createdAt")


class MessageOut(BaseModel):
    message: str


# --- users ---

class UserCreate(CamelModel):
    """Provisioning of a user record; credentials live with the identity provider."""

    id: int | None = Field(None, gt=0)
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=100)
    last_name: str = Field("", alias="lastName", max_length=100)
    email: str | None = Field(None, max_length=200)
    role: Literal["customer", "admin"] = "customer"


class UserRead(CamelModel):
    id: int
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: str | None = None
    role: str
    is_active: bool = Field(True, alias="isActive")
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")


class UserProfileIn(CamelModel):
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=100)


class UserProfileOut(BaseModel):
    message: str
    user: UserRead
