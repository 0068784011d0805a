# storefront/domain/errors.py


class StorefrontError(Exception):
    """Base for errors the API layer turns into client-visible responses."""


class ValidationError(StorefrontError, ValueError):
    pass


class EmptyCartError(ValidationError):
    def __init__(self):
        super().__init__("Cart is empty")


class NotFoundError(StorefrontError, LookupError):
    pass


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class CategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: int):
        self.category_id = category_id
        super().__init__(f"Category {category_id} not found")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class ConflictError(StorefrontError):
    pass


class InsufficientStockError(ConflictError):
    """
    Requested quantity exceeds the stock available for a product.
    Carries enough detail for the client to fix its cart.
    """

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id} ({product_name}): "
            f"available {available}, requested {requested}"
        )

    def to_dict(self) -> dict:
        return {
            "message": "Insufficient stock",
            "productId": self.product_id,
            "productName": self.product_name,
            "available": self.available,
            "requested": self.requested,
        }


class DuplicateCategoryError(ConflictError):
    def __init__(self, name: str):
        super().__init__(f"A category named '{name}' already exists")


class DuplicatePaymentError(ConflictError):
    def __init__(self, payment_gateway_id: str):
        self.payment_gateway_id = payment_gateway_id
        super().__init__(f"An order for payment {payment_gateway_id} already exists")


class ProductInUseError(ConflictError):
    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} is referenced by orders and cannot be deleted")


class InvalidPaymentPayloadError(StorefrontError):
    """Approved payment that cannot be turned into an order (no user, no items)."""


class PaymentGatewayError(StorefrontError):
    """Gateway unreachable, timed out or answered with an unexpected shape."""


class SelfDeactivationError(StorefrontError):
    def __init__(self):
        super().__init__("Admins cannot deactivate their own account")
