#import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.user import UserModel
from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel
from storefront.data.models.order import OrderModel, ORDER_STATUSES
from storefront.data.models.order_line import OrderLineModel

__all__ = [
    "UserModel",
    "CategoryModel",
    "ProductModel",
    "OrderModel",
    "OrderLineModel",
    "ORDER_STATUSES",
]
