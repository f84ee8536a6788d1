from .models import ProductItem, Sale, Purchase, Client, Employee, User
from .errors import ValidationError, NotFoundError, InsufficientStockError, AuthorizationError

__all__ = [
    "ProductItem",
    "Sale",
    "Purchase",
    "Client",
    "Employee",
    "User",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "AuthorizationError",
]
