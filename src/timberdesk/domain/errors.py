class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class InsufficientStockError(AppError):
    def __init__(self, item_name: str, available_bundles: float):
        self.item_name = item_name
        self.available_bundles = float(available_bundles)
        super().__init__(f"Not enough stock for {item_name}. Available: {self.available_bundles:.2f} bundles")


class AuthorizationError(AppError):
    pass
