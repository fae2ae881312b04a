# storefront/domain/errors.py
from typing import Sequence


class StorefrontError(Exception):
    """Bazowy wyjatek domeny koszyka i checkoutu."""


# bledy wejscia uzytkownika - obslugiwane lokalnie, nie blokuja reszty
class UserInputError(StorefrontError, ValueError):
    pass


class InvalidCouponError(UserInputError):
    def __init__(self, code: str, reason: str):
        self.code = code
        self.reason = reason
        super().__init__(f"Invalid coupon {code!r}: {reason}")


class InvalidQuantityError(UserInputError):
    def __init__(self, product_id, quantity):
        self.product_id = product_id
        self.quantity = quantity
        super().__init__(f"Invalid quantity {quantity!r} for product {product_id}")


class NotFoundError(StorefrontError, LookupError):
    pass


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class EmptyCartError(StorefrontError, ValueError):
    def __init__(self):
        super().__init__("Cart is empty")


class InsufficientStockError(StorefrontError, RuntimeError):
    def __init__(self, product_id, name: str | None, available: int, requested: int):
        self.product_id = product_id
        self.name = name
        self.available = available
        self.requested = requested
        label = name or f"product {product_id}"
        super().__init__(
            f'Insufficient stock for "{label}". '
            f"Available: {available}, requested: {requested}."
        )


class ConnectivityError(StorefrontError, RuntimeError):
    pass


class PartialCommitError(StorefrontError, RuntimeError):
    """
    Czesc dekrementacji stanu magazynu zapisana, czesc nie.
    Brak transakcji po stronie serwera, wiec nie da sie tego cofnac.
    """

    def __init__(self, committed: Sequence, failed: Sequence):
        self.committed = list(committed)
        self.failed = list(failed)
        super().__init__(
            f"Stock update partially applied: committed={self.committed}, failed={self.failed}"
        )


class CheckoutInProgressError(StorefrontError, RuntimeError):
    def __init__(self):
        super().__init__("Checkout already in progress")


class CartStorageError(StorefrontError, RuntimeError):
    pass
