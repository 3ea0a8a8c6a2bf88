"""
Error taxonomy shared by the session, catalog and order layers.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable failure reasons."""

    EMPTY = "empty"
    HASH_MISMATCH = "hash_mismatch"
    AUTH_INVALID = "auth_invalid"
    PARSE_ERROR = "parse_error"
    EMPTY_CART = "empty_cart"
    PRODUCT_NOT_FOUND = "product_not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    CONFIG_MISSING = "config_missing"


class StorefrontError(Exception):
    """Base exception carrying an ErrorKind and a client-facing message."""

    kind: ErrorKind = ErrorKind.PARSE_ERROR

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class AuthInvalidError(StorefrontError):
    """Raised when initData is missing or its signature does not match."""

    kind = ErrorKind.AUTH_INVALID


class SessionParseError(StorefrontError):
    """Raised when the embedded user JSON cannot be parsed."""

    kind = ErrorKind.PARSE_ERROR


class EmptyCartError(StorefrontError):
    kind = ErrorKind.EMPTY_CART

    def __init__(self):
        super().__init__("Пустая корзина")


class ProductNotFoundError(StorefrontError):
    kind = ErrorKind.PRODUCT_NOT_FOUND

    def __init__(self, product_id):
        super().__init__(f"Товар не найден: {product_id}")
        self.product_id = product_id


class UpstreamUnavailableError(StorefrontError):
    """Raised when the iiko API cannot be reached or rejects a call."""

    kind = ErrorKind.UPSTREAM_UNAVAILABLE


class ConfigMissingError(UpstreamUnavailableError):
    """Raised when iiko credentials are not configured (offline mode)."""

    kind = ErrorKind.CONFIG_MISSING
