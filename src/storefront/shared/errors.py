"""Error taxonomy shared by every storefront operation.

Each exception carries the ``ErrorCode`` reported to callers when it escapes
a service function. Field-level problems inside aggregates keep using
``protean.exceptions.ValidationError``; these cover the application rules.
"""

from enum import Enum


class ErrorCode(Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    SERVER_ERROR = "SERVER_ERROR"


class StorefrontError(Exception):
    code = ErrorCode.SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequest(StorefrontError):
    code = ErrorCode.VALIDATION_ERROR


class InsufficientStock(InvalidRequest):
    """Requested quantity exceeds what is on hand."""

    def __init__(self, product_name: str, available: int):
        self.product_name = product_name
        self.available = available
        super().__init__(f'Product "{product_name}" only has {available} items in stock')


class NotFound(StorefrontError):
    code = ErrorCode.NOT_FOUND


class Unauthorized(StorefrontError):
    code = ErrorCode.UNAUTHORIZED


class Forbidden(StorefrontError):
    code = ErrorCode.FORBIDDEN


class Conflict(StorefrontError):
    code = ErrorCode.CONFLICT
