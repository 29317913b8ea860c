"""ActionResult — the envelope every service function returns.

Success carries ``data`` and an optional ``message``; failure carries a
human-readable ``error`` and an ``ErrorCode``. ``with_error_handling`` turns
any exception raised by an operation into a failure result so nothing
escapes the service boundary.
"""

import functools
from typing import Any

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.exceptions import ValidationError as DomainValidationError
from pydantic import BaseModel
from pydantic import ValidationError as InputValidationError

from storefront.config import get_settings
from storefront.shared.errors import ErrorCode, StorefrontError

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An error occurred. Please try again later."


class ActionResult(BaseModel):
    success: bool
    data: Any = None
    message: str | None = None
    error: str | None = None
    code: ErrorCode | None = None


def ok(data: Any = None, message: str | None = None) -> ActionResult:
    return ActionResult(success=True, data=data, message=message)


def fail(error: str, code: ErrorCode = ErrorCode.SERVER_ERROR) -> ActionResult:
    return ActionResult(success=False, error=error, code=code)


def format_domain_errors(exc: DomainValidationError) -> str:
    """Flatten protean's ``{field: [messages]}`` into one readable line."""
    messages = exc.messages if isinstance(exc.messages, dict) else {"": exc.messages}
    parts = []
    for field, errors in messages.items():
        errors = errors if isinstance(errors, (list, tuple)) else [errors]
        for error in errors:
            parts.append(f"{field}: {error}" if field and field != "_entity" else str(error))
    return ", ".join(parts) or "Validation failed"


def format_input_errors(exc: InputValidationError) -> str:
    parts = []
    for error in exc.errors():
        path = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{path}: {error['msg']}" if path else error["msg"])
    return ", ".join(parts) or "Validation failed"


def to_failure(exc: Exception, operation: str) -> ActionResult:
    """Map an exception raised by ``operation`` onto a failure result."""
    if isinstance(exc, StorefrontError):
        logger.info("Operation rejected", operation=operation, code=exc.code.value, reason=exc.message)
        return fail(exc.message, exc.code)
    if isinstance(exc, DomainValidationError):
        message = format_domain_errors(exc)
        logger.info("Operation rejected", operation=operation, code="VALIDATION_ERROR", reason=message)
        return fail(message, ErrorCode.VALIDATION_ERROR)
    if isinstance(exc, InputValidationError):
        return fail(format_input_errors(exc), ErrorCode.VALIDATION_ERROR)
    if isinstance(exc, ObjectNotFoundError):
        return fail("Record not found", ErrorCode.NOT_FOUND)

    logger.exception("Operation failed", operation=operation)
    message = GENERIC_ERROR_MESSAGE if get_settings().is_production else str(exc) or GENERIC_ERROR_MESSAGE
    return fail(message, ErrorCode.SERVER_ERROR)


def with_error_handling(func):
    """Decorate a service function so it always returns an ``ActionResult``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> ActionResult:
        try:
            result = func(*args, **kwargs)
        except Exception as exc:  # noqa: BLE001 - every failure becomes a result
            return to_failure(exc, func.__name__)
        return result if isinstance(result, ActionResult) else ok(result)

    return wrapper
