"""
Result envelope and failure types for entity actions.

Actions raise ActionError subclasses internally; the `action` decorator turns
them, pydantic validation errors and anything unexpected into the uniform
{success: false, message[, errors]} payload so nothing escapes to the transport.
"""
import functools
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Something went wrong"


class ActionResult(dict):
    """Plain dict payload plus the HTTP status the transport should use."""

    def __init__(self, *args, status_code: int = 200, **kwargs):
        super().__init__(*args, **kwargs)
        self.status_code = status_code

    @property
    def ok(self) -> bool:
        return bool(self.get("success"))


def success(message: Optional[str] = None, status_code: int = 200, **payload: Any) -> ActionResult:
    result = ActionResult(success=True, status_code=status_code)
    if message:
        result["message"] = message
    result.update(payload)
    return result


def failure(message: str, status_code: int = 400, errors: Optional[Dict[str, str]] = None) -> ActionResult:
    result = ActionResult(success=False, message=message, status_code=status_code)
    if errors:
        result["errors"] = errors
    return result


class ActionError(Exception):
    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_result(self) -> ActionResult:
        return failure(self.message, self.status_code, self.errors)


class Unauthenticated(ActionError):
    status_code = 401


class AccessDenied(ActionError):
    status_code = 403


class NotFound(ActionError):
    status_code = 404


class Conflict(ActionError):
    status_code = 409


class InvalidInput(ActionError):
    status_code = 422


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten pydantic errors to {field: message}, first message per field wins."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        field = ".".join(loc) or "__root__"
        errors.setdefault(field, err.get("msg", "Invalid value"))
    return errors


def action(invalid_message: str = "Invalid data"):
    """Make a function an action boundary that always returns an ActionResult."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> ActionResult:
            try:
                return func(*args, **kwargs)
            except ActionError as exc:
                logger.info("%s rejected: %s", func.__name__, exc.message)
                return exc.to_result()
            except ValidationError as exc:
                return failure(invalid_message, 422, field_errors(exc))
            except Exception:
                logger.exception("%s failed", func.__name__)
                return failure(GENERIC_FAILURE, 500)

        return wrapper

    return decorator
