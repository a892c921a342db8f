"""
Error response models rendered by the default exception handler.
"""

import traceback
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error response model.

    This model represents the structure of error bodies produced by the
    default exception handler. ``exception`` and ``trace`` are only filled
    in debug mode.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Validation Errors",
                "errors": {"email": ["The email field is required."]},
            }
        }
    )

    message: str = Field(
        ...,
        description="Human-readable error message describing what went wrong"
    )

    errors: Optional[Dict[str, List[str]]] = Field(
        None,
        description="Field name to validation messages for that field"
    )

    exception: Optional[str] = Field(
        None,
        description="Exception class name (debug mode only)"
    )

    trace: Optional[List[str]] = Field(
        None,
        description="Formatted traceback lines (debug mode only)"
    )

    def model_dump_json(self, **kwargs):
        """Override to exclude unset optional fields by default."""
        kwargs.setdefault('exclude_none', True)
        return super().model_dump_json(**kwargs)

    def model_dump(self, **kwargs):
        kwargs.setdefault('exclude_none', True)
        return super().model_dump(**kwargs)

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        message: Optional[str] = None,
        debug: bool = False,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an exception.

        Args:
            exc: The exception being rendered
            message: Message to show instead of the exception's own
            debug: Include the exception class and traceback

        Returns:
            ErrorResponse instance
        """
        errors = getattr(exc, "errors", None)
        if not isinstance(errors, dict):
            errors = None

        if message is None:
            message = getattr(exc, "message", None) or str(exc) or type(exc).__name__

        if not debug:
            return cls(message=message, errors=errors)

        return cls(
            message=message,
            errors=errors,
            exception=f"{type(exc).__module__}.{type(exc).__qualname__}",
            trace=[line.rstrip("\n") for line in traceback.format_exception(type(exc), exc, exc.__traceback__)],
        )
