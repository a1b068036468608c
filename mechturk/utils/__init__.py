"""Utility functions for mechturk."""

from mechturk.utils.exceptions import (
    MechTurkError,
    NotFoundError,
    TypedValueError,
    HandlerError,
    ErrorCategory,
    classify_exception,
    sanitize_error_message,
)
from mechturk.utils.parameters import (
    PARAMETER_MAPPINGS,
    normalize_parameters,
    convert_camel_to_snake_case,
)

__all__ = [
    "MechTurkError",
    "NotFoundError",
    "TypedValueError",
    "HandlerError",
    "ErrorCategory",
    "classify_exception",
    "sanitize_error_message",
    "PARAMETER_MAPPINGS",
    "normalize_parameters",
    "convert_camel_to_snake_case",
]
