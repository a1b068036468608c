"""
Exception hierarchy and error handling utilities for mechturk.

Provides:
- Custom exception classes with error codes
- Error categorization (validation, not found, transport, protocol)
- Safe error message formatting (no sensitive data leak)
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    RECOVERABLE = "recoverable"
    FATAL = "fatal"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"


class MechTurkError(Exception):
    """Base exception for all mechturk errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class NotFoundError(MechTurkError):
    """Resource not found error."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            code="NOT_FOUND",
            category=ErrorCategory.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class TypedValueError(MechTurkError):
    """A typed wire value carried fields its registered type cannot accept."""

    def __init__(self, type_name: str, message: str):
        super().__init__(
            f"Invalid {type_name} value: {message}",
            code="TYPED_VALUE_ERROR",
            category=ErrorCategory.VALIDATION,
            details={"type_name": type_name},
        )


class HandlerError(MechTurkError):
    """Semantic failure raised by a target operation handler (e.g. node not found)."""

    def __init__(self, message: str, *, code: int = -32000, details: dict[str, Any] | None = None):
        super().__init__(message, code="HANDLER_ERROR", category=ErrorCategory.RECOVERABLE, details=details)
        self.rpc_code = code


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9]{32,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: Exception) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    Returns:
        Tuple of (error_code, category, should_retry)
    """
    exc_str = str(exc).lower()

    if isinstance(exc, MechTurkError):
        return exc.code, exc.category, exc.category is ErrorCategory.TRANSPORT

    if isinstance(exc, FileNotFoundError):
        return "FILE_NOT_FOUND", ErrorCategory.NOT_FOUND, False

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, ConnectionError):
        return "CONNECTION_ERROR", ErrorCategory.TRANSPORT, True

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.PROTOCOL, False

    if isinstance(exc, ValueError):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    if isinstance(exc, KeyError):
        return "MISSING_KEY", ErrorCategory.VALIDATION, False

    if isinstance(exc, TypeError):
        return "TYPE_ERROR", ErrorCategory.VALIDATION, False

    if "timeout" in exc_str or "timed out" in exc_str:
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if "not found" in exc_str:
        return "NOT_FOUND", ErrorCategory.NOT_FOUND, False

    if "connection" in exc_str or "network" in exc_str:
        return "CONNECTION_ERROR", ErrorCategory.TRANSPORT, True

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
