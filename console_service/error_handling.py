# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Error handling utilities for consistent exception management.

This module provides:
- Degrade-gracefully wrappers for read-side adapter calls
- Context-aware wrapping of foreign exceptions into AdapterError
- Field validation helpers raising ValidationError
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from .error_mapping import AdapterError, ConsoleError, ValidationError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorHandler:
    """Centralized error handling with consistent patterns."""

    @staticmethod
    async def handle_async_with_fallback(
        operation: Callable[[], Awaitable[T]],
        fallback_value: Any = None,
        log_level: int = logging.WARNING,
        context: str = "",
    ) -> T | Any:
        """Execute async operation with fallback on failure."""
        try:
            return await operation()
        except Exception as e:
            message = f"{context}: {e}" if context else str(e)
            _logger.log(log_level, message)
            return fallback_value


@asynccontextmanager
async def async_error_context(
    context: str = "",
    log_level: int = logging.ERROR,
) -> AsyncIterator[None]:
    """Wrap store and network failures in AdapterError.

    Console errors pass through untouched.
    """
    try:
        yield
    except ConsoleError:
        raise
    except Exception as e:
        message = f"{context}: {e}" if context else str(e)
        _logger.log(log_level, message)
        raise AdapterError(message) from e


def validate_required(value: Any, field_name: str) -> None:
    """Validate that a required field is present and not empty."""
    if value is None:
        raise ValidationError(f"Required field '{field_name}' is missing")
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"Required field '{field_name}' is empty")
    if isinstance(value, (list, dict)) and len(value) == 0:
        raise ValidationError(f"Required field '{field_name}' is empty")


def validate_range(
    value: int | float,
    field_name: str,
    min_val: int | float | None = None,
    max_val: int | float | None = None,
) -> None:
    """Validate that a numeric value is within acceptable range."""
    if min_val is not None and value < min_val:
        raise ValidationError(f"Field '{field_name}' must be >= {min_val}, got {value}")
    if max_val is not None and value > max_val:
        raise ValidationError(f"Field '{field_name}' must be <= {max_val}, got {value}")
