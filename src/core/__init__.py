"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- Request tracing middleware
- Coercion helpers for store rows
"""

from core.logging import configure_logging, get_logger, LoggerMixin
from core.utils import (
    blank_to_none,
    coerce_optional_float,
    coerce_optional_int,
    number_text,
    parse_timestamp,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "LoggerMixin",
    "blank_to_none",
    "coerce_optional_float",
    "coerce_optional_int",
    "number_text",
    "parse_timestamp",
]
