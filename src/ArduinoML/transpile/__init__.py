"""Model, validation and code generation for ArduinoML applications."""

from __future__ import annotations

from .emitter import MalformedModelError, collect_sensors, compile_expr, emit
from .validator import Diagnostic, ValidationError, ensure_valid, validate

__all__ = [
    "Diagnostic",
    "MalformedModelError",
    "ValidationError",
    "collect_sensors",
    "compile_expr",
    "emit",
    "ensure_valid",
    "validate",
]
