"""PlatformIO integration for generated sketches."""

from __future__ import annotations

from .pio import compile_upload, ensure_pio, validate_platform_board, write_project

__all__ = ["compile_upload", "ensure_pio", "validate_platform_board", "write_project"]
