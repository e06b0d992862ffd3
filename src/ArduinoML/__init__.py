"""User-facing helpers for the ArduinoML code generator."""

from __future__ import annotations

__all__ = ["AppBuilder", "emit", "group", "is_high", "is_low", "target", "validate"]
__version__ = "0.1.0"

import pathlib
import tempfile
from typing import Optional, Union

from ArduinoML.Builder import AppBuilder, group, is_high, is_low
from ArduinoML.toolchain.pio import compile_upload, ensure_pio, write_project
from ArduinoML.transpile.ast import Application
from ArduinoML.transpile.emitter import emit
from ArduinoML.transpile.validator import ensure_valid, validate


def target(
    app: Application,
    port: str,
    *,
    upload: bool = False,
    project_dir: Optional[Union[str, pathlib.Path]] = None,
    board: str = "uno",
    platform: str = "atmelavr",
) -> str:
    """Validate and compile ``app`` into a PlatformIO project.

    Parameters
    ----------
    app:
        The model to compile. A :class:`~ArduinoML.transpile.validator.ValidationError`
        is raised before anything is written when it has error diagnostics.
    port:
        Serial port that the generated project should target.
    upload:
        When set to ``True`` the helper also triggers ``pio run -t upload``
        after writing the project. Disabled by default so that unit tests can
        exercise the helper without requiring an Arduino board to be connected.
    project_dir:
        Where to write the project; a fresh temporary directory by default.
    """

    ensure_valid(app)
    code = emit(app)

    if project_dir is None:
        project_dir = tempfile.mkdtemp(prefix="arduinoml-pio-")
    project_dir = pathlib.Path(project_dir)
    write_project(
        project_dir,
        code,
        port=port,
        platform=platform,
        board=board,
        sketch_name=app.name,
    )
    if upload:
        ensure_pio()
        compile_upload(project_dir)

    return code
