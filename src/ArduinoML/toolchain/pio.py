from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS: dict[str, set[str]] = {
    "atmelavr": {"uno", "nano", "megaatmega2560"},
    "atmelsam": {"due"},
    "espressif32": {"esp32dev", "esp32doit-devkit-v1"},
}

BOARD_TO_PLATFORM = {
    board: platform
    for platform, boards in SUPPORTED_PLATFORMS.items()
    for board in boards
}


PIO_INI = """[env:{env_name}]
platform = {platform}
board = {board}
framework = arduino
upload_port = {port}
"""


def _sanitize_name(name: str) -> str:
    """Return a PlatformIO-safe identifier derived from ``name``."""

    return re.sub(r"[^A-Za-z0-9_]+", "_", name)


def validate_platform_board(platform: str, board: str) -> None:
    """Ensure the requested PlatformIO ``platform``/``board`` pair is supported."""

    if platform not in SUPPORTED_PLATFORMS:
        supported = ", ".join(sorted(SUPPORTED_PLATFORMS))
        raise ValueError(
            f"Unsupported PlatformIO platform '{platform}'. Supported platforms: {supported}."
        )

    if board not in BOARD_TO_PLATFORM:
        supported = ", ".join(sorted(BOARD_TO_PLATFORM))
        raise ValueError(
            f"Unsupported PlatformIO board '{board}'. Supported boards: {supported}."
        )

    required_platform = BOARD_TO_PLATFORM[board]
    if required_platform != platform:
        raise ValueError(
            f"Board '{board}' requires PlatformIO platform '{required_platform}', not '{platform}'."
        )


def ensure_pio() -> None:
    try:
        subprocess.run(["pio", "--version"], check=True, stdout=subprocess.DEVNULL)
    except Exception as e:
        raise RuntimeError(
            "PlatformIO (pio) not found. Install with: pip install platformio"
        ) from e


def write_project(
    project_dir: Path,
    sketch: str,
    port: str,
    *,
    platform: str = "atmelavr",
    board: str = "uno",
    sketch_name: str = "main",
) -> Path:
    """Lay out a PlatformIO project around ``sketch`` and return the sketch path."""

    validate_platform_board(platform, board)
    project_dir = Path(project_dir)
    (project_dir / "src").mkdir(parents=True, exist_ok=True)
    sketch_path = project_dir / "src" / f"{_sanitize_name(sketch_name)}.ino"
    sketch_path.write_text(sketch, encoding="utf-8")
    ini_contents = PIO_INI.format(
        env_name=_sanitize_name(board),
        platform=platform,
        board=board,
        port=port,
    )
    (project_dir / "platformio.ini").write_text(ini_contents, encoding="utf-8")
    logger.info("wrote PlatformIO project to %s", project_dir)
    return sketch_path


def compile_upload(project_dir: str | Path) -> None:
    project_dir = Path(project_dir)
    # First run triggers toolchain download automatically
    subprocess.run(["pio", "run"], cwd=project_dir, check=True)
    subprocess.run(["pio", "run", "-t", "upload"], cwd=project_dir, check=True)
