from __future__ import annotations

import pathlib
import subprocess

import pytest

import ArduinoML
from ArduinoML.toolchain import pio
from ArduinoML.toolchain.pio import validate_platform_board, write_project
from ArduinoML.transpile.validator import ValidationError


def _read_ini(tmp_path: pathlib.Path) -> str:
    return (tmp_path / "platformio.ini").read_text(encoding="utf-8")


def test_write_project_lays_out_sketch_and_ini(tmp_path) -> None:
    sketch = write_project(
        tmp_path,
        sketch="void setup() {}\nvoid loop() {}\n",
        port="/dev/ttyACM0",
        sketch_name="blink",
    )

    assert sketch == tmp_path / "src" / "blink.ino"
    assert sketch.read_text(encoding="utf-8").startswith("void setup()")
    ini = _read_ini(tmp_path)
    assert "[env:uno]" in ini
    assert "platform = atmelavr" in ini
    assert "upload_port = /dev/ttyACM0" in ini


def test_write_project_sanitizes_names(tmp_path) -> None:
    sketch = write_project(
        tmp_path,
        sketch="",
        port="COM3",
        platform="espressif32",
        board="esp32doit-devkit-v1",
        sketch_name="my app",
    )

    assert sketch.name == "my_app.ino"
    assert "[env:esp32doit_devkit_v1]" in _read_ini(tmp_path)


@pytest.mark.parametrize(
    "platform, board, message",
    [
        ("pic32", "uno", "Unsupported PlatformIO platform"),
        ("atmelavr", "teensy", "Unsupported PlatformIO board"),
        ("atmelavr", "due", "requires PlatformIO platform 'atmelsam'"),
    ],
)
def test_validate_platform_board_rejects_mismatches(platform, board, message) -> None:
    with pytest.raises(ValueError, match=message):
        validate_platform_board(platform, board)


def test_ensure_pio_reports_missing_executable(monkeypatch) -> None:
    def fake_run(*args, **kwargs):
        raise FileNotFoundError("pio")

    monkeypatch.setattr(pio.subprocess, "run", fake_run)

    with pytest.raises(RuntimeError, match="PlatformIO"):
        pio.ensure_pio()


def test_compile_upload_runs_build_then_upload(monkeypatch, tmp_path) -> None:
    calls = []

    def fake_run(cmd, cwd=None, check=False, **kwargs):
        calls.append((cmd, cwd, check))
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(pio.subprocess, "run", fake_run)
    pio.compile_upload(str(tmp_path))

    assert calls == [
        (["pio", "run"], tmp_path, True),
        (["pio", "run", "-t", "upload"], tmp_path, True),
    ]


def test_target_writes_project_without_upload(blink_app, tmp_path) -> None:
    blink_app.name = "Blink"
    code = ArduinoML.target(blink_app, "/dev/ttyUSB0", project_dir=tmp_path)

    assert (tmp_path / "src" / "Blink.ino").read_text(encoding="utf-8") == code
    assert "enum STATE {on, off};" in code


def test_target_uploads_when_requested(blink_app, tmp_path, monkeypatch) -> None:
    uploaded = []
    monkeypatch.setattr(ArduinoML, "ensure_pio", lambda: None)
    monkeypatch.setattr(ArduinoML, "compile_upload", uploaded.append)

    ArduinoML.target(blink_app, "/dev/ttyUSB0", project_dir=tmp_path, upload=True)

    assert uploaded == [tmp_path]


def test_target_refuses_invalid_models(alarm_app, tmp_path) -> None:
    alarm_app.error_led = None

    with pytest.raises(ValidationError):
        ArduinoML.target(alarm_app, "/dev/ttyUSB0", project_dir=tmp_path)

    assert not (tmp_path / "platformio.ini").exists()
