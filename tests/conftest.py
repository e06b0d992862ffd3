"""Shared pytest fixtures and helpers."""

import re

import pytest

from ArduinoML.transpile.ast import (
    Action,
    Actuator,
    AndExpr,
    Application,
    ConditionTransition,
    DelayTransition,
    ErrorState,
    NormalState,
    Sensor,
    SensorCondition,
)


def normalize_ws(text: str) -> str:
    """Collapse runs of whitespace for resilient textual comparisons."""

    lines = [re.sub(r"\s+", " ", ln).strip() for ln in text.strip().splitlines()]
    return "\n".join(line for line in lines if line)


@pytest.fixture
def norm():
    """Return a helper that normalises whitespace in generated code."""

    return normalize_ws


@pytest.fixture
def blink_app() -> Application:
    led = Actuator("led", 13)
    on = NormalState("on", [Action(led, True)])
    off = NormalState("off", [Action(led, False)])
    on.transitions.append(DelayTransition(1000, off))
    off.transitions.append(DelayTransition(1000, on))
    return Application(name="blink", bricks=[led], states=[on, off], initial=on)


@pytest.fixture
def alarm_app() -> Application:
    """Two buttons, a buzzer and an error state reached when both are pressed."""

    button = Sensor("button", 9)
    panic = Sensor("panic", 10)
    buzzer = Actuator("buzzer", 11)
    idle = NormalState("idle", [Action(buzzer, False)])
    ringing = NormalState("ringing", [Action(buzzer, True)])
    failure = ErrorState("failure", 3)
    idle.transitions.append(ConditionTransition(SensorCondition(button, True), ringing))
    ringing.transitions.append(
        ConditionTransition(
            AndExpr(SensorCondition(button, True), SensorCondition(panic, True)),
            failure,
        )
    )
    ringing.transitions.append(ConditionTransition(SensorCondition(button, False), idle))
    return Application(
        name="Alarm",
        bricks=[button, panic, buzzer],
        states=[idle, ringing, failure],
        initial=idle,
        error_led=12,
    )
