"""Translate ArduinoML models into Arduino-flavoured Wiring code."""

from __future__ import annotations

import logging
from typing import Dict, List

from .ast import (
    Action,
    Actuator,
    AndExpr,
    Application,
    ConditionTransition,
    DelayTransition,
    ErrorState,
    Expression,
    NormalState,
    OrExpr,
    ParenExpr,
    Sensor,
    SensorCondition,
    State,
    Transition,
)

logger = logging.getLogger(__name__)

DEBOUNCE_MS = 200
BLINK_MS = 300
PAUSE_MS = 1500

INDENT = "\t"

HEADER = """//Wiring code generated from an ArduinoML model
// Application name: {name}

long debounce = {debounce};
"""
SETUP_START = "void setup() {"
LOOP_START = "void loop() {"
SWITCH_START = INDENT + "switch(currentState) {"
BLOCK_END = "}"


class MalformedModelError(RuntimeError):
    """Raised when the model handed to the emitter breaks an invariant.

    Validation catches user mistakes; this error means the upstream model
    builder produced something that should not exist (a dangling reference
    or a node of an unknown kind).
    """


def _level(depth: int) -> str:
    return INDENT * depth


def _signal(value: bool) -> str:
    """Render a model boolean as an Arduino pin level."""

    return "HIGH" if value else "LOW"


def _resolved(target, owner: str, field_name: str, context: str = ""):
    if target is None:
        where = f" in {context}" if context else ""
        raise MalformedModelError(f"unreachable: {owner}.{field_name} is unresolved{where}")
    return target


def _unknown(kind: str, node: object) -> MalformedModelError:
    return MalformedModelError(f"unreachable: unknown {kind} kind {type(node).__name__!r}")


def _error_macro(state: ErrorState) -> str:
    return f"ERROR_{state.name.upper()}"


def collect_sensors(expr: Expression, *, context: str = "") -> List[Sensor]:
    """Return the sensors referenced by ``expr``, left to right.

    Sensors referenced more than once are returned once per reference;
    callers that emit per-sensor bookkeeping deduplicate themselves.
    """

    if isinstance(expr, (AndExpr, OrExpr)):
        return collect_sensors(expr.left, context=context) + collect_sensors(
            expr.right, context=context
        )
    if isinstance(expr, SensorCondition):
        return [_resolved(expr.sensor, "SensorCondition", "sensor", context)]
    if isinstance(expr, ParenExpr):
        return collect_sensors(expr.expr, context=context)
    raise _unknown("expression", expr)


def _distinct(sensors: List[Sensor]) -> List[Sensor]:
    seen: Dict[str, Sensor] = {}
    for sensor in sensors:
        seen.setdefault(sensor.name, sensor)
    return list(seen.values())


def compile_expr(expr: Expression, *, context: str = "") -> str:
    """Render a guard expression as a parenthesised C++ boolean expression."""

    if isinstance(expr, AndExpr):
        left = compile_expr(expr.left, context=context)
        right = compile_expr(expr.right, context=context)
        return f"({left} && {right})"
    if isinstance(expr, OrExpr):
        left = compile_expr(expr.left, context=context)
        right = compile_expr(expr.right, context=context)
        return f"({left} || {right})"
    if isinstance(expr, SensorCondition):
        sensor = _resolved(expr.sensor, "SensorCondition", "sensor", context)
        return (
            f"(digitalRead({sensor.input_pin}) == {_signal(expr.value)}"
            f" && {sensor.name}BounceGuard)"
        )
    if isinstance(expr, ParenExpr):
        return f"({compile_expr(expr.expr, context=context)})"
    raise _unknown("expression", expr)


def emit_brick(brick: object) -> str:
    """Return the ``pinMode`` line that initialises ``brick`` in ``setup()``."""

    if isinstance(brick, Sensor):
        return f"{INDENT}pinMode({brick.input_pin}, INPUT);  // {brick.name} [Sensor]"
    if isinstance(brick, Actuator):
        return f"{INDENT}pinMode({brick.output_pin}, OUTPUT); // {brick.name} [Actuator]"
    raise _unknown("brick", brick)


def _emit_action(action: Action, state_name: str) -> str:
    actuator = _resolved(action.actuator, "Action", "actuator", f"state {state_name!r}")
    return f"{_level(3)}digitalWrite({actuator.output_pin}, {_signal(action.value)});"


def emit_transition(
    transition: Transition,
    *,
    state_name: str = "",
    leave_case: bool = False,
) -> List[str]:
    """Emit the statements implementing ``transition`` inside a ``case``.

    When ``leave_case`` is set, taking the transition also breaks out of the
    ``switch`` so that transitions declared later in the same state are not
    evaluated during this loop iteration.
    """

    context = f"state {state_name!r}" if state_name else ""
    if isinstance(transition, DelayTransition):
        target = _resolved(transition.next, "DelayTransition", "next", context)
        lines = [
            f"{_level(3)}delay({transition.delay});",
            f"{_level(3)}currentState = {target.name};",
        ]
        if leave_case:
            lines.append(f"{_level(3)}break;")
        return lines

    if isinstance(transition, ConditionTransition):
        target = _resolved(transition.next, "ConditionTransition", "next", context)
        sensors = _distinct(collect_sensors(transition.condition, context=context))
        lines = [f"{_level(3)}// Update bounce guards"]
        for sensor in sensors:
            lines.append(
                f"{_level(3)}{sensor.name}BounceGuard = millis() - "
                f"{sensor.name}LastDebounceTime > debounce;"
            )
        lines.append("")
        lines.append(f"{_level(3)}// Check transition condition")
        lines.append(f"{_level(3)}if ({compile_expr(transition.condition, context=context)}) {{")
        for sensor in sensors:
            lines.append(f"{_level(4)}{sensor.name}LastDebounceTime = millis();")
        lines.append(f"{_level(4)}currentState = {target.name};")
        if leave_case:
            lines.append(f"{_level(4)}break;")
        lines.append(f"{_level(3)}}}")
        return lines

    raise _unknown("transition", transition)


def emit_state(state: State) -> List[str]:
    """Emit one ``case`` branch of the loop's state dispatch."""

    if isinstance(state, NormalState):
        lines = [f"{_level(2)}case {state.name}:"]
        lines.extend(_emit_action(action, state.name) for action in state.actions)
        last = len(state.transitions) - 1
        for idx, transition in enumerate(state.transitions):
            lines.extend(
                emit_transition(transition, state_name=state.name, leave_case=idx < last)
            )
        lines.append(f"{_level(3)}break;")
        return lines

    if isinstance(state, ErrorState):
        # Sink: attached transitions are never emitted.
        return [
            f"{_level(2)}case {state.name}:",
            f"{_level(3)}blinkError({_error_macro(state)});",
            f"{_level(3)}// Error state - no transitions (sink state)",
            f"{_level(3)}break;",
        ]

    raise _unknown("state", state)


def emit_blink_error(blink_ms: int = BLINK_MS, pause_ms: int = PAUSE_MS) -> List[str]:
    """Emit the ``blinkError`` routine used by error states."""

    return [
        "void blinkError(int errorCode) {",
        f"{INDENT}// Blink the error LED 'errorCode' times",
        f"{INDENT}for (int i = 0; i < errorCode; i++) {{",
        f"{_level(2)}digitalWrite(ERROR_LED_PIN, HIGH);",
        f"{_level(2)}delay({blink_ms});",
        f"{_level(2)}digitalWrite(ERROR_LED_PIN, LOW);",
        f"{_level(2)}delay({blink_ms});",
        f"{INDENT}}}",
        f"{INDENT}// Pause between repetitions",
        f"{INDENT}delay({pause_ms});",
        BLOCK_END,
    ]


def _emit_definitions(app: Application, error_states: List[ErrorState]) -> List[str]:
    lines = ["// Pin definitions"]
    if app.error_led is not None:
        lines.append(f"#define ERROR_LED_PIN {app.error_led}")
        lines.append("")
    if error_states:
        lines.append("// Error codes")
        for state in error_states:
            lines.append(f"#define {_error_macro(state)} {state.error_code}")
        lines.append("")
    return lines


def _emit_state_machine(app: Application) -> List[str]:
    initial = _resolved(app.initial, "Application", "initial")
    names = ", ".join(state.name for state in app.states)
    return [
        "// State machine",
        f"enum STATE {{{names}}};",
        f"STATE currentState = {initial.name};",
        "",
    ]


def _emit_bounce_globals(app: Application) -> List[str]:
    lines = ["// Sensor bounce guards"]
    for sensor in app.sensors:
        lines.append(f"bool {sensor.name}BounceGuard = false;")
        lines.append(f"long {sensor.name}LastDebounceTime = 0;")
    lines.append("")
    return lines


def _emit_setup(app: Application) -> List[str]:
    lines = [SETUP_START]
    if app.error_led is not None:
        lines.append(f"{INDENT}// Initialize error LED")
        lines.append(f"{INDENT}pinMode(ERROR_LED_PIN, OUTPUT);")
        lines.append(f"{INDENT}digitalWrite(ERROR_LED_PIN, LOW);")
    lines.append("")
    lines.append(f"{INDENT}// Initialize sensors and actuators")
    lines.extend(emit_brick(brick) for brick in app.bricks)
    lines.append(BLOCK_END)
    return lines


def _emit_loop(app: Application) -> List[str]:
    lines = [LOOP_START, SWITCH_START]
    for state in app.states:
        lines.extend(emit_state(state))
    lines.append(f"{INDENT}}}")
    lines.append(BLOCK_END)
    return lines


def emit(
    app: Application,
    *,
    debounce_ms: int = DEBOUNCE_MS,
    blink_ms: int = BLINK_MS,
    pause_ms: int = PAUSE_MS,
) -> str:
    """Return the Wiring source code for ``app``.

    Parameters
    ----------
    app:
        A reference-resolved model. Run :func:`ArduinoML.transpile.validator.validate`
        first; the emitter does not re-check pins or naming.
    debounce_ms:
        Minimum time between two accepted readings of the same sensor.
    blink_ms, pause_ms:
        Timings of the ``blinkError`` routine, only emitted when the model
        declares at least one error state.
    """

    logger.debug("compiling application %r (%d states)", app.name, len(app.states))
    error_states = app.error_states

    parts: List[str] = [HEADER.format(name=app.name, debounce=debounce_ms)]
    parts.extend(_emit_definitions(app, error_states))
    parts.extend(_emit_state_machine(app))
    parts.extend(_emit_bounce_globals(app))
    parts.extend(_emit_setup(app))
    parts.append("")
    parts.extend(_emit_loop(app))
    parts.append("")
    if error_states:
        parts.extend(emit_blink_error(blink_ms, pause_ms))

    return "\n".join(parts) + "\n"
