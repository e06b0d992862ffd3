"""Structural checks run over a model before it is emitted."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Set, Tuple

from .ast import (
    Actuator,
    Application,
    DelayTransition,
    ErrorState,
    NormalState,
    Sensor,
)

logger = logging.getLogger(__name__)

WARNING = "warning"
ERROR = "error"


@dataclass
class Diagnostic:
    """One finding reported against the ``attribute`` of ``node``."""

    severity: str
    message: str
    node: object
    attribute: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR

    def __str__(self) -> str:
        kind = type(self.node).__name__
        name = getattr(self.node, "name", None)
        label = f"{kind} {name!r}" if name is not None else kind
        where = f"{label}.{self.attribute}" if self.attribute else label
        return f"{self.severity}: {self.message} ({where})"


class ValidationError(ValueError):
    """Raised by :func:`ensure_valid` when a model has error diagnostics."""

    def __init__(self, diagnostics: List[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        lines = "\n".join(f"  {diag}" for diag in diagnostics)
        super().__init__(f"model has {len(diagnostics)} error(s):\n{lines}")


Accept = Callable[[str, str, object, Optional[str]], None]


def check_app_name(app: Application, accept: Accept) -> None:
    if app.name:
        first = app.name[0]
        if first.upper() != first:
            accept(WARNING, "App name should start with a capital.", app, "name")


def check_error_led_defined(app: Application, accept: Accept) -> None:
    if app.error_states and app.error_led is None:
        accept(
            ERROR,
            "error_led definition is required when error states are defined",
            app,
            "error_led",
        )


def check_duplicate_pins(app: Application, accept: Accept) -> None:
    pins: Set[int] = set()
    if app.error_led is not None:
        pins.add(app.error_led)
    for brick in app.bricks:
        if isinstance(brick, Sensor):
            pin, prop = brick.input_pin, "input_pin"
        elif isinstance(brick, Actuator):
            pin, prop = brick.output_pin, "output_pin"
        else:
            continue
        if pin in pins:
            accept(ERROR, "Pin already used", brick, prop)
        else:
            pins.add(pin)


def check_error_macros(app: Application, accept: Accept) -> None:
    seen: Set[str] = set()
    for state in app.error_states:
        macro = state.name.upper()
        if macro in seen:
            accept(ERROR, "Error state name clashes with another error code", state, "name")
        else:
            seen.add(macro)


def check_initial_state(app: Application, accept: Accept) -> None:
    if not any(state is app.initial for state in app.states):
        accept(ERROR, "Initial state must be one of the application states", app, "initial")


def check_error_state_sinks(app: Application, accept: Accept) -> None:
    for state in app.error_states:
        if state.transitions:
            accept(
                WARNING,
                "Error states are sinks; outgoing transitions are ignored",
                state,
                "transitions",
            )


def check_unreachable_transitions(app: Application, accept: Accept) -> None:
    for state in app.states:
        if not isinstance(state, NormalState):
            continue
        for idx, transition in enumerate(state.transitions[:-1]):
            if isinstance(transition, DelayTransition):
                for shadowed in state.transitions[idx + 1:]:
                    accept(
                        WARNING,
                        "Transition can never fire after a delay transition",
                        shadowed,
                        None,
                    )
                break


CHECKS: Tuple[Callable[[Application, Accept], None], ...] = (
    check_app_name,
    check_error_led_defined,
    check_duplicate_pins,
    check_error_macros,
    check_initial_state,
    check_error_state_sinks,
    check_unreachable_transitions,
)


def validate(app: Application) -> List[Diagnostic]:
    """Run every check over ``app`` and return all diagnostics found."""

    diagnostics: List[Diagnostic] = []

    def accept(severity: str, message: str, node: object, attribute: Optional[str]) -> None:
        diagnostics.append(Diagnostic(severity, message, node, attribute))

    for check in CHECKS:
        check(app, accept)

    logger.debug(
        "validated application %r: %d diagnostic(s)", app.name, len(diagnostics)
    )
    return diagnostics


def ensure_valid(app: Application) -> List[Diagnostic]:
    """Validate ``app`` and raise :class:`ValidationError` on any error.

    Warnings are returned to the caller so they can still be reported.
    """

    diagnostics = validate(app)
    errors = [diag for diag in diagnostics if diag.is_error]
    if errors:
        raise ValidationError(errors)
    for diag in diagnostics:
        logger.warning("%s", diag)
    return diagnostics
