"""Fluent helpers for assembling ArduinoML models by name."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple, Union

from ArduinoML.transpile.ast import (
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
)


class Guard:
    """Unresolved guard expression; combine with ``&``, ``|`` and :func:`group`."""

    def __and__(self, other: "Guard") -> "Guard":
        return _Binary("and", self, other)

    def __or__(self, other: "Guard") -> "Guard":
        return _Binary("or", self, other)


@dataclass
class _Reading(Guard):
    sensor: str
    value: bool


@dataclass
class _Binary(Guard):
    op: str
    left: Guard
    right: Guard


@dataclass
class _Group(Guard):
    inner: Guard


def is_high(sensor: str) -> Guard:
    """Guard holding while ``sensor`` reads ``HIGH``."""

    return _Reading(sensor, True)


def is_low(sensor: str) -> Guard:
    """Guard holding while ``sensor`` reads ``LOW``."""

    return _Reading(sensor, False)


def group(guard: Guard) -> Guard:
    """Parenthesise ``guard`` in the generated condition."""

    return _Group(guard)


class AppBuilder:
    """Collect bricks, states and transitions, then resolve them in :meth:`build`.

    Example
    -------
    >>> app = (
    ...     AppBuilder("Switch")
    ...     .sensor("button", 9)
    ...     .actuator("led", 12)
    ...     .state("off", actions={"led": False}, initial=True)
    ...     .state("on", actions={"led": True})
    ...     .when("off", is_high("button"), "on")
    ...     .when("on", is_high("button"), "off")
    ...     .build()
    ... )
    """

    def __init__(self, name: str, *, error_led: Optional[int] = None) -> None:
        self.name = name
        self.error_led = error_led
        self._bricks: List[Union[Sensor, Actuator]] = []
        self._states: List[Tuple[str, object]] = []
        self._initial: Optional[str] = None
        self._transitions: List[Tuple[str, object, str]] = []

    # Bricks

    def sensor(self, name: str, pin: int) -> "AppBuilder":
        self._bricks.append(Sensor(_brick_name(name), _brick_pin(pin)))
        return self

    def actuator(self, name: str, pin: int) -> "AppBuilder":
        self._bricks.append(Actuator(_brick_name(name), _brick_pin(pin)))
        return self

    # States

    def state(
        self,
        name: str,
        *,
        actions: Optional[Mapping[str, bool]] = None,
        initial: bool = False,
    ) -> "AppBuilder":
        self._states.append((name, dict(actions or {})))
        if initial:
            self._initial = name
        return self

    def error_state(self, name: str, code: int, *, initial: bool = False) -> "AppBuilder":
        if code <= 0:
            raise ValueError("error code must be positive")
        self._states.append((name, code))
        if initial:
            self._initial = name
        return self

    # Transitions

    def after(self, source: str, delay_ms: int, target: str) -> "AppBuilder":
        if delay_ms < 0:
            raise ValueError("delay must be non-negative")
        self._transitions.append((source, delay_ms, target))
        return self

    def when(self, source: str, guard: Guard, target: str) -> "AppBuilder":
        if not isinstance(guard, Guard):
            raise TypeError("guard must be built with is_high()/is_low()")
        self._transitions.append((source, guard, target))
        return self

    def build(self) -> Application:
        """Return the resolved :class:`Application`.

        Raises ``ValueError`` for duplicate names and for references to
        states, sensors or actuators that were never declared.
        """

        sensors: Dict[str, Sensor] = {}
        actuators: Dict[str, Actuator] = {}
        for brick in self._bricks:
            if brick.name in sensors or brick.name in actuators:
                raise ValueError(f"Duplicate brick name: [{brick.name}]")
            if isinstance(brick, Sensor):
                sensors[brick.name] = brick
            else:
                actuators[brick.name] = brick

        states: Dict[str, State] = {}
        for name, payload in self._states:
            if name in states:
                raise ValueError(f"Duplicate state name: [{name}]")
            if isinstance(payload, int):
                states[name] = ErrorState(name, payload)
                continue
            actions = []
            for actuator_name, value in payload.items():
                if actuator_name not in actuators:
                    raise ValueError(f"Unknown actuator: [{actuator_name}]")
                actions.append(Action(actuators[actuator_name], bool(value)))
            states[name] = NormalState(name, actions)

        for source, trigger, target in self._transitions:
            origin = _lookup(states, source, "state")
            destination = _lookup(states, target, "state")
            if isinstance(trigger, Guard):
                transition = ConditionTransition(_resolve(trigger, sensors), destination)
            else:
                transition = DelayTransition(trigger, destination)
            origin.transitions.append(transition)

        if self._initial is None:
            if not self._states:
                raise ValueError("An application needs at least one state")
            initial = states[self._states[0][0]]
        else:
            initial = states[self._initial]

        return Application(
            name=self.name,
            bricks=list(self._bricks),
            states=list(states.values()),
            initial=initial,
            error_led=self.error_led,
        )


def _brick_name(name: str) -> str:
    if not name or not name[0].islower():
        raise ValueError(f"Illegal brick name: [{name}]")
    return name


def _brick_pin(pin: int) -> int:
    if not isinstance(pin, int) or isinstance(pin, bool):
        raise TypeError("pin must be an integer")
    if pin < 0:
        raise ValueError("pin must be non-negative")
    return pin


def _lookup(table: Mapping[str, object], name: str, kind: str):
    try:
        return table[name]
    except KeyError:
        raise ValueError(f"Unknown {kind}: [{name}]") from None


def _resolve(guard: Guard, sensors: Mapping[str, Sensor]) -> Expression:
    if isinstance(guard, _Reading):
        return SensorCondition(_lookup(sensors, guard.sensor, "sensor"), guard.value)
    if isinstance(guard, _Group):
        return ParenExpr(_resolve(guard.inner, sensors))
    if isinstance(guard, _Binary):
        node = AndExpr if guard.op == "and" else OrExpr
        return node(_resolve(guard.left, sensors), _resolve(guard.right, sensors))
    raise TypeError(f"unsupported guard {guard!r}")
