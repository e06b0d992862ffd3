"""Model node definitions shared by the validator and emitter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class Sensor:
    """A digital input bound to ``input_pin``."""

    name: str
    input_pin: int


@dataclass
class Actuator:
    """A digital output bound to ``output_pin``."""

    name: str
    output_pin: int


Brick = Union[Sensor, Actuator]


@dataclass
class SensorCondition:
    """Compare the reading of ``sensor`` with ``value``."""

    sensor: Optional[Sensor]
    value: bool


@dataclass
class AndExpr:
    """Both operands must hold."""

    left: "Expression"
    right: "Expression"


@dataclass
class OrExpr:
    """At least one operand must hold."""

    left: "Expression"
    right: "Expression"


@dataclass
class ParenExpr:
    """Explicit grouping of a sub-expression."""

    expr: "Expression"


Expression = Union[AndExpr, OrExpr, SensorCondition, ParenExpr]


@dataclass
class Action:
    """Drive ``actuator`` to ``value`` when a state is entered."""

    actuator: Optional[Actuator]
    value: bool


@dataclass
class DelayTransition:
    """Move to ``next`` unconditionally after ``delay`` milliseconds."""

    delay: int
    next: Optional["State"] = field(default=None, repr=False, compare=False)


@dataclass
class ConditionTransition:
    """Move to ``next`` once ``condition`` holds."""

    condition: Expression
    next: Optional["State"] = field(default=None, repr=False, compare=False)


Transition = Union[DelayTransition, ConditionTransition]


@dataclass
class NormalState:
    """A state that applies ``actions`` then checks ``transitions`` in order."""

    name: str
    actions: List[Action] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)


@dataclass
class ErrorState:
    """Terminal state that blinks the error LED ``error_code`` times.

    ``transitions`` is accepted so that loosely built models can still be
    represented, but nothing attached there is ever compiled.
    """

    name: str
    error_code: int
    transitions: List[Transition] = field(default_factory=list)


State = Union[NormalState, ErrorState]


@dataclass
class Application:
    """Root of a model: bricks, states and the state the program starts in."""

    name: str
    bricks: List[Brick] = field(default_factory=list)
    states: List[State] = field(default_factory=list)
    initial: Optional[State] = field(default=None, repr=False, compare=False)
    error_led: Optional[int] = None

    @property
    def sensors(self) -> List[Sensor]:
        return [brick for brick in self.bricks if isinstance(brick, Sensor)]

    @property
    def actuators(self) -> List[Actuator]:
        return [brick for brick in self.bricks if isinstance(brick, Actuator)]

    @property
    def error_states(self) -> List[ErrorState]:
        return [state for state in self.states if isinstance(state, ErrorState)]
