"""Immutable records exchanged between the prediction model, the controllers and the orchestrator.

A `SystemState` is the snapshot of measured plant variables captured at the
start of a control cycle. A `ControlAction` is what every controller returns,
always clamped to the actuator bounds. A `PredictionTrajectory` is the ordered
sequence of states produced by the prediction model for one candidate control.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Tuple

import numpy as np

CURRENT_MIN = 100.0  # A
CURRENT_MAX = 200.0  # A
VOLTAGE_MIN = 1.8  # V
VOLTAGE_MAX = 2.4  # V

NOMINAL_CURRENT = 150.0  # A
NOMINAL_VOLTAGE = 2.1  # V


@dataclass(frozen=True)
class SystemState:
    """Snapshot of the measured electrolyzer variables.

    Attributes:
        current: Applied stack current in A.
        voltage: Cell voltage in V.
        o2_production: Oxygen production rate in L/min.
        efficiency: Stack efficiency in %.
        stack_temperature: Stack temperature in °C.
        safety_margin: Distance to the closest operating limit in %.
        purity: Oxygen purity in %.
        economic_setpoint: Production target handed down by the economic layer, if any.
    """

    current: float
    voltage: float
    o2_production: float
    efficiency: float
    stack_temperature: float
    safety_margin: float = 100.0
    purity: float = 99.7
    economic_setpoint: float | None = None

    # Telemetry records use camelCase keys, internal callers snake_case
    _ALIASES = {
        "o2Production": "o2_production",
        "stackTemperature": "stack_temperature",
        "safetyMargin": "safety_margin",
        "economicSetpoint": "economic_setpoint",
    }
    _DEFAULTS = {
        "current": NOMINAL_CURRENT,
        "voltage": NOMINAL_VOLTAGE,
        "o2_production": 0.0,
        "efficiency": 75.0,
        "stack_temperature": 25.0,
        "safety_margin": 100.0,
        "purity": 99.7,
        "economic_setpoint": None,
    }

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "SystemState":
        """Builds a state from a telemetry record.

        Both the camelCase keys of the telemetry bridge and the snake_case field
        names are accepted. Unknown keys are ignored and missing keys take the
        defaults used by the telemetry bridge.

        Args:
            record: The telemetry record.

        Returns:
            A new `SystemState`.

        Raises:
            ValueError: If a field cannot be converted to a float.
        """
        values: Dict[str, Any] = dict(cls._DEFAULTS)
        for key, value in record.items():
            field_name = cls._ALIASES.get(key, key)
            if field_name in values and value is not None:
                values[field_name] = float(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "voltage": self.voltage,
            "o2Production": self.o2_production,
            "efficiency": self.efficiency,
            "stackTemperature": self.stack_temperature,
            "safetyMargin": self.safety_margin,
            "purity": self.purity,
            "economicSetpoint": self.economic_setpoint,
        }

    def is_finite(self) -> bool:
        """Returns True when every numeric field of the state is finite."""
        values = [
            self.current,
            self.voltage,
            self.o2_production,
            self.efficiency,
            self.stack_temperature,
            self.safety_margin,
            self.purity,
        ]
        return all(math.isfinite(value) for value in values)

    def with_changes(self, **changes: float) -> "SystemState":
        return replace(self, **changes)


@dataclass(frozen=True)
class ControlAction:
    """Applied stack current (A) and cell voltage (V)."""

    current: float
    voltage: float

    def clamped(self) -> "ControlAction":
        """Returns a copy limited to [100, 200] A and [1.8, 2.4] V."""
        return ControlAction(
            current=float(np.clip(self.current, CURRENT_MIN, CURRENT_MAX)),
            voltage=float(np.clip(self.voltage, VOLTAGE_MIN, VOLTAGE_MAX)),
        )

    def is_within_bounds(self) -> bool:
        return (
            CURRENT_MIN <= self.current <= CURRENT_MAX
            and VOLTAGE_MIN <= self.voltage <= VOLTAGE_MAX
        )

    def as_array(self) -> np.ndarray:
        return np.array([self.current, self.voltage], dtype=float)

    @classmethod
    def from_array(cls, values: np.ndarray) -> "ControlAction":
        return cls(current=float(values[0]), voltage=float(values[1]))

    def to_dict(self) -> Dict[str, float]:
        return {"current": self.current, "voltage": self.voltage}


NOMINAL_ACTION = ControlAction(NOMINAL_CURRENT, NOMINAL_VOLTAGE)


@dataclass(frozen=True)
class PredictionTrajectory:
    """Ordered states predicted by the model for one constant control.

    The first element is the initial state; the trajectory holds `steps + 1`
    states. It is a pure function of the initial state and the control.
    """

    control: ControlAction
    states: Tuple[SystemState, ...]

    def __len__(self) -> int:
        return len(self.states)

    def __iter__(self) -> Iterator[SystemState]:
        return iter(self.states)

    @property
    def initial(self) -> SystemState:
        return self.states[0]

    @property
    def final(self) -> SystemState:
        return self.states[-1]

    @property
    def predicted(self) -> Tuple[SystemState, ...]:
        """The predicted states, without the initial one."""
        return self.states[1:] if len(self.states) > 1 else self.states

    @property
    def efficiencies(self) -> np.ndarray:
        return np.array([state.efficiency for state in self.predicted])

    @property
    def productions(self) -> np.ndarray:
        return np.array([state.o2_production for state in self.predicted])

    @property
    def temperatures(self) -> np.ndarray:
        return np.array([state.stack_temperature for state in self.predicted])

    @property
    def safety_margins(self) -> np.ndarray:
        return np.array([state.safety_margin for state in self.predicted])
