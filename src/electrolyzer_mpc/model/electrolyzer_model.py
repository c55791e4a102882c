"""Deterministic physical forward model of a PEM electrolyzer stack.

The `ElectrolyzerModel` predicts how the measured plant variables evolve when a
constant control action (stack current, cell voltage) is held over a number of
discrete steps. It is shared by every controller and by the orchestrator, so
that all candidates are judged by exactly the same physics.

Per step, with a time increment `dt`:

1.  Electrochemistry:
    ..  math::
        V_{cell} = E_{ideal} + \\eta_{act} + \\eta_{ohm} + \\eta_{conc}

    with a Tafel activation term, an ohmic term `I * R_cell` and a
    concentration term that grows near the limiting current density. The
    efficiency is `E_ideal / V_cell * 100`, clamped to [60, 95] %.

2.  O2 production (Faraday's law, 4 electrons per O2 molecule), converted to a
    volumetric rate with the ideal gas law and floored at 0.

3.  Thermal balance:
    ..  math::
        \\Delta T = (I^2 R_{stack} - (T - T_{amb}) k_{cool}) c_{th} dt

    The new temperature is clamped to [T_min, T_max].

4.  Safety margin: the smallest of the temperature and current margins, each
    the fractional distance from its limit.
"""

import math
from dataclasses import dataclass

import numpy as np

from electrolyzer_mpc.model.state import (
    CURRENT_MAX,
    ControlAction,
    PredictionTrajectory,
    SystemState,
)
from electrolyzer_mpc.util.exceptions import ModelEvaluationError
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)

FARADAY_CONSTANT = 96485.33212  # C/mol
GAS_CONSTANT = 8.314462618  # J/(mol K)
ELECTRONS_PER_O2 = 4
KELVIN_OFFSET = 273.15


@dataclass(frozen=True)
class ElectrolyzerParameters:
    """Physical parameters of the stack.

    The defaults describe a 100-cell stack of 100 cm² cells that produces about
    40 L/min of O2 at 150 A and settles around 65 °C.
    """

    n_cells: int = 100
    cell_area: float = 100.0  # cm²
    ideal_voltage: float = 1.23  # V
    exchange_current_density: float = 0.1  # A/cm²
    limiting_current_density: float = 3.0  # A/cm²
    charge_transfer_coefficient: float = 0.5
    cell_resistance: float = 0.0015  # Ohm, per cell
    ambient_temperature: float = 25.0  # °C
    cooling_gain: float = 84.0  # W/K
    thermal_coefficient: float = 2.0e-4  # K/J
    dt: float = 2.0  # s
    temperature_min: float = 20.0  # °C
    temperature_max: float = 100.0  # °C
    temperature_limit: float = 80.0  # °C, used for the safety margin
    current_limit: float = CURRENT_MAX  # A, used for the safety margin
    gas_temperature: float = 298.15  # K, reference conditions for the O2 volume
    gas_pressure: float = 101325.0  # Pa
    efficiency_min: float = 60.0  # %
    efficiency_max: float = 95.0  # %

    @property
    def stack_resistance(self) -> float:
        return self.cell_resistance * self.n_cells


class ElectrolyzerModel:
    """Multi-step forward simulator of the electrolyzer.

    The model keeps no state between calls: `predict` is a pure function of its
    arguments and the (immutable) parameters.
    """

    def __init__(self, parameters: ElectrolyzerParameters | None = None) -> None:
        self.parameters = parameters if parameters is not None else ElectrolyzerParameters()

    def predict(
        self, initial_state: SystemState, control: ControlAction, steps: int
    ) -> PredictionTrajectory:
        """Simulates the plant for `steps` steps under a constant control.

        Args:
            initial_state: The measured state the prediction starts from.
            control: The control action held over the whole horizon.
            steps: Number of forward steps, must be positive.

        Returns:
            A `PredictionTrajectory` holding the initial state followed by the
            `steps` predicted states.

        Raises:
            ValueError: If `steps` is not positive.
            ModelEvaluationError: If any intermediate value is non-finite.
        """
        if steps < 1:
            raise ValueError("The prediction horizon must contain at least one step.")

        states = [initial_state]
        state = initial_state
        for step in range(steps):
            state = self.step(state, control, step)
            states.append(state)

        return PredictionTrajectory(control=control, states=tuple(states))

    def step(self, state: SystemState, control: ControlAction, step: int = 0) -> SystemState:
        """Applies one transition of the model."""
        p = self.parameters
        current = self._finite("current", control.current, step)
        temperature = self._finite("stack_temperature", state.stack_temperature, step)

        efficiency = self.efficiency(current, temperature, step)
        o2_production = self.o2_production(current, efficiency, step)

        heat_generated = current**2 * p.stack_resistance
        heat_removed = (temperature - p.ambient_temperature) * p.cooling_gain
        delta_t = (heat_generated - heat_removed) * p.thermal_coefficient * p.dt
        new_temperature = self._finite("stack_temperature", temperature + delta_t, step)
        new_temperature = float(np.clip(new_temperature, p.temperature_min, p.temperature_max))

        safety_margin = self.safety_margin(current, new_temperature)

        return SystemState(
            current=current,
            voltage=control.voltage,
            o2_production=o2_production,
            efficiency=efficiency,
            stack_temperature=new_temperature,
            safety_margin=safety_margin,
            purity=state.purity,
            economic_setpoint=state.economic_setpoint,
        )

    def efficiency(self, current: float, temperature: float, step: int = 0) -> float:
        """Voltage efficiency in % from the overpotential breakdown."""
        p = self.parameters
        temperature_k = temperature + KELVIN_OFFSET
        current_density = current / p.cell_area
        thermal_voltage = GAS_CONSTANT * temperature_k / FARADAY_CONSTANT

        with np.errstate(divide="ignore", invalid="ignore"):
            activation = (thermal_voltage / p.charge_transfer_coefficient) * np.log(
                current_density / p.exchange_current_density
            )
            concentration = -(thermal_voltage / 2.0) * np.log(
                1.0 - current_density / p.limiting_current_density
            )
        ohmic = current * p.cell_resistance

        total_overpotential = float(max(activation, 0.0) + ohmic + concentration)
        cell_voltage = self._finite("cell_voltage", p.ideal_voltage + total_overpotential, step)

        efficiency = p.ideal_voltage / cell_voltage * 100.0
        efficiency = self._finite("efficiency", efficiency, step)
        return float(np.clip(efficiency, p.efficiency_min, p.efficiency_max))

    def o2_production(self, current: float, efficiency: float, step: int = 0) -> float:
        """Volumetric O2 production in L/min (Faraday's law, ideal gas)."""
        p = self.parameters
        moles_per_second = (
            current * (efficiency / 100.0) / (ELECTRONS_PER_O2 * FARADAY_CONSTANT) * p.n_cells
        )
        cubic_meters_per_second = moles_per_second * GAS_CONSTANT * p.gas_temperature / p.gas_pressure
        liters_per_minute = self._finite("o2_production", cubic_meters_per_second * 1000.0 * 60.0, step)
        return max(liters_per_minute, 0.0)

    def safety_margin(self, current: float, temperature: float) -> float:
        """Smallest fractional distance (%) to the temperature and current limits."""
        p = self.parameters
        temperature_margin = (p.temperature_limit - temperature) / p.temperature_limit * 100.0
        current_margin = (p.current_limit - current) / p.current_limit * 100.0
        return float(np.clip(min(temperature_margin, current_margin), 0.0, 100.0))

    @staticmethod
    def _finite(quantity: str, value: float, step: int) -> float:
        value = float(value)
        if not math.isfinite(value):
            logger.debug("Model evaluation failed: %s=%s at step %s", quantity, value, step)
            raise ModelEvaluationError(quantity, value, step)
        return value
