"""This module implements the single-shot quadratic-tracking controller (Standard-MPC).

The controller measures the tracking errors of efficiency, O2 production and
stack temperature against fixed references and turns them into a current and
voltage adjustment with fixed proportional gains. There is no iteration: the
cost is constant and the result is a deterministic function of the state.

For a given action the controller also reports the quadratic tracking cost

..  math::
    J = e^T Q e + \\Delta u^T R \\Delta u

where `e` are the tracking errors and `Δu` the move away from the measured
operating point.
"""

import math
from dataclasses import dataclass

import numpy as np

from electrolyzer_mpc.controllers.controller import Controller
from electrolyzer_mpc.controllers.helper import ControllerHelper
from electrolyzer_mpc.model.state import ControlAction, SystemState
from electrolyzer_mpc.util.exceptions import ControllerComputationError
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)


@dataclass(frozen=True)
class QuadraticTrackingConfig:
    """References, gains and weights of the tracking law."""

    efficiency_reference: float = 80.0  # %
    production_reference: float = 45.0  # L/min
    temperature_reference: float = 70.0  # °C
    # Current adjustment in A per unit of error
    production_gain: float = 1.5
    temperature_current_gain: float = 2.0
    efficiency_current_gain: float = 1.0
    # Voltage adjustment in V per unit of error
    efficiency_voltage_gain: float = 0.01
    temperature_voltage_gain: float = 0.005
    # Weights of the reported tracking cost
    efficiency_weight: float = 1.0
    production_weight: float = 0.5
    temperature_weight: float = 0.5
    current_weight: float = 0.1
    voltage_weight: float = 10.0
    track_economic_setpoint: bool = False


class QuadraticTrackingMPC(Controller):
    """Proportional tracking controller with fixed references and gains."""

    name = ControllerHelper.STANDARD_MPC.value

    def __init__(self, config: QuadraticTrackingConfig | None = None) -> None:
        self._config = config if config is not None else QuadraticTrackingConfig()

    @property
    def config(self) -> QuadraticTrackingConfig:
        return self._config

    def compute_control(self, state: SystemState) -> ControlAction:
        errors = self.tracking_errors(state)
        efficiency_error, production_error, temperature_error = errors
        config = self._config

        # Too hot: back off the current; low efficiency: back off the current as well
        delta_current = (
            config.production_gain * production_error
            + config.temperature_current_gain * temperature_error
            - config.efficiency_current_gain * efficiency_error
        )
        delta_voltage = (
            -config.efficiency_voltage_gain * efficiency_error
            + config.temperature_voltage_gain * temperature_error
        )

        action = ControlAction(state.current + delta_current, state.voltage + delta_voltage)
        if not (math.isfinite(action.current) and math.isfinite(action.voltage)):
            raise ControllerComputationError(f"Tracking law produced a non-finite action {action}")

        action = action.clamped()
        logger.debug(
            "Tracking errors (eff, O2, T) = %s -> %s A, %.3f V",
            np.round(errors, 3).tolist(),
            round(action.current, 2),
            action.voltage,
        )
        return action

    def tracking_errors(self, state: SystemState) -> np.ndarray:
        """Reference minus measurement for efficiency, production and temperature.

        Raises:
            ControllerComputationError: If the state contains non-finite values.
        """
        if not state.is_finite():
            raise ControllerComputationError(f"Cannot track from a non-finite state: {state}")

        config = self._config
        production_reference = config.production_reference
        if config.track_economic_setpoint and state.economic_setpoint is not None:
            production_reference = state.economic_setpoint

        return np.array(
            [
                config.efficiency_reference - state.efficiency,
                production_reference - state.o2_production,
                config.temperature_reference - state.stack_temperature,
            ]
        )

    def tracking_cost(self, state: SystemState, action: ControlAction) -> float:
        """Quadratic cost `e'Qe + du'Rdu` of moving from the measured point to `action`."""
        config = self._config
        errors = self.tracking_errors(state)
        q = np.diag([config.efficiency_weight, config.production_weight, config.temperature_weight])
        r = np.diag([config.current_weight, config.voltage_weight])
        delta_u = np.array([action.current - state.current, action.voltage - state.voltage])
        return float(errors @ q @ errors + delta_u @ r @ delta_u)
