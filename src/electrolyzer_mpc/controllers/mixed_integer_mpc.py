"""This module implements the mixed discrete/continuous controller (Mixed-Integer-MPC).

The stack current is restricted to a fixed set of discrete levels while the
voltage remains continuous. The controller enumerates the discrete levels in
an outer loop and, for each level, searches a grid of candidate voltages in an
inner loop. Each pair is simulated over a short horizon and scored with

..  math::
    s = 0.5 \\bar{\\eta} + 0.3 \\bar{Q}_{O_2} + 0.2 \\bar{m}_{safety} - p_{effort}

The best pair over the whole grid is returned. The search is exhaustive,
terminates after `len(current_levels) * len(voltage_grid)` evaluations and is
deterministic.
"""

from dataclasses import dataclass, field
from time import time
from typing import Tuple

import numpy as np

from electrolyzer_mpc.controllers.controller import Controller
from electrolyzer_mpc.controllers.helper import ControllerHelper
from electrolyzer_mpc.model.electrolyzer_model import ElectrolyzerModel
from electrolyzer_mpc.model.fitness import control_effort
from electrolyzer_mpc.model.state import (
    CURRENT_MAX,
    CURRENT_MIN,
    VOLTAGE_MAX,
    VOLTAGE_MIN,
    ControlAction,
    PredictionTrajectory,
    SystemState,
)
from electrolyzer_mpc.util.exceptions import ControllerComputationError, ModelEvaluationError
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)


@dataclass(frozen=True)
class MixedIntegerConfig:
    """Search grids and scoring weights."""

    current_levels: Tuple[float, ...] = (100.0, 120.0, 140.0, 160.0, 180.0, 200.0)
    voltage_grid: Tuple[float, ...] = field(
        default_factory=lambda: tuple(
            float(voltage) for voltage in np.round(np.linspace(VOLTAGE_MIN, VOLTAGE_MAX, 7), 3)
        )
    )
    horizon: int = 5
    efficiency_weight: float = 0.5
    production_weight: float = 0.3
    safety_weight: float = 0.2
    effort_weight: float = 5.0


class MixedIntegerMPC(Controller):
    """Grid search over discrete current levels and candidate voltages."""

    name = ControllerHelper.MIXED_INTEGER_MPC.value

    def __init__(self, model: ElectrolyzerModel, config: MixedIntegerConfig | None = None) -> None:
        """Initializes the controller.

        Args:
            model: The shared prediction model.
            config: Grids and weights, `MixedIntegerConfig()` when omitted.

        Raises:
            ValueError: If a grid is empty or leaves the actuator bounds, or if
                        the horizon is not positive.
        """
        self._model = model
        self._config = config if config is not None else MixedIntegerConfig()
        self._validate_config()
        self.last_score: float | None = None

    @property
    def current_levels(self) -> Tuple[float, ...]:
        return self._config.current_levels

    @property
    def voltage_grid(self) -> Tuple[float, ...]:
        return self._config.voltage_grid

    def compute_control(self, state: SystemState) -> ControlAction:
        start_time = time()
        best_action = None
        best_score = -np.inf
        skipped = 0

        for current in self._config.current_levels:
            for voltage in self._config.voltage_grid:
                action = ControlAction(current, voltage)
                try:
                    trajectory = self._model.predict(state, action, self._config.horizon)
                except ModelEvaluationError as e:
                    logger.debug("Skipping grid point %s: %s", action, e)
                    skipped += 1
                    continue
                score = self.score(trajectory)
                if score > best_score:
                    best_score = score
                    best_action = action

        if best_action is None:
            raise ControllerComputationError("Every grid point failed the model evaluation")
        if skipped:
            logger.warning("Mixed-Integer-MPC skipped %s grid points", skipped)

        self.last_score = float(best_score)
        logger.info(
            "The Mixed-Integer-MPC took %.2f seconds: level %s A, %.3f V (score %.3f)",
            time() - start_time,
            best_action.current,
            best_action.voltage,
            best_score,
        )
        # Grid values are inside the bounds, clamping keeps the level unchanged
        return best_action.clamped()

    def score(self, trajectory: PredictionTrajectory) -> float:
        config = self._config
        return float(
            config.efficiency_weight * np.mean(trajectory.efficiencies)
            + config.production_weight * np.mean(trajectory.productions)
            + config.safety_weight * np.mean(trajectory.safety_margins)
            - config.effort_weight * control_effort(trajectory.control)
        )

    def _validate_config(self) -> None:
        config = self._config
        if not config.current_levels or not config.voltage_grid:
            logger.error("Empty search grid in %s", config)
            raise ValueError("Current levels and voltage grid must not be empty.")
        if config.horizon < 1:
            logger.error("Invalid horizon: %s", config.horizon)
            raise ValueError("The horizon must be positive.")
        if any(not CURRENT_MIN <= level <= CURRENT_MAX for level in config.current_levels):
            logger.error("Current levels outside bounds: %s", config.current_levels)
            raise ValueError("Current levels must lie within [100, 200] A.")
        if any(not VOLTAGE_MIN <= voltage <= VOLTAGE_MAX for voltage in config.voltage_grid):
            logger.error("Voltage grid outside bounds: %s", config.voltage_grid)
            raise ValueError("Voltage grid must lie within [1.8, 2.4] V.")
