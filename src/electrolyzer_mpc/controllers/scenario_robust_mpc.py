"""This module implements the scenario-based robust controller (Stochastic-MPC).

The measured state is perturbed into a fixed ensemble of scenarios, each one a
hypothesis about the unmeasured disturbance on efficiency and temperature:

- the nominal scenario (the measurement itself);
- efficiency shifted up and down by `efficiency_perturbation`;
- temperature shifted up and down by `temperature_perturbation`.

Every scenario carries an explicit probability and the probabilities add up
to one. Each scenario is solved independently with the quadratic-tracking law
and the robust action is the probability-weighted expectation of the
per-scenario actions. A scenario that cannot be solved is dropped and the
remaining probabilities are renormalised.

The tracking law is affine in the perturbed variables and the variants come in
symmetric pairs of equal probability, so the expectation equals the nominal
tracking action whenever no scenario saturates the actuator bounds. The robust
action departs from the Standard-MPC action only near the bounds, where
the clamping of some scenarios breaks the symmetry, and after a scenario was
excluded. The spread of the scenario actions is reported in
`last_risk_metrics` in every case.
"""

import math
from dataclasses import dataclass
from typing import Dict, List

import numpy as np

from electrolyzer_mpc.controllers.controller import Controller
from electrolyzer_mpc.controllers.helper import ControllerHelper
from electrolyzer_mpc.controllers.quadratic_tracking_mpc import (
    QuadraticTrackingConfig,
    QuadraticTrackingMPC,
)
from electrolyzer_mpc.model.state import ControlAction, SystemState
from electrolyzer_mpc.util.exceptions import ControllerComputationError
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)

PROBABILITY_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ScenarioConfig:
    """Size of the perturbations and probability of the nominal scenario."""

    efficiency_perturbation: float = 5.0  # %
    temperature_perturbation: float = 3.0  # °C
    nominal_probability: float = 0.4


@dataclass(frozen=True)
class Scenario:
    """One perturbed copy of the measured state."""

    name: str
    state: SystemState
    probability: float


@dataclass(frozen=True)
class ScenarioSolution:
    scenario: Scenario
    action: ControlAction
    tracking_cost: float


class ScenarioRobustMPC(Controller):
    """Probability-weighted ensemble of tracking subproblems."""

    name = ControllerHelper.STOCHASTIC_MPC.value

    def __init__(
        self,
        config: ScenarioConfig | None = None,
        tracking_config: QuadraticTrackingConfig | None = None,
    ) -> None:
        """Initializes the controller.

        Args:
            config: Perturbation sizes and nominal probability.
            tracking_config: The tracking law solved in every scenario.

        Raises:
            ValueError: If the scenario probabilities are not a valid distribution.
        """
        self._config = config if config is not None else ScenarioConfig()
        self._tracker = QuadraticTrackingMPC(tracking_config)
        if not 0.0 < self._config.nominal_probability <= 1.0:
            logger.error("Invalid nominal probability: %s", self._config.nominal_probability)
            raise ValueError("The nominal scenario probability must be in (0, 1].")

        self.last_solutions: List[ScenarioSolution] = []
        self.last_risk_metrics: Dict[str, float] = {}

    def generate_scenarios(self, state: SystemState) -> List[Scenario]:
        """Builds the nominal scenario and its four symmetric variants.

        Raises:
            ValueError: If the probabilities do not add up to one.
        """
        config = self._config
        variant_probability = (1.0 - config.nominal_probability) / 4.0
        d_eff = config.efficiency_perturbation
        d_temp = config.temperature_perturbation

        scenarios = [
            Scenario("nominal", state, config.nominal_probability),
            Scenario(
                "efficiency_high",
                state.with_changes(efficiency=state.efficiency + d_eff),
                variant_probability,
            ),
            Scenario(
                "efficiency_low",
                state.with_changes(efficiency=state.efficiency - d_eff),
                variant_probability,
            ),
            Scenario(
                "temperature_high",
                state.with_changes(stack_temperature=state.stack_temperature + d_temp),
                variant_probability,
            ),
            Scenario(
                "temperature_low",
                state.with_changes(stack_temperature=state.stack_temperature - d_temp),
                variant_probability,
            ),
        ]

        total = math.fsum(scenario.probability for scenario in scenarios)
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            logger.error("Scenario probabilities add up to %s", total)
            raise ValueError("Scenario probabilities must add up to 1.")
        return scenarios

    def compute_control(self, state: SystemState) -> ControlAction:
        solutions = []
        for scenario in self.generate_scenarios(state):
            try:
                action = self._tracker.compute_control(scenario.state)
                cost = self._tracker.tracking_cost(scenario.state, action)
            except ControllerComputationError as e:
                logger.warning("Excluding scenario %s: %s", scenario.name, e)
                continue
            solutions.append(ScenarioSolution(scenario, action, cost))

        if not solutions:
            raise ControllerComputationError("No scenario could be solved")

        probabilities = np.array([solution.scenario.probability for solution in solutions])
        probabilities = probabilities / probabilities.sum()
        actions = np.array([solution.action.as_array() for solution in solutions])
        costs = np.array([solution.tracking_cost for solution in solutions])

        expected = np.average(actions, axis=0, weights=probabilities)
        robust_action = ControlAction.from_array(expected).clamped()

        spread = np.sqrt(np.average((actions - expected) ** 2, axis=0, weights=probabilities))
        self.last_solutions = solutions
        self.last_risk_metrics = {
            "current_std": float(spread[0]),
            "voltage_std": float(spread[1]),
            "expected_tracking_cost": float(np.dot(probabilities, costs)),
            "worst_tracking_cost": float(costs.max()),
            "solved_scenarios": float(len(solutions)),
        }

        logger.info(
            "Stochastic-MPC solved %s scenarios: %s A, %.3f V",
            len(solutions),
            round(robust_action.current, 2),
            robust_action.voltage,
        )
        return robust_action
