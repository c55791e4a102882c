"""Shared multi-objective score of a predicted trajectory.

The same function is used by the evolutionary controller to rank its
candidates and by the orchestrator to rank the controllers, so that a
controller is never judged by a yardstick different from the one it optimised.
"""

from dataclasses import dataclass

import numpy as np

from electrolyzer_mpc.model.state import (
    CURRENT_MAX,
    CURRENT_MIN,
    NOMINAL_ACTION,
    VOLTAGE_MAX,
    VOLTAGE_MIN,
    ControlAction,
    PredictionTrajectory,
)


@dataclass(frozen=True)
class FitnessWeights:
    """Weights of the performance score. They add up to 1 for the positive terms."""

    efficiency: float = 0.35
    production: float = 0.25
    safety: float = 0.20
    stability: float = 0.15
    control_effort: float = 0.05
    production_reference: float = 60.0  # L/min that count as a full production term


def control_effort(control: ControlAction, nominal: ControlAction = NOMINAL_ACTION) -> float:
    """Normalised deviation of a control from the nominal operating point.

    Each axis is divided by the width of its actuator range, so the result is
    0 at the nominal point and at most 2 at a corner of the box. The voltage
    term extends the current deviation: the model predicts nothing from the
    commanded voltage, so without it every voltage of a candidate would score
    the same.
    """
    current_term = abs(control.current - nominal.current) / (CURRENT_MAX - CURRENT_MIN)
    voltage_term = abs(control.voltage - nominal.voltage) / (VOLTAGE_MAX - VOLTAGE_MIN)
    return current_term + voltage_term


def stability(trajectory: PredictionTrajectory) -> float:
    """Inverse variance of the predicted efficiency, in (0, 1]."""
    return float(1.0 / (1.0 + np.var(trajectory.efficiencies)))


def score_trajectory(
    trajectory: PredictionTrajectory,
    weights: FitnessWeights | None = None,
    nominal: ControlAction = NOMINAL_ACTION,
) -> float:
    """Weighted performance score of a trajectory, higher is better.

    Args:
        trajectory: The predicted trajectory of the candidate control.
        weights: The objective weights, `FitnessWeights()` when omitted.
        nominal: Operating point the control-effort penalty is measured from.

    Returns:
        The score scaled to roughly [0, 100].
    """
    weights = weights if weights is not None else FitnessWeights()

    efficiency_term = float(np.mean(trajectory.efficiencies)) / 100.0
    production_term = float(np.mean(trajectory.productions)) / weights.production_reference
    safety_term = float(np.mean(trajectory.safety_margins)) / 100.0

    fitness = (
        weights.efficiency * efficiency_term
        + weights.production * production_term
        + weights.safety * safety_term
        + weights.stability * stability(trajectory)
        - weights.control_effort * control_effort(trajectory.control, nominal)
    )
    return 100.0 * fitness
