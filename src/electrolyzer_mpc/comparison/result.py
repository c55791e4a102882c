"""Result records produced by the comparison harness.

A `ControllerResult` is created for every registered controller in every
cycle, whether the controller succeeded, failed or timed out. A
`ComparisonSnapshot` groups the results of one cycle together with the
winner and the action recommended for actuation.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping

from electrolyzer_mpc.model.state import ControlAction, SystemState


class ConstraintViolation(str, Enum):
    """Named conditions flagged on a result without invalidating it."""

    TEMPERATURE_TOO_HIGH = "temperature_too_high"
    CURRENT_OUT_OF_RANGE = "current_out_of_range"
    VOLTAGE_OUT_OF_RANGE = "voltage_out_of_range"


@dataclass(frozen=True)
class PerformanceMetrics:
    """Performance of one control action, predicted with the shared model.

    Attributes:
        score: The shared fitness of the predicted trajectory, used for ranking.
        efficiency: Mean predicted efficiency in %.
        production: Mean predicted O2 production in L/min.
        safety_margin: Smallest predicted safety margin in %.
        stability: Inverse variance of the predicted efficiency, in (0, 1].
        cost: Electricity cost of holding the action, in $/h.
        response_time: Wall-clock time the controller needed, in seconds.
        max_temperature: Highest predicted stack temperature in °C.
    """

    score: float
    efficiency: float
    production: float
    safety_margin: float
    stability: float
    cost: float
    response_time: float
    max_temperature: float

    def to_dict(self) -> Dict[str, float | None]:
        return {
            "score": _json_float(self.score),
            "efficiency": _json_float(self.efficiency),
            "production": _json_float(self.production),
            "safetyMargin": _json_float(self.safety_margin),
            "stability": _json_float(self.stability),
            "cost": _json_float(self.cost),
            "responseTime": _json_float(self.response_time),
            "maxTemperature": _json_float(self.max_temperature),
        }


@dataclass(frozen=True)
class ControllerResult:
    """Outcome of one controller in one cycle.

    `error` is set when the controller failed or timed out. A timed-out
    controller that had a previous valid action carries that action with
    `degraded` set; a failed controller carries no action and no metrics.
    """

    controller_name: str
    control_action: ControlAction | None
    performance_metrics: PerformanceMetrics | None
    computed_at: datetime
    constraint_violations: FrozenSet[ConstraintViolation] = frozenset()
    error: str | None = None
    degraded: bool = False

    @property
    def score(self) -> float:
        """Performance score, minus infinity when the result cannot be ranked."""
        if self.performance_metrics is None:
            return -math.inf
        return self.performance_metrics.score

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.control_action is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "controllerName": self.controller_name,
            "controlAction": self.control_action.to_dict() if self.control_action else None,
            "performanceMetrics": (
                self.performance_metrics.to_dict() if self.performance_metrics else None
            ),
            "constraintViolations": sorted(violation.value for violation in self.constraint_violations),
            "computedAt": self.computed_at.isoformat(),
            "error": self.error,
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class ComparisonSnapshot:
    """Results of one comparison cycle."""

    state: SystemState
    results: Mapping[str, ControllerResult]
    best_performer: str | None
    recommended_action: ControlAction | None
    timestamp: datetime
    degraded: bool = False
    cycle: int = 0

    @property
    def has_violations(self) -> bool:
        """True when the recommended action carries constraint violations."""
        if self.best_performer is None:
            return False
        return bool(self.results[self.best_performer].constraint_violations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "timestamp": self.timestamp.isoformat(),
            "state": self.state.to_dict(),
            "results": {name: result.to_dict() for name, result in self.results.items()},
            "bestPerformer": self.best_performer,
            "recommendedAction": (
                self.recommended_action.to_dict() if self.recommended_action else None
            ),
            "degraded": self.degraded,
        }


def _json_float(value: float) -> float | None:
    return value if math.isfinite(value) else None
