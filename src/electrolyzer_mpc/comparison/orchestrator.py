"""This module defines the ComparisonOrchestrator, which runs the controllers against each other.

It serves as the primary interface for a comparison cycle. The orchestrator is
responsible for:
- Debouncing incoming states so that at most one cycle starts per control interval.
- Fanning out one immutable state snapshot to every registered controller
  concurrently, and joining all of them before going further.
- Isolating controller failures and timeouts into error-tagged results, with a
  fallback to the last known-good action of a controller that timed out.
  A controller whose abandoned worker is still running is not dispatched again.
- Checking constraints and scoring every action with the shared model.
- Selecting the best performer and publishing the snapshot to the sink.
- Keeping a bounded rolling history of the published snapshots, and
  periodically publishing a per-controller summary of that history.
"""

import asyncio
import math
import numbers
import os
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, Dict, FrozenSet, List, Sequence, Tuple

import numpy as np

from electrolyzer_mpc.comparison.interpreter import ComparisonInterpreter
from electrolyzer_mpc.comparison.result import (
    ComparisonSnapshot,
    ConstraintViolation,
    ControllerResult,
    PerformanceMetrics,
)
from electrolyzer_mpc.comparison.sink import ComparisonSink, LoggingSink
from electrolyzer_mpc.controllers.controller import Controller
from electrolyzer_mpc.model.electrolyzer_model import ElectrolyzerModel
from electrolyzer_mpc.model.fitness import FitnessWeights, score_trajectory, stability
from electrolyzer_mpc.model.state import (
    CURRENT_MAX,
    CURRENT_MIN,
    VOLTAGE_MAX,
    VOLTAGE_MIN,
    ControlAction,
    PredictionTrajectory,
    SystemState,
)
from electrolyzer_mpc.util.exceptions import ModelEvaluationError, OrchestrationTimeout
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)


class OrchestratorStatus(Enum):
    IDLE = "idle"
    COMPUTING = "computing"
    PUBLISHED = "published"


@dataclass(frozen=True)
class OrchestratorConfig:
    """Static parameters of the comparison harness."""

    control_interval: float = 15.0  # s between two cycles
    controller_timeout: float | None = 5.0  # s, None disables the timeout
    history_size: int = 50
    evaluation_horizon: int = 10
    temperature_limit: float = 80.0  # °C
    electricity_price: float = 0.12  # $/kWh
    summary_interval: int = 10  # cycles between two published summaries, 0 disables them
    weights: FitnessWeights = field(default_factory=FitnessWeights)

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        timeout = float(os.getenv("CONTROLLER_TIMEOUT", "5"))
        return cls(
            control_interval=float(os.getenv("CONTROL_INTERVAL", "15")),
            controller_timeout=timeout if timeout > 0 else None,
            history_size=int(os.getenv("HISTORY_SIZE", "50")),
            evaluation_horizon=int(os.getenv("EVALUATION_HORIZON", "10")),
            summary_interval=int(os.getenv("SUMMARY_INTERVAL", "10")),
        )


class ComparisonOrchestrator:
    """Runs every registered controller on the same snapshot and ranks the results.

    The controller order given at construction is the registration order: it
    fixes the order of the results and breaks ties between equal scores in
    favour of the controller registered first.
    """

    def __init__(
        self,
        model: ElectrolyzerModel,
        controllers: Sequence[Controller],
        sink: ComparisonSink | None = None,
        config: OrchestratorConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initializes the orchestrator.

        Args:
            model: The shared prediction model used for constraint checks and scoring.
            controllers: The controllers to compare, in registration order.
            sink: Destination of the published snapshots, a `LoggingSink` when omitted.
            config: Static parameters, `OrchestratorConfig()` when omitted.
            clock: Monotonic clock in seconds, used for debouncing.

        Raises:
            ValueError: If no controller is given or two controllers share a name.
        """
        names = [controller.name for controller in controllers]
        if not names:
            logger.error("No controller registered")
            raise ValueError("At least one controller must be registered.")
        if len(set(names)) != len(names):
            logger.error("Duplicate controller names: %s", names)
            raise ValueError("Controller names must be unique.")

        self._model = model
        self._controllers: Tuple[Controller, ...] = tuple(controllers)
        self._sink = sink if sink is not None else LoggingSink()
        self._config = config if config is not None else OrchestratorConfig()
        self._clock = clock

        self._status = OrchestratorStatus.IDLE
        self._last_cycle_at: float | None = None
        self._cycle_count = 0
        self._history: Deque[ComparisonSnapshot] = deque(maxlen=self._config.history_size)
        self._last_known_good: Dict[str, ControlAction] = {}
        self._pending: Dict[str, asyncio.Future] = {}

    @property
    def status(self) -> OrchestratorStatus:
        return self._status

    @property
    def controller_names(self) -> List[str]:
        return [controller.name for controller in self._controllers]

    @property
    def history(self) -> Tuple[ComparisonSnapshot, ...]:
        """Published snapshots, oldest first."""
        return tuple(self._history)

    @property
    def last_known_good(self) -> Dict[str, ControlAction]:
        return dict(self._last_known_good)

    async def on_state(self, state: SystemState) -> ComparisonSnapshot | None:
        """Handles the arrival of a new state.

        A cycle starts only when no cycle is in flight and the control interval
        has elapsed since the previous cycle started. Other arrivals are
        dropped, not queued.

        Args:
            state: The newly measured state.

        Returns:
            The published snapshot, or None when the arrival was debounced.
        """
        now = self._clock()
        if self._status is not OrchestratorStatus.IDLE:
            logger.warning("A comparison cycle is still running, ignoring the new state")
            return None
        if self._last_cycle_at is not None and now - self._last_cycle_at < self._config.control_interval:
            logger.debug(
                "State received %.2f s after the last cycle, debounced",
                now - self._last_cycle_at,
            )
            return None

        self._last_cycle_at = now
        return await self.run_cycle(state)

    async def run_cycle(self, state: SystemState) -> ComparisonSnapshot:
        """Runs one full cycle: compute, rank, publish and record.

        Args:
            state: The snapshot shared by every controller of the cycle.

        Returns:
            The published `ComparisonSnapshot`.
        """
        self._status = OrchestratorStatus.COMPUTING
        start_time = time.perf_counter()
        try:
            results = await self.compute_all(state)
            best_performer = self.select_best(results)
            recommended_action = (
                results[best_performer].control_action if best_performer is not None else None
            )
            self._cycle_count += 1
            snapshot = ComparisonSnapshot(
                state=state,
                results=results,
                best_performer=best_performer,
                recommended_action=recommended_action,
                timestamp=datetime.now().astimezone(),
                degraded=best_performer is None
                or any(result.error is not None or result.degraded for result in results.values()),
                cycle=self._cycle_count,
            )

            try:
                await self._sink.publish(snapshot)
            except Exception as e:
                logger.error("Failed to publish cycle %s: %s", snapshot.cycle, e, exc_info=True)
            self._status = OrchestratorStatus.PUBLISHED
            self._history.append(snapshot)

            interval = self._config.summary_interval
            if interval > 0 and snapshot.cycle % interval == 0:
                await self._publish_summary(snapshot.cycle)

            logger.info(
                "The comparison cycle %s took %.2f seconds, best performer: %s",
                snapshot.cycle,
                time.perf_counter() - start_time,
                best_performer,
            )
            return snapshot
        finally:
            self._status = OrchestratorStatus.IDLE

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Per-controller mean metrics, win rate and error count over the history."""
        return ComparisonInterpreter(self._history).summary_to_dict()

    async def _publish_summary(self, cycle: int) -> None:
        try:
            await self._sink.publish_summary(self.summary())
        except Exception as e:
            logger.error("Failed to publish the summary at cycle %s: %s", cycle, e, exc_info=True)

    async def compute_all(self, state: SystemState) -> Dict[str, ControllerResult]:
        """Runs every controller concurrently on the same snapshot.

        Returns:
            Exactly one `ControllerResult` per registered controller, in
            registration order, whatever happened inside the controllers.
        """
        results = await asyncio.gather(
            *(self._run_controller(controller, state) for controller in self._controllers)
        )
        # Single writer, after the join
        for result in results:
            if result.succeeded:
                self._last_known_good[result.controller_name] = result.control_action

        return {result.controller_name: result for result in results}

    def select_best(self, results: Dict[str, ControllerResult]) -> str | None:
        """Returns the controller with the strictly highest score.

        Results are visited in registration order, so ties go to the
        controller registered first. Results without a score never win.
        """
        best_name = None
        best_score = -np.inf
        for name in self.controller_names:
            result = results.get(name)
            if result is not None and result.score > best_score:
                best_name = name
                best_score = result.score
        return best_name

    def check_constraints(
        self, action: ControlAction, trajectory: PredictionTrajectory | None
    ) -> FrozenSet[ConstraintViolation]:
        """Flags the constraint violations of an action.

        Args:
            action: The control action to check.
            trajectory: The predicted trajectory of the action, if available.

        Returns:
            The set of violated constraints, empty when the action is admissible.
        """
        violations = set()
        if not CURRENT_MIN <= action.current <= CURRENT_MAX:
            violations.add(ConstraintViolation.CURRENT_OUT_OF_RANGE)
        if not VOLTAGE_MIN <= action.voltage <= VOLTAGE_MAX:
            violations.add(ConstraintViolation.VOLTAGE_OUT_OF_RANGE)
        if trajectory is not None and np.max(trajectory.temperatures) > self._config.temperature_limit:
            violations.add(ConstraintViolation.TEMPERATURE_TOO_HIGH)
        return frozenset(violations)

    def evaluate_action(
        self, state: SystemState, action: ControlAction, response_time: float
    ) -> Tuple[PerformanceMetrics, PredictionTrajectory]:
        """Predicts the trajectory of an action and derives its performance metrics.

        Raises:
            ModelEvaluationError: If the prediction fails.
        """
        trajectory = self._model.predict(state, action, self._config.evaluation_horizon)
        power_kw = action.current * action.voltage * self._model.parameters.n_cells / 1000.0
        metrics = PerformanceMetrics(
            score=score_trajectory(trajectory, self._config.weights),
            efficiency=float(np.mean(trajectory.efficiencies)),
            production=float(np.mean(trajectory.productions)),
            safety_margin=float(np.min(trajectory.safety_margins)),
            stability=stability(trajectory),
            cost=power_kw * self._config.electricity_price,
            response_time=response_time,
            max_temperature=float(np.max(trajectory.temperatures)),
        )
        return metrics, trajectory

    async def _run_controller(self, controller: Controller, state: SystemState) -> ControllerResult:
        name = controller.name
        timeout = self._config.controller_timeout
        start_time = time.perf_counter()

        # A worker abandoned by a previous timeout still owns the controller instance
        pending = self._pending.get(name)
        if pending is not None and not pending.done():
            logger.warning("Controller %s is still computing a previous cycle, not dispatched", name)
            return self._fallback_result(
                name,
                state,
                f"Controller {name} is still computing a previous cycle",
                start_time,
            )

        task = asyncio.ensure_future(asyncio.to_thread(controller.compute_control, state))
        self._pending[name] = task
        try:
            # The shield keeps the task pending until its worker thread really returns
            action = await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except asyncio.TimeoutError:
            error = OrchestrationTimeout(name, timeout)
            logger.warning("%s, falling back to %s", error, self._last_known_good.get(name))
            return self._fallback_result(name, state, str(error), start_time)
        except Exception as e:
            logger.error("Controller %s failed: %s", name, e, exc_info=True)
            return self._error_result(name, f"{type(e).__name__}: {e}")

        if not self._is_valid_action(action):
            logger.error("Controller %s returned %r instead of a finite control action", name, action)
            return self._error_result(name, f"Invalid control action: {action!r}")

        try:
            return self._build_result(name, state, action, time.perf_counter() - start_time)
        except Exception as e:
            logger.error("Cannot evaluate the action of %s: %s", name, e, exc_info=True)
            return self._error_result(name, f"{type(e).__name__}: {e}")

    def _fallback_result(
        self, name: str, state: SystemState, error: str, start_time: float
    ) -> ControllerResult:
        """Degraded result carrying the last known-good action of the controller, if any."""
        fallback = self._last_known_good.get(name)
        if fallback is None:
            return self._error_result(name, error, degraded=True)
        try:
            return self._build_result(
                name, state, fallback, time.perf_counter() - start_time, error=error, degraded=True
            )
        except Exception as e:
            logger.error("Cannot evaluate the fallback of %s: %s", name, e, exc_info=True)
            return self._error_result(name, error, degraded=True)

    @staticmethod
    def _is_valid_action(action: object) -> bool:
        if not isinstance(action, ControlAction):
            return False
        return all(
            isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)
            for value in (action.current, action.voltage)
        )

    def _build_result(
        self,
        name: str,
        state: SystemState,
        action: ControlAction,
        response_time: float,
        error: str | None = None,
        degraded: bool = False,
    ) -> ControllerResult:
        try:
            metrics, trajectory = self.evaluate_action(state, action, response_time)
        except ModelEvaluationError as e:
            logger.warning("Cannot evaluate the action of %s: %s", name, e)
            return ControllerResult(
                controller_name=name,
                control_action=action,
                performance_metrics=None,
                computed_at=datetime.now().astimezone(),
                constraint_violations=self.check_constraints(action, None),
                error=error if error is not None else str(e),
                degraded=degraded,
            )

        return ControllerResult(
            controller_name=name,
            control_action=action,
            performance_metrics=metrics,
            computed_at=datetime.now().astimezone(),
            constraint_violations=self.check_constraints(action, trajectory),
            error=error,
            degraded=degraded,
        )

    @staticmethod
    def _error_result(name: str, error: str, degraded: bool = False) -> ControllerResult:
        return ControllerResult(
            controller_name=name,
            control_action=None,
            performance_metrics=None,
            computed_at=datetime.now().astimezone(),
            error=error,
            degraded=degraded,
        )
