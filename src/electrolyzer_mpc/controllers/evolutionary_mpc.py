"""This module implements the hybrid evolutionary nonlinear MPC (HE-NMPC) controller.

The controller searches the (current, voltage) box with a small genetic
algorithm. Each candidate is held constant over the prediction horizon, the
shared `ElectrolyzerModel` predicts the resulting trajectory and the shared
fitness function scores it. The search runs through three phases:

1.  Initialization: the population is filled by replicating a fixed library of
    seed strategies (nominal set-point, efficiency boost, production boost,
    cooling, heating and an adaptive blend driven by the efficiency and
    temperature errors). Replicas beyond the first copy are mutated.
2.  Generations: candidates are evaluated, the best half is kept unchanged
    (truncation selection) and the population is refilled with blend
    crossover children followed by bounded mutation.
3.  Termination: after a fixed number of generations the best individual is
    returned, clamped to the actuator bounds.

A candidate whose prediction fails receives a fitness of minus infinity and is
never selected. Mutation uses an explicitly seeded generator, re-created for
every computation, so identical states yield identical actions.
"""

import os
from dataclasses import dataclass, field
from time import time
from typing import Dict, List

import numpy as np

from electrolyzer_mpc.controllers.controller import Controller
from electrolyzer_mpc.controllers.helper import ControllerHelper
from electrolyzer_mpc.model.electrolyzer_model import ElectrolyzerModel
from electrolyzer_mpc.model.fitness import FitnessWeights, score_trajectory
from electrolyzer_mpc.model.state import (
    CURRENT_MAX,
    CURRENT_MIN,
    NOMINAL_CURRENT,
    NOMINAL_VOLTAGE,
    VOLTAGE_MAX,
    VOLTAGE_MIN,
    ControlAction,
    SystemState,
)
from electrolyzer_mpc.util.exceptions import ControllerComputationError, ModelEvaluationError
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)

_LOWER_BOUNDS = np.array([CURRENT_MIN, VOLTAGE_MIN])
_UPPER_BOUNDS = np.array([CURRENT_MAX, VOLTAGE_MAX])


@dataclass(frozen=True)
class EvolutionaryConfig:
    """Static parameters of the evolutionary search."""

    population_size: int = 20
    generations: int = 10
    horizon: int = 10
    crossover_alpha: float = 0.7
    mutation_probability: float = 0.3
    mutation_current: float = 15.0  # A
    mutation_voltage: float = 0.1  # V
    selection_fraction: float = 0.5
    seed: int = 42
    efficiency_target: float = 80.0  # %
    temperature_target: float = 70.0  # °C
    weights: FitnessWeights = field(default_factory=FitnessWeights)

    @classmethod
    def from_env(cls) -> "EvolutionaryConfig":
        """Reads the search size from the environment, keeping defaults for the rest."""
        return cls(
            population_size=int(os.getenv("HENMPC_POPULATION", "20")),
            generations=int(os.getenv("HENMPC_GENERATIONS", "10")),
            horizon=int(os.getenv("HENMPC_HORIZON", "10")),
            seed=int(os.getenv("HENMPC_SEED", "42")),
        )


@dataclass
class EvolutionReport:
    """Diagnostics of the last evolutionary computation."""

    population_sizes: List[int] = field(default_factory=list)
    best_fitness: List[float] = field(default_factory=list)
    excluded_candidates: int = 0
    best_action: ControlAction | None = None


class EvolutionaryMPC(Controller):
    """Population-based predictive controller (HE-NMPC)."""

    name = ControllerHelper.HE_NMPC.value

    def __init__(self, model: ElectrolyzerModel, config: EvolutionaryConfig | None = None) -> None:
        """Initializes the controller.

        Args:
            model: The shared prediction model used to score candidates.
            config: The search parameters, `EvolutionaryConfig()` when omitted.

        Raises:
            ValueError: If the population, generation count or horizon is not positive.
        """
        self._model = model
        self._config = config if config is not None else EvolutionaryConfig()
        if self._config.population_size < 2:
            logger.error("Invalid population size: %s", self._config.population_size)
            raise ValueError("The population must contain at least two candidates.")
        if self._config.generations < 1 or self._config.horizon < 1:
            logger.error(
                "Invalid generations (%s) or horizon (%s)",
                self._config.generations,
                self._config.horizon,
            )
            raise ValueError("The generation count and the horizon must be positive.")
        self.last_report: EvolutionReport | None = None

    @property
    def config(self) -> EvolutionaryConfig:
        return self._config

    def compute_control(self, state: SystemState) -> ControlAction:
        start_time = time()
        config = self._config
        rng = np.random.default_rng(config.seed)
        report = EvolutionReport()

        population = self.initial_population(state, rng)
        fitness = np.full(len(population), -np.inf)
        for generation in range(config.generations):
            fitness = self._evaluate(population, state, report)
            report.population_sizes.append(len(population))
            report.best_fitness.append(float(np.max(fitness)))
            logger.debug(
                "Generation %s: best fitness %.3f, %s candidates",
                generation,
                report.best_fitness[-1],
                len(population),
            )

            if not np.isfinite(fitness).any():
                self.last_report = report
                raise ControllerComputationError(
                    f"Every candidate of generation {generation} failed the model evaluation"
                )

            if generation < config.generations - 1:
                population = self._next_generation(population, fitness, rng)

        best = ControlAction.from_array(population[int(np.argmax(fitness))]).clamped()
        report.best_action = best
        self.last_report = report

        logger.info(
            "The HE-NMPC took %.2f seconds: %s A, %.3f V (fitness %.3f)",
            time() - start_time,
            round(best.current, 2),
            best.voltage,
            report.best_fitness[-1],
        )
        return best

    def seed_strategies(self, state: SystemState) -> Dict[str, ControlAction]:
        """Returns the seed library for the given state, each seed clamped."""
        config = self._config
        efficiency_error = config.efficiency_target - state.efficiency
        temperature_error = config.temperature_target - state.stack_temperature

        seeds = {
            "optimal_setpoint": ControlAction(NOMINAL_CURRENT, NOMINAL_VOLTAGE),
            "efficiency_boost": ControlAction(state.current - 20.0, state.voltage - 0.05),
            "production_boost": ControlAction(state.current + 25.0, state.voltage + 0.1),
            "cooling": ControlAction(state.current - 30.0, state.voltage - 0.1),
            "heating": ControlAction(state.current + 15.0, state.voltage + 0.05),
            # Below target efficiency: back off current; below target temperature: push it
            "adaptive": ControlAction(
                NOMINAL_CURRENT - 2.0 * efficiency_error + 1.5 * temperature_error,
                NOMINAL_VOLTAGE - 0.01 * efficiency_error + 0.005 * temperature_error,
            ),
        }
        return {name: action.clamped() for name, action in seeds.items()}

    def initial_population(self, state: SystemState, rng: np.random.Generator) -> np.ndarray:
        """Builds the initial population by replicating and padding the seed library."""
        seeds = np.array([action.as_array() for action in self.seed_strategies(state).values()])
        population = np.array(
            [seeds[index % len(seeds)] for index in range(self._config.population_size)]
        )
        # Replicas are mutated so that padding adds diversity
        for index in range(len(seeds), len(population)):
            population[index] = self._mutate(population[index], rng, probability=1.0)
        return population

    def _evaluate(
        self, population: np.ndarray, state: SystemState, report: EvolutionReport
    ) -> np.ndarray:
        fitness = np.empty(len(population))
        for index, candidate in enumerate(population):
            action = ControlAction.from_array(candidate)
            try:
                trajectory = self._model.predict(state, action, self._config.horizon)
                fitness[index] = score_trajectory(trajectory, self._config.weights)
            except ModelEvaluationError as e:
                logger.warning("Excluding candidate %s: %s", action, e)
                report.excluded_candidates += 1
                fitness[index] = -np.inf
        return fitness

    def _next_generation(
        self, population: np.ndarray, fitness: np.ndarray, rng: np.random.Generator
    ) -> np.ndarray:
        """Keeps the best fraction of the viable candidates and refills with children."""
        size = len(population)
        ranking = np.argsort(-fitness, kind="stable")
        viable = [index for index in ranking if np.isfinite(fitness[index])]
        n_elite = max(1, min(len(viable), int(size * self._config.selection_fraction)))
        elite = population[viable[:n_elite]]

        children = []
        alpha = self._config.crossover_alpha
        while len(elite) + len(children) < size:
            first, second = rng.integers(0, len(elite), size=2)
            child = alpha * elite[first] + (1.0 - alpha) * elite[second]
            children.append(self._mutate(child, rng))

        if not children:
            return elite.copy()
        return np.vstack([elite, np.array(children)])

    def _mutate(
        self, candidate: np.ndarray, rng: np.random.Generator, probability: float | None = None
    ) -> np.ndarray:
        probability = self._config.mutation_probability if probability is None else probability
        mutated = candidate.copy()
        if rng.random() < probability:
            magnitude = np.array([self._config.mutation_current, self._config.mutation_voltage])
            mutated = mutated + rng.uniform(-magnitude, magnitude)
        return np.clip(mutated, _LOWER_BOUNDS, _UPPER_BOUNDS)
