"""
Tests for the hybrid evolutionary controller (HE-NMPC).
"""

import pytest

from electrolyzer_mpc.controllers.evolutionary_mpc import EvolutionaryConfig, EvolutionaryMPC
from electrolyzer_mpc.model.electrolyzer_model import ElectrolyzerModel
from electrolyzer_mpc.model.fitness import score_trajectory
from electrolyzer_mpc.model.state import NOMINAL_ACTION
from electrolyzer_mpc.util.exceptions import ControllerComputationError, ModelEvaluationError


class TestEvolutionaryMPC:
    """Tests for EvolutionaryMPC.compute_control."""

    def test_name(self, model):
        assert EvolutionaryMPC(model).name == "HE-NMPC"

    def test_action_within_bounds(self, model, nominal_state, hot_state):
        controller = EvolutionaryMPC(model)
        for state in (nominal_state, hot_state):
            action = controller.compute_control(state)
            assert 100.0 <= action.current <= 200.0
            assert 1.8 <= action.voltage <= 2.4

    def test_population_size_is_constant(self, model, nominal_state):
        config = EvolutionaryConfig(population_size=20, generations=10)
        controller = EvolutionaryMPC(model, config)
        controller.compute_control(nominal_state)

        report = controller.last_report
        assert report.population_sizes == [20] * 10
        assert len(report.best_fitness) == 10

    def test_best_fitness_never_decreases(self, model, nominal_state):
        controller = EvolutionaryMPC(model)
        controller.compute_control(nominal_state)

        best = controller.last_report.best_fitness
        assert all(later >= earlier for earlier, later in zip(best, best[1:]))

    def test_not_worse_than_nominal_setpoint(self, model, nominal_state):
        config = EvolutionaryConfig()
        action = EvolutionaryMPC(model, config).compute_control(nominal_state)

        chosen = score_trajectory(model.predict(nominal_state, action, config.horizon))
        baseline = score_trajectory(model.predict(nominal_state, NOMINAL_ACTION, config.horizon))
        assert chosen >= baseline - 1e-9

    def test_same_state_same_action(self, model, nominal_state):
        controller = EvolutionaryMPC(model)

        assert controller.compute_control(nominal_state) == controller.compute_control(nominal_state)

    def test_other_seed_stays_within_bounds(self, model, nominal_state):
        action = EvolutionaryMPC(model, EvolutionaryConfig(seed=7)).compute_control(nominal_state)

        assert action.is_within_bounds()

    def test_seed_strategies_are_clamped(self, model, nominal_state):
        seeds = EvolutionaryMPC(model).seed_strategies(nominal_state.with_changes(current=195.0))

        assert set(seeds) == {
            "optimal_setpoint",
            "efficiency_boost",
            "production_boost",
            "cooling",
            "heating",
            "adaptive",
        }
        assert all(seed.is_within_bounds() for seed in seeds.values())
        assert seeds["production_boost"].current == 200.0

    def test_failed_candidates_are_excluded(self, nominal_state):
        class FlakyModel(ElectrolyzerModel):
            def predict(self, initial_state, control, steps):
                if control.current > 160.0:
                    raise ModelEvaluationError("efficiency", float("nan"), 0)
                return super().predict(initial_state, control, steps)

        controller = EvolutionaryMPC(FlakyModel())
        action = controller.compute_control(nominal_state)

        assert action.current <= 160.0
        assert controller.last_report.excluded_candidates > 0

    def test_every_candidate_failing_raises(self, nominal_state):
        class BrokenModel(ElectrolyzerModel):
            def predict(self, initial_state, control, steps):
                raise ModelEvaluationError("efficiency", float("nan"), 0)

        with pytest.raises(ControllerComputationError):
            EvolutionaryMPC(BrokenModel()).compute_control(nominal_state)

    @pytest.mark.parametrize(
        "config",
        [
            EvolutionaryConfig(population_size=1),
            EvolutionaryConfig(generations=0),
            EvolutionaryConfig(horizon=0),
        ],
    )
    def test_invalid_config_raises(self, model, config):
        with pytest.raises(ValueError):
            EvolutionaryMPC(model, config)

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("HENMPC_POPULATION", "30")
        monkeypatch.setenv("HENMPC_SEED", "3")

        config = EvolutionaryConfig.from_env()
        assert config.population_size == 30
        assert config.seed == 3
        assert config.generations == 10
