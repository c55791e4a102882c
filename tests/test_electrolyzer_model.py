"""
Tests for the electrolyzer prediction model and the shared fitness function.
"""

import math
from dataclasses import replace

import numpy as np
import pytest

from electrolyzer_mpc.model.electrolyzer_model import ElectrolyzerModel, ElectrolyzerParameters
from electrolyzer_mpc.model.fitness import control_effort, score_trajectory, stability
from electrolyzer_mpc.model.state import NOMINAL_ACTION, ControlAction, SystemState
from electrolyzer_mpc.util.exceptions import ModelEvaluationError


class TestPrediction:
    """Tests for ElectrolyzerModel.predict."""

    def test_trajectory_length(self, model, nominal_state):
        trajectory = model.predict(nominal_state, NOMINAL_ACTION, 10)

        assert len(trajectory) == 11
        assert len(trajectory.predicted) == 10
        assert trajectory.initial is nominal_state

    def test_prediction_is_deterministic(self, model, nominal_state):
        first = model.predict(nominal_state, ControlAction(170.0, 2.2), 10)
        second = model.predict(nominal_state, ControlAction(170.0, 2.2), 10)

        assert first == second

    def test_initial_state_is_not_mutated(self, model, nominal_state):
        copy = replace(nominal_state)
        model.predict(nominal_state, ControlAction(200.0, 2.4), 10)

        assert nominal_state == copy

    def test_values_stay_within_physical_bounds(self, model, nominal_state):
        parameters = model.parameters
        for current in (100.0, 150.0, 200.0):
            trajectory = model.predict(nominal_state, ControlAction(current, 2.1), 20)
            for state in trajectory.predicted:
                assert parameters.efficiency_min <= state.efficiency <= parameters.efficiency_max
                assert state.o2_production >= 0.0
                assert parameters.temperature_min <= state.stack_temperature <= parameters.temperature_max
                assert 0.0 <= state.safety_margin <= 100.0

    def test_nominal_operating_point(self, model, nominal_state):
        state = model.step(nominal_state, NOMINAL_ACTION)

        assert state.efficiency == pytest.approx(75.8, abs=0.5)
        assert 35.0 < state.o2_production < 50.0

    def test_higher_current_produces_more_oxygen(self, model, nominal_state):
        low = model.predict(nominal_state, ControlAction(100.0, 2.1), 5)
        high = model.predict(nominal_state, ControlAction(200.0, 2.1), 5)

        assert np.mean(high.productions) > np.mean(low.productions)
        assert np.mean(high.efficiencies) < np.mean(low.efficiencies)

    def test_high_current_heats_the_stack(self, model, nominal_state):
        trajectory = model.predict(nominal_state, ControlAction(200.0, 2.4), 10)

        assert trajectory.final.stack_temperature > nominal_state.stack_temperature

    def test_temperature_is_clamped(self, nominal_state):
        model = ElectrolyzerModel(ElectrolyzerParameters(temperature_max=66.0))
        trajectory = model.predict(nominal_state, ControlAction(200.0, 2.4), 50)

        assert max(trajectory.temperatures) <= 66.0

    def test_non_positive_horizon_raises(self, model, nominal_state):
        with pytest.raises(ValueError):
            model.predict(nominal_state, NOMINAL_ACTION, 0)

    def test_non_finite_temperature_raises(self, model, nominal_state):
        state = nominal_state.with_changes(stack_temperature=math.nan)

        with pytest.raises(ModelEvaluationError) as excinfo:
            model.predict(state, NOMINAL_ACTION, 5)
        assert excinfo.value.quantity == "stack_temperature"
        assert excinfo.value.step == 0

    def test_non_finite_current_raises(self, model, nominal_state):
        with pytest.raises(ModelEvaluationError):
            model.predict(nominal_state, ControlAction(math.inf, 2.1), 5)


class TestFitness:
    """Tests for the shared performance score."""

    def test_control_effort_is_zero_at_nominal(self):
        assert control_effort(NOMINAL_ACTION) == 0.0
        assert control_effort(ControlAction(200.0, 2.4)) == pytest.approx(1.0)

    def test_voltage_deviation_adds_to_current_deviation(self):
        # Same current, the voltage alone separates the two candidates
        assert control_effort(ControlAction(150.0, 2.4)) == pytest.approx(0.5)
        assert control_effort(ControlAction(200.0, 2.1)) == pytest.approx(0.5)
        assert control_effort(ControlAction(150.0, 2.2)) < control_effort(ControlAction(150.0, 2.4))

    def test_stability_of_constant_trajectory(self, model, nominal_state):
        # At steady state the efficiency barely moves
        trajectory = model.predict(nominal_state, NOMINAL_ACTION, 10)

        assert 0.0 < stability(trajectory) <= 1.0

    def test_score_is_deterministic_and_bounded(self, model, nominal_state):
        trajectory = model.predict(nominal_state, NOMINAL_ACTION, 10)
        score = score_trajectory(trajectory)

        assert score == score_trajectory(trajectory)
        assert 0.0 < score < 100.0

    def test_effort_penalty_lowers_the_score(self, model, nominal_state):
        trajectory = model.predict(nominal_state, ControlAction(150.0, 2.4), 10)

        penalized = score_trajectory(trajectory)
        unpenalized = score_trajectory(trajectory, nominal=ControlAction(150.0, 2.4))

        assert penalized < unpenalized


class TestRecords:
    """Tests for the state and action records."""

    def test_action_is_clamped(self):
        action = ControlAction(250.0, 1.0).clamped()

        assert action == ControlAction(200.0, 1.8)
        assert action.is_within_bounds()

    def test_state_from_telemetry_record(self):
        state = SystemState.from_dict(
            {"current": "160", "voltage": 2.15, "o2Production": 42.0, "stackTemperature": 66.0, "unknown": 1}
        )

        assert state.current == 160.0
        assert state.o2_production == 42.0
        assert state.stack_temperature == 66.0
        assert state.efficiency == 75.0
        assert state.economic_setpoint is None

    def test_state_round_trip_keys(self, nominal_state):
        assert SystemState.from_dict(nominal_state.to_dict()) == nominal_state

    def test_malformed_record_raises(self):
        with pytest.raises(ValueError):
            SystemState.from_dict({"current": "a lot"})
