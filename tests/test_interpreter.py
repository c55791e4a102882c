"""
Tests for the ComparisonInterpreter.
"""

import asyncio
import json

import pandas as pd
import pytest

from electrolyzer_mpc.comparison.interpreter import COLUMNS, ComparisonInterpreter
from electrolyzer_mpc.comparison.orchestrator import ComparisonOrchestrator
from electrolyzer_mpc.controllers.controller import Controller
from electrolyzer_mpc.model.state import ControlAction
from electrolyzer_mpc.util.exceptions import ControllerComputationError


class NominalController(Controller):
    name = "nominal"

    def compute_control(self, state):
        return ControlAction(150.0, 2.1)


class CornerController(Controller):
    name = "corner"

    def compute_control(self, state):
        return ControlAction(100.0, 2.4)


class BrokenController(Controller):
    name = "broken"

    def compute_control(self, state):
        raise ControllerComputationError("internal fault")


@pytest.fixture
def history(model, nominal_state):
    orchestrator = ComparisonOrchestrator(model, [NominalController(), CornerController(), BrokenController()])

    async def run():
        for _ in range(3):
            await orchestrator.run_cycle(nominal_state)

    asyncio.run(run())
    return orchestrator.history


class TestComparisonInterpreter:
    """Tests for the history tables."""

    def test_one_row_per_cycle_and_controller(self, history):
        table = ComparisonInterpreter(history).interpret()

        assert list(table.columns) == COLUMNS
        assert len(table) == 9
        assert table["cycle"].tolist() == [1, 1, 1, 2, 2, 2, 3, 3, 3]

    def test_failed_controller_rows(self, history):
        table = ComparisonInterpreter(history).interpret()
        broken = table[table["controller"] == "broken"]

        assert broken["score"].isna().all()
        assert broken["error"].notna().all()
        assert not broken["is_best"].any()

    def test_summary(self, history):
        summary = ComparisonInterpreter(history).summary()

        assert list(summary.index) == ["nominal", "corner", "broken"]
        assert summary.loc["nominal", "win_rate"] == 1.0
        assert summary.loc["corner", "win_rate"] == 0.0
        assert summary.loc["broken", "errors"] == 3
        assert summary.loc["nominal", "errors"] == 0
        assert summary.loc["nominal", "score"] > summary.loc["corner", "score"]

    def test_win_rates(self, history):
        assert ComparisonInterpreter(history).win_rates() == {"nominal": 1.0, "corner": 0.0, "broken": 0.0}

    def test_summary_to_dict(self, history):
        summary = ComparisonInterpreter(history).summary_to_dict()

        assert summary["broken"]["score"] is None
        assert summary["nominal"]["win_rate"] == 1.0
        assert type(summary["broken"]["errors"]) is float
        assert json.dumps(summary)

    def test_empty_history(self):
        interpreter = ComparisonInterpreter([])

        assert interpreter.interpret().empty
        assert interpreter.summary().empty
        assert interpreter.win_rates() == {}
        assert isinstance(interpreter.summary(), pd.DataFrame)
