"""This module defines the ComparisonInterpreter class, which turns the comparison history into tables.

It flattens the rolling history of `ComparisonSnapshot` objects into a Pandas
DataFrame with one row per cycle and controller, and derives the aggregated
views used to compare the controllers over time: mean performance per
controller and the share of cycles each controller won.
"""

from typing import Any, Dict, List, Sequence

import numpy as np
import pandas as pd

from electrolyzer_mpc.comparison.result import ComparisonSnapshot
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)

COLUMNS = [
    "cycle",
    "timestamp",
    "controller",
    "current",
    "voltage",
    "score",
    "efficiency",
    "production",
    "safety_margin",
    "stability",
    "cost",
    "response_time",
    "violations",
    "error",
    "degraded",
    "is_best",
]


class ComparisonInterpreter:
    """Interprets the comparison history produced by the orchestrator."""

    def __init__(self, history: Sequence[ComparisonSnapshot]) -> None:
        """Initializes the interpreter.

        Args:
            history: The published snapshots, oldest first.
        """
        self._history = list(history)

    def interpret(self) -> pd.DataFrame:
        """Flattens the history into one row per cycle and controller.

        Controllers without an action or without metrics get NaN in the
        numeric columns.

        Returns:
            A DataFrame with the columns listed in `COLUMNS`.
        """
        rows: List[Dict[str, Any]] = []
        for snapshot in self._history:
            for name, result in snapshot.results.items():
                action = result.control_action
                metrics = result.performance_metrics
                rows.append(
                    {
                        "cycle": snapshot.cycle,
                        "timestamp": snapshot.timestamp,
                        "controller": name,
                        "current": action.current if action else np.nan,
                        "voltage": action.voltage if action else np.nan,
                        "score": metrics.score if metrics else np.nan,
                        "efficiency": metrics.efficiency if metrics else np.nan,
                        "production": metrics.production if metrics else np.nan,
                        "safety_margin": metrics.safety_margin if metrics else np.nan,
                        "stability": metrics.stability if metrics else np.nan,
                        "cost": metrics.cost if metrics else np.nan,
                        "response_time": metrics.response_time if metrics else np.nan,
                        "violations": ",".join(sorted(v.value for v in result.constraint_violations)),
                        "error": result.error,
                        "degraded": result.degraded,
                        "is_best": name == snapshot.best_performer,
                    }
                )

        if not rows:
            logger.warning("No comparison cycle to interpret.")
        return pd.DataFrame(rows, columns=COLUMNS)

    def summary(self) -> pd.DataFrame:
        """Mean metrics, win rate and error count per controller, indexed by controller name."""
        table = self.interpret()
        if table.empty:
            return pd.DataFrame(
                columns=["score", "efficiency", "stability", "cost", "response_time", "win_rate", "errors"]
            )

        grouped = table.groupby("controller", sort=False)
        summary = grouped[["score", "efficiency", "stability", "cost", "response_time"]].mean()
        summary["win_rate"] = grouped["is_best"].mean()
        summary["errors"] = grouped["error"].count()
        return summary

    def win_rates(self) -> Dict[str, float]:
        """Share of cycles won by each controller."""
        summary = self.summary()
        return {name: float(rate) for name, rate in summary["win_rate"].items()}

    def summary_to_dict(self) -> Dict[str, Dict[str, float]]:
        """Summary converted to a JSON-friendly dictionary keyed by controller."""
        summary = self.summary()
        return {
            controller: {column: None if pd.isna(value) else float(value) for column, value in row.items()}
            for controller, row in summary.iterrows()
        }
