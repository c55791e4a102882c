from abc import ABC, abstractmethod
from typing import Dict

from electrolyzer_mpc.comparison.result import ComparisonSnapshot
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)


class ComparisonSink(ABC):
    """Destination of the published comparison snapshots.

    The orchestrator makes no assumption about the transport: a sink only has
    to accept the structured snapshot, which carries the per-controller results,
    the best performer and the recommended control action.
    """

    @abstractmethod
    async def publish(self, snapshot: ComparisonSnapshot) -> None:
        """Publishes one snapshot."""
        raise NotImplementedError

    async def publish_summary(self, summary: Dict[str, Dict[str, float]]) -> None:
        """Publishes the per-controller summary of the history.

        Args:
            summary: Mean metrics, win rate and error count keyed by controller name.
        """
        for controller, row in summary.items():
            logger.info(
                "%s: win rate %s, mean score %s, errors %s",
                controller,
                row.get("win_rate"),
                row.get("score"),
                row.get("errors"),
            )


class LoggingSink(ComparisonSink):
    """Sink writing a one-line summary of every snapshot to the log."""

    async def publish(self, snapshot: ComparisonSnapshot) -> None:
        if snapshot.recommended_action is None:
            logger.warning("Cycle %s produced no actionable command", snapshot.cycle)
            return
        logger.info(
            "Cycle %s: best performer %s -> %s A, %.3f V%s",
            snapshot.cycle,
            snapshot.best_performer,
            round(snapshot.recommended_action.current, 2),
            snapshot.recommended_action.voltage,
            " (degraded)" if snapshot.degraded else "",
        )
