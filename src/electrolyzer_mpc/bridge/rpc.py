"""This module connects the comparison engine to the Redis message broker.

It builds a FastStream `RedisRouter` whose subscriber receives the telemetry
records of the electrolyzer, converts them into `SystemState` snapshots and
hands them to the orchestrator. It also provides the `RedisComparisonSink`,
which publishes the comparison snapshots, the recommended command and the
periodic controller summary back on the broker. Connection management and
reconnection are left to FastStream.
"""

from typing import Any, Dict

from faststream.redis import RedisBroker, RedisRouter

from electrolyzer_mpc.comparison.orchestrator import ComparisonOrchestrator
from electrolyzer_mpc.comparison.result import ComparisonSnapshot
from electrolyzer_mpc.comparison.sink import ComparisonSink
from electrolyzer_mpc.model.state import SystemState
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)

TOPIC_PREFIX = "electrolyzer/"
STATE_TOPIC = "state"
COMPARISON_TOPIC = "comparison"
COMMAND_TOPIC = "command"
SUMMARY_TOPIC = "summary"


def create_telemetry_router(orchestrator: ComparisonOrchestrator, prefix: str = TOPIC_PREFIX) -> RedisRouter:
    """Creates the router feeding telemetry records to the orchestrator.

    Args:
        orchestrator: The orchestrator receiving the parsed states.
        prefix: The channel prefix of every topic.

    Returns:
        A `RedisRouter` to include on the broker.
    """
    router = RedisRouter(prefix=prefix)

    @router.subscriber(STATE_TOPIC)
    async def handle_state(record: Dict[str, Any]) -> bool:
        """Handles one telemetry record.

        Args:
            record: The telemetry record, with the camelCase keys of the bridge.

        Returns:
            True if the record started a comparison cycle, False if it was
            rejected or debounced.
        """
        try:
            state = SystemState.from_dict(record)
        except (TypeError, ValueError) as e:
            logger.error("Rejecting malformed telemetry record %s: %s", record, e)
            return False

        snapshot = await orchestrator.on_state(state)
        return snapshot is not None

    return router


class RedisComparisonSink(ComparisonSink):
    """Publishes the snapshots, the recommended command and the summaries on the broker."""

    def __init__(self, broker: RedisBroker, prefix: str = TOPIC_PREFIX) -> None:
        self._broker = broker
        self._comparison_channel = prefix + COMPARISON_TOPIC
        self._command_channel = prefix + COMMAND_TOPIC
        self._summary_channel = prefix + SUMMARY_TOPIC

    async def publish(self, snapshot: ComparisonSnapshot) -> None:
        await self._broker.publish(snapshot.to_dict(), channel=self._comparison_channel)

        if snapshot.recommended_action is None:
            logger.warning("No recommended action for cycle %s, no command sent", snapshot.cycle)
            return

        command = {
            "command": "SET_CONTROL",
            "controller": snapshot.best_performer,
            "degraded": snapshot.degraded,
            "constraintViolations": sorted(
                violation.value
                for violation in snapshot.results[snapshot.best_performer].constraint_violations
            ),
            "timestamp": snapshot.timestamp.isoformat(),
            **snapshot.recommended_action.to_dict(),
        }
        await self._broker.publish(command, channel=self._command_channel)
        logger.info("Command sent on %s: %s", self._command_channel, command)

    async def publish_summary(self, summary: Dict[str, Dict[str, float]]) -> None:
        await self._broker.publish(summary, channel=self._summary_channel)
