"""
Tests for the Redis telemetry router and the Redis comparison sink, run
against FastStream's in-memory test broker.
"""

import asyncio
from typing import Any, Dict

import pytest
from faststream.redis import RedisBroker, TestRedisBroker

from electrolyzer_mpc.bridge.rpc import RedisComparisonSink, create_telemetry_router
from electrolyzer_mpc.comparison.orchestrator import ComparisonOrchestrator, OrchestratorConfig
from electrolyzer_mpc.controllers.quadratic_tracking_mpc import QuadraticTrackingMPC

TELEMETRY = {
    "current": 150.0,
    "voltage": 2.1,
    "efficiency": 75.0,
    "o2Production": 40.0,
    "stackTemperature": 65.0,
    "safetyMargin": 90.0,
}


@pytest.fixture
def broker():
    return RedisBroker()


@pytest.fixture
def orchestrator(model, broker):
    return ComparisonOrchestrator(
        model,
        [QuadraticTrackingMPC()],
        sink=RedisComparisonSink(broker),
        config=OrchestratorConfig(control_interval=15.0),
    )


class TestTelemetryRouter:
    """Tests for the telemetry subscriber and the published messages."""

    def test_state_triggers_a_published_comparison(self, broker, orchestrator):
        broker.include_router(create_telemetry_router(orchestrator))

        @broker.subscriber("electrolyzer/comparison")
        async def on_comparison(snapshot: Dict[str, Any]) -> None:
            pass

        @broker.subscriber("electrolyzer/command")
        async def on_command(command: Dict[str, Any]) -> None:
            pass

        async def run():
            async with TestRedisBroker(broker) as test_broker:
                await test_broker.publish(TELEMETRY, channel="electrolyzer/state")

                on_comparison.mock.assert_called_once()
                snapshot = on_comparison.mock.call_args.args[0]
                assert snapshot["bestPerformer"] == "Standard-MPC"
                assert snapshot["state"]["stackTemperature"] == 65.0

                on_command.mock.assert_called_once()
                command = on_command.mock.call_args.args[0]
                assert command["command"] == "SET_CONTROL"
                assert command["controller"] == "Standard-MPC"
                assert command["current"] == pytest.approx(162.5)
                assert command["voltage"] == pytest.approx(2.075)

        asyncio.run(run())
        assert len(orchestrator.history) == 1

    def test_fast_telemetry_is_debounced(self, broker, orchestrator):
        broker.include_router(create_telemetry_router(orchestrator))

        async def run():
            async with TestRedisBroker(broker) as test_broker:
                for _ in range(3):
                    await test_broker.publish(TELEMETRY, channel="electrolyzer/state")

        asyncio.run(run())
        assert len(orchestrator.history) == 1

    def test_malformed_record_is_rejected(self, broker, orchestrator):
        broker.include_router(create_telemetry_router(orchestrator))

        async def run():
            async with TestRedisBroker(broker) as test_broker:
                await test_broker.publish({"current": "a lot"}, channel="electrolyzer/state")

        asyncio.run(run())
        assert orchestrator.history == ()

    def test_summary_is_published(self, model, broker):
        orchestrator = ComparisonOrchestrator(
            model,
            [QuadraticTrackingMPC()],
            sink=RedisComparisonSink(broker),
            config=OrchestratorConfig(summary_interval=1),
        )
        broker.include_router(create_telemetry_router(orchestrator))

        @broker.subscriber("electrolyzer/summary")
        async def on_summary(summary: Dict[str, Any]) -> None:
            pass

        async def run():
            async with TestRedisBroker(broker) as test_broker:
                await test_broker.publish(TELEMETRY, channel="electrolyzer/state")

                on_summary.mock.assert_called_once()
                summary = on_summary.mock.call_args.args[0]
                assert summary["Standard-MPC"]["win_rate"] == 1.0
                assert summary["Standard-MPC"]["errors"] == 0

        asyncio.run(run())
