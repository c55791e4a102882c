"""Main application module of the electrolyzer controller comparison engine.

This module wires the core components of the application together:
- The shared electrolyzer model, the four controllers and the orchestrator.
- A Redis-based message broker delivering the telemetry states and receiving
  the comparison snapshots and the recommended commands.

Debouncing is driven by the arrival of the states, so no scheduler is needed:
the telemetry subscriber starts a comparison cycle whenever the control
interval has elapsed.
"""

import asyncio
import os

from faststream import FastStream
from faststream.redis import RedisBroker

from electrolyzer_mpc.bridge.rpc import RedisComparisonSink, create_telemetry_router
from electrolyzer_mpc.comparison.build_comparison import build_orchestrator
from electrolyzer_mpc.comparison.orchestrator import OrchestratorConfig
from electrolyzer_mpc.controllers.evolutionary_mpc import EvolutionaryConfig
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)


def redis_url() -> str:
    """Builds the Redis URL from the REDIS_PASSWORD, REDIS_HOST and REDIS_PORT variables."""
    redis_password = os.getenv("REDIS_PASSWORD")
    redis_host = os.getenv("REDIS_HOST", "localhost")
    redis_port = os.getenv("REDIS_PORT", "6379")
    if redis_password:
        return f"redis://:{redis_password}@{redis_host}:{redis_port}"
    return f"redis://{redis_host}:{redis_port}"


def create_app(broker: RedisBroker) -> FastStream:
    """Creates the FastStream application comparing the controllers on the given broker.

    Args:
        broker: The Redis broker carrying the telemetry and the results.

    Returns:
        The FastStream application, ready to run.
    """
    orchestrator = build_orchestrator(
        sink=RedisComparisonSink(broker),
        config=OrchestratorConfig.from_env(),
        evolutionary_config=EvolutionaryConfig.from_env(),
    )

    # Include routers on the broker
    broker.include_router(create_telemetry_router(orchestrator))

    return FastStream(broker)


def main() -> None:
    """Main entry point of the comparison engine.

    This function sets up the Redis event broker, includes the telemetry
    router and starts the FastStream application to listen for states.
    """
    broker = RedisBroker(redis_url())
    app = create_app(broker)

    logger.info("Starting the controller comparison engine")
    asyncio.run(app.run())


if __name__ == "__main__":
    main()
