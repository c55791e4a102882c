"""
The `bridge` module is the boundary between the comparison engine and the
message bus. It contains no control logic.

Key functionalities and components include:

- [`rpc.py`](src/electrolyzer_mpc/bridge/rpc.py): Builds the FastStream Redis
  router that subscribes to the electrolyzer telemetry and feeds the
  orchestrator, and defines the `RedisComparisonSink` that publishes the
  comparison snapshots and the recommended control command.
"""
