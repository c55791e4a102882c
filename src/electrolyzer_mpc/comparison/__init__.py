"""This package contains the comparison harness that runs the controllers against each other.

It encompasses the whole comparison cycle, from fanning a state snapshot out
to the controllers to publishing the ranked results.

The key modules within this package include:
- `orchestrator.py`: Defines the `ComparisonOrchestrator` class, which debounces
  incoming states, runs every controller concurrently on one snapshot, checks
  constraints, scores and selects the best performer, and keeps the bounded
  history of published snapshots.
- `build_comparison.py`: Instantiates the shared model and the controllers in
  registration order and wires them into an orchestrator.
- `result.py`: Defines the `ControllerResult`, `PerformanceMetrics`,
  `ConstraintViolation` and `ComparisonSnapshot` records.
- `sink.py`: Defines the `ComparisonSink` publish interface and the default
  `LoggingSink`.
- `interpreter.py`: Defines the `ComparisonInterpreter` class, which flattens
  the history into Pandas DataFrames and computes per-controller win rates.
"""
