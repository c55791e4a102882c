"""This package contains the physical prediction model of the electrolyzer and the records it works on.

The key modules within this package include:
- `state.py`: The immutable `SystemState`, `ControlAction` and
  `PredictionTrajectory` records, together with the actuator bounds every
  controller must respect.
- `electrolyzer_model.py`: The `ElectrolyzerModel`, a deterministic multi-step
  forward simulator (Faraday production, overpotential-based efficiency,
  lumped thermal balance, safety margin).
- `fitness.py`: The weighted multi-objective score shared by the evolutionary
  controller and the comparison harness.
"""
