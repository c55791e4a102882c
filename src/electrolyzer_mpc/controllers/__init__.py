"""This package defines the controllers compared by the orchestrator.

It provides the common capability interface and four independent
implementations of it, each computing a control action (stack current, cell
voltage) from one immutable state snapshot.

The key modules within this package include:
- `controller.py`: Defines the abstract base class `Controller`, the single
  interface (`compute_control`) the orchestrator fans out over.
- `helper.py`: Provides the `ControllerHelper` enumeration of controller
  names, whose order is the registration order used to break ties.
- `evolutionary_mpc.py`: Implements the HE-NMPC controller, a seeded genetic
  search scored over the prediction horizon of the shared model.
- `quadratic_tracking_mpc.py`: Implements the single-shot proportional
  tracking controller (Standard-MPC).
- `scenario_robust_mpc.py`: Implements the scenario ensemble controller
  (Stochastic-MPC), aggregating per-scenario tracking solutions by their
  probabilities.
- `mixed_integer_mpc.py`: Implements the discrete-current / continuous-voltage
  grid search (Mixed-Integer-MPC).
"""
