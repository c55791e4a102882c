"""
The `electrolyzer_mpc` package compares several model predictive control
strategies on a PEM water electrolyzer producing oxygen.

Its primary purpose is to decide, at every control interval, which set-point
(stack current and cell voltage) to apply. Instead of trusting one control
law, the package runs four controllers side by side on the same measured
state, predicts the consequences of each proposed action with one shared
physical model, and recommends the action of the best performer. Every
controller is judged with the same fitness function, so the ranking reflects
the quality of the actions and not the optimism of each controller.

The comparison is twofold:
1.  **Control computation:** Each controller proposes an action from the state
    snapshot: a hybrid evolutionary nonlinear MPC, a quadratic tracking MPC, a
    scenario-based robust MPC and a mixed discrete/continuous MPC.
2.  **Arbitration:** The orchestrator runs them concurrently, isolates their
    failures and timeouts, flags constraint violations, scores the actions
    and keeps a rolling history of the comparisons.

Sub-packages:
-------------
- `model`:
  Defines the immutable state, action and trajectory records, the physical
  prediction model of the stack and the shared fitness function.

- `controllers`:
  Contains the standardized `Controller` interface and its four
  implementations.

- `comparison`:
  The core of the arbitration. It builds the controllers, runs the comparison
  cycles, ranks the results and turns the history into tables.

- `bridge`:
  Connects the engine to the Redis message bus: telemetry in, comparison
  snapshots and recommended commands out.

- `util`:
  General-purpose utilities, most notably the centralized logging utility and
  the exception hierarchy of the package.
"""
