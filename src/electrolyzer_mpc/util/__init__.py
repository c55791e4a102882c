"""
The `util` module provides general-purpose helpers shared by the prediction
model, the controllers and the comparison harness.

Key functionalities and components include:

- [`logging.py`](src/electrolyzer_mpc/util/logging.py): Centralized logger
  configuration through the `LoggingUtil` class. Log levels are adjusted with
  the `LOGLEVEL` environment variable.

- [`exceptions.py`](src/electrolyzer_mpc/util/exceptions.py): The exception
  hierarchy used across the package to separate model evaluation failures,
  isolated controller faults and orchestration timeouts.
"""
