"""Exception hierarchy of the electrolyzer comparison engine.

Constraint violations have no exception class: they are flags carried by a
result (see `electrolyzer_mpc.comparison.result.ConstraintViolation`), not
errors.
"""


class ElectrolyzerMPCError(Exception):
    """Base class for every error raised by the package."""


class ModelEvaluationError(ElectrolyzerMPCError):
    """A prediction step produced a non-finite or otherwise invalid value.

    Callers exclude the offending candidate, scenario or grid point instead of
    letting the error abort the computation.
    """

    def __init__(self, quantity: str, value: float, step: int) -> None:
        super().__init__(f"Non-finite {quantity} ({value}) at prediction step {step}")
        self.quantity = quantity
        self.value = value
        self.step = step


class ControllerComputationError(ElectrolyzerMPCError):
    """An internal fault within a single controller."""


class OrchestrationTimeout(ElectrolyzerMPCError):
    """A controller exceeded the time budget granted by the orchestrator."""

    def __init__(self, controller_name: str, timeout: float) -> None:
        super().__init__(f"Controller {controller_name} exceeded its {timeout:.2f} s budget")
        self.controller_name = controller_name
        self.timeout = timeout
