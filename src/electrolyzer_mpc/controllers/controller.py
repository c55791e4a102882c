from abc import ABC, abstractmethod

from electrolyzer_mpc.model.state import ControlAction, SystemState


class Controller(ABC):
    """Abstract base class for a controller taking part in the comparison.

    This class defines the single capability the orchestrator relies on: given
    one immutable state snapshot, return a control action. Every implementation
    is independent of the others, which lets the orchestrator fan out over a
    homogeneous collection of controllers.
    """

    name: str = "controller"

    @abstractmethod
    def compute_control(self, state: SystemState) -> ControlAction:
        """Computes the control action for the given state.

        Implementations must not mutate the state, and must return an action
        already clamped to the actuator bounds ([100, 200] A, [1.8, 2.4] V).

        Args:
            state: The snapshot captured at the start of the control cycle.

        Returns:
            The clamped control action.

        Raises:
            ControllerComputationError: On an internal fault of the controller.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
