from enum import Enum
from typing import List, Sequence


class ControllerHelper(Enum):
    """An enumeration of the controller variants and their registration order.

    The member order is the registration order used by the orchestrator to
    break ties between equally scored controllers: the first registered wins.
    """

    HE_NMPC = "HE-NMPC"
    STANDARD_MPC = "Standard-MPC"
    STOCHASTIC_MPC = "Stochastic-MPC"
    MIXED_INTEGER_MPC = "Mixed-Integer-MPC"

    @staticmethod
    def registration_order() -> List[str]:
        """Returns the controller names in registration order."""
        return [variant.value for variant in ControllerHelper]

    @staticmethod
    def from_names(names: Sequence[str]) -> List["ControllerHelper"]:
        """Maps controller names to variants, preserving the given order.

        Args:
            names: Controller names such as "HE-NMPC" or "Standard-MPC".

        Returns:
            The matching variants.

        Raises:
            ValueError: If a name does not match any variant.
        """
        return [ControllerHelper(name) for name in names]
