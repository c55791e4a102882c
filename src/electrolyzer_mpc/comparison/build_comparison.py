from typing import List, Sequence

from electrolyzer_mpc.comparison.orchestrator import ComparisonOrchestrator, OrchestratorConfig
from electrolyzer_mpc.comparison.sink import ComparisonSink
from electrolyzer_mpc.controllers.controller import Controller
from electrolyzer_mpc.controllers.evolutionary_mpc import EvolutionaryConfig, EvolutionaryMPC
from electrolyzer_mpc.controllers.helper import ControllerHelper
from electrolyzer_mpc.controllers.mixed_integer_mpc import MixedIntegerConfig, MixedIntegerMPC
from electrolyzer_mpc.controllers.quadratic_tracking_mpc import (
    QuadraticTrackingConfig,
    QuadraticTrackingMPC,
)
from electrolyzer_mpc.controllers.scenario_robust_mpc import ScenarioConfig, ScenarioRobustMPC
from electrolyzer_mpc.model.electrolyzer_model import ElectrolyzerModel, ElectrolyzerParameters
from electrolyzer_mpc.util.logging import LoggingUtil

logger = LoggingUtil.get_logger(__name__)


def build_controllers(
    model: ElectrolyzerModel,
    variants: Sequence[str] | None = None,
    evolutionary_config: EvolutionaryConfig | None = None,
    tracking_config: QuadraticTrackingConfig | None = None,
    scenario_config: ScenarioConfig | None = None,
    mixed_integer_config: MixedIntegerConfig | None = None,
) -> List[Controller]:
    """Instantiates the selected controllers in registration order.

    Args:
        model: The shared prediction model injected into the model-based controllers.
        variants: Names of the controllers to build; all four when omitted. The
                  result always follows the `ControllerHelper` order.
        evolutionary_config: Parameters of the HE-NMPC controller.
        tracking_config: Parameters of the tracking law, shared by the
                         Standard-MPC and the Stochastic-MPC controllers.
        scenario_config: Parameters of the scenario ensemble.
        mixed_integer_config: Grids of the Mixed-Integer-MPC controller.

    Returns:
        The list of controllers.

    Raises:
        ValueError: If a variant name is unknown.
    """
    selected = set(ControllerHelper.from_names(variants)) if variants is not None else set(ControllerHelper)
    controllers: List[Controller] = []

    for variant in ControllerHelper:
        if variant not in selected:
            logger.info("Controller %s not selected. Skipping its creation.", variant.value)
            continue

        if variant is ControllerHelper.HE_NMPC:
            controllers.append(EvolutionaryMPC(model, evolutionary_config))
        elif variant is ControllerHelper.STANDARD_MPC:
            controllers.append(QuadraticTrackingMPC(tracking_config))
        elif variant is ControllerHelper.STOCHASTIC_MPC:
            controllers.append(ScenarioRobustMPC(scenario_config, tracking_config))
        elif variant is ControllerHelper.MIXED_INTEGER_MPC:
            controllers.append(MixedIntegerMPC(model, mixed_integer_config))

    return controllers


def build_orchestrator(
    sink: ComparisonSink | None = None,
    config: OrchestratorConfig | None = None,
    parameters: ElectrolyzerParameters | None = None,
    variants: Sequence[str] | None = None,
    evolutionary_config: EvolutionaryConfig | None = None,
) -> ComparisonOrchestrator:
    """Creates the shared model, the controllers and the orchestrator that owns them."""
    model = ElectrolyzerModel(parameters)
    controllers = build_controllers(model, variants, evolutionary_config=evolutionary_config)
    logger.info("Comparing controllers: %s", [controller.name for controller in controllers])
    return ComparisonOrchestrator(model, controllers, sink=sink, config=config)
