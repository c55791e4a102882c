import pytest

from electrolyzer_mpc.model.electrolyzer_model import ElectrolyzerModel
from electrolyzer_mpc.model.state import SystemState


@pytest.fixture
def model():
    return ElectrolyzerModel()


@pytest.fixture
def nominal_state():
    """Typical operating point: 150 A, 2.1 V, 65 °C."""
    return SystemState(
        current=150.0,
        voltage=2.1,
        o2_production=40.0,
        efficiency=75.0,
        stack_temperature=65.0,
        safety_margin=90.0,
    )


@pytest.fixture
def hot_state():
    """Stack already above the 80 °C limit."""
    return SystemState(
        current=180.0,
        voltage=2.2,
        o2_production=48.0,
        efficiency=72.0,
        stack_temperature=85.0,
        safety_margin=0.0,
    )
