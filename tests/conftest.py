"""Local pytest configuration"""

import pytest

from helpers import make_sim
from tankline.plant.simulation import TankSimulator


@pytest.fixture
def sim() -> TankSimulator:
    return make_sim()
