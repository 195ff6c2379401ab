import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from dualband import config
from dualband.ols import fit
from dualband.simulate import simulate_data, simulate_interaction_data


@pytest.fixture
def base_data():
    return simulate_data(seed=config.DEFAULT_SEED)


@pytest.fixture
def interaction_data():
    return simulate_interaction_data(seed=config.DEFAULT_SEED)


@pytest.fixture
def base_model(base_data):
    return fit(base_data, config.BASE_FORMULA)


@pytest.fixture
def interaction_model(interaction_data):
    return fit(interaction_data, config.INTERACTION_FORMULA)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")
