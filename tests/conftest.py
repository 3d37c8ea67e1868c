import numpy as np
import pytest



DIMS = (2, 3, 4)
N_SAMPLES = 17



@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def samples(rng: np.random.Generator) -> np.ndarray:
    """Independent samples stacked along the first axis."""
    return rng.random((N_SAMPLES,) + DIMS)


@pytest.fixture
def dims() -> tuple:
    return DIMS
