"""Global test configuration.

Seeds RNGs from TAPEGRAD_TEST_SEED and marks everything under
tests/property so CI can select it with `-m property`.
"""

import os
import random
from pathlib import Path

import numpy as np
import pytest


def pytest_sessionstart(session: pytest.Session) -> None:
    """Seed common RNGs to improve test determinism."""
    seed = int(os.environ.get("TAPEGRAD_TEST_SEED", "12345"))
    random.seed(seed)
    np.random.seed(seed)


def pytest_collection_modifyitems(session, config, items) -> None:
    """Auto-mark tests under tests/property with the 'property' marker."""
    for item in items:
        p = Path(str(item.fspath))
        if "property" in p.parts and "tests" in p.parts:
            item.add_marker(pytest.mark.property)


@pytest.fixture
def rng() -> np.random.Generator:
    """Per-test generator derived from TAPEGRAD_TEST_SEED."""
    return np.random.default_rng(int(os.environ.get("TAPEGRAD_TEST_SEED", "12345")))
