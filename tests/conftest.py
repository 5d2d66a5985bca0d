"""Pytest configuration and shared fixtures."""
import pytest
from enum import IntEnum

from paramset import ParameterSet, castable_enum, get_config, set_config


@castable_enum(aliases=["none", "solid", "dashed"])
class DrawMode(IntEnum):
    """Enum with readable aliases."""
    NONE = 0
    SOLID = 1
    DASHED = 2


@castable_enum
class Orientation(IntEnum):
    """Enum without aliases; codes are not contiguous."""
    PORTRAIT = 1
    LANDSCAPE = 4


SAMPLE_PARAMETERS = {
    "a": 100,
    "b": 2.5,
    "s": "222",
    "sx": "Test",
    "camera": {"exposure": 10, "auto": True},
    "mode": DrawMode.SOLID,
}


@pytest.fixture(autouse=True)
def restore_config():
    """Restore the module-level configuration after each test."""
    # Store original value
    original = get_config()

    yield

    # Restore original value after test
    set_config(original)


@pytest.fixture
def draw_mode():
    """Provide the aliased sample enum."""
    return DrawMode


@pytest.fixture
def orientation():
    """Provide the alias-free sample enum."""
    return Orientation


@pytest.fixture
def sample_parameters():
    """Provide the nested mapping the sample store is built from."""
    return {key: dict(value) if isinstance(value, dict) else value
            for key, value in SAMPLE_PARAMETERS.items()}


@pytest.fixture
def store(sample_parameters):
    """Provide a store built from the sample parameters."""
    return ParameterSet(sample_parameters)
