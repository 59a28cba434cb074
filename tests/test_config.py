import pytest

from damped_pendulum.config import SimulationConfig
from damped_pendulum.physics import InvalidParameterError, Params, State


def test_defaults():
    config = SimulationConfig.from_env({})
    assert config.params() == Params(gravity=9.8, length=2.0, damping=0.1)
    assert config.initial_state() == State(0.5, 0.0)
    assert config.log_level == "INFO"


def test_env_overrides_are_typed():
    config = SimulationConfig.from_env({
        "PENDULUM_LENGTH": "3.5",
        "PENDULUM_PREVIEW_STEPS": "42",
        "PENDULUM_LOG_LEVEL": " debug ",
        "UNRELATED": "x",
    })
    assert config.length == 3.5
    assert config.preview_steps == 42
    assert isinstance(config.preview_steps, int)
    assert config.log_level == "debug"


def test_unparsable_value():
    with pytest.raises(InvalidParameterError):
        SimulationConfig.from_env({"PENDULUM_GRAVITY": "heavy"})


@pytest.mark.parametrize(
    "env",
    [
        {"PENDULUM_LENGTH": "0"},
        {"PENDULUM_MAX_FRAME_DT": "-0.1"},
        {"PENDULUM_PREVIEW_STEPS": "-1"},
        {"PENDULUM_TRAIL_MAX_POINTS": "0"},
        {"PENDULUM_LENGTH": "20"},
        {"PENDULUM_INITIAL_ANGLE": "4"},
        {"PENDULUM_DAMPING": "2.5"},
        {"PENDULUM_TIME_SCALE": "0"},
    ],
)
def test_invalid_values_rejected(env):
    with pytest.raises(InvalidParameterError):
        SimulationConfig.from_env(env)


def test_bounds_are_inclusive():
    config = SimulationConfig.from_env({"PENDULUM_LENGTH": "10", "PENDULUM_INITIAL_ANGLE": "-3.14159"})
    assert config.length == 10.0
