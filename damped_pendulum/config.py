from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields
from typing import Dict, Mapping, Optional

from damped_pendulum.physics import InvalidParameterError, Params, State

ENV_PREFIX = "PENDULUM_"

# (min, max) of the viewer controls; a config outside them cannot be shown
RANGES = {
    "gravity": (0.0, 30.0),
    "length": (0.1, 10.0),
    "damping": (0.0, 2.0),
    "time_scale": (0.1, 5.0),
    "initial_angle": (-math.pi, math.pi),
}


@dataclass
class SimulationConfig:
    """Defaults for a simulation session and the viewer.

    Every field can be overridden from the environment as
    ``PENDULUM_<FIELD NAME IN UPPER CASE>``.
    """

    gravity: float = 9.8
    length: float = 2.0
    damping: float = 0.1
    initial_angle: float = 0.5
    initial_velocity: float = 0.0

    max_frame_dt: float = 0.05
    time_scale: float = 1.0

    preview_steps: int = 600
    preview_delta: float = 0.02
    preview_max_turns: float = 3.0

    trail_max_points: int = 300
    impulse_gain: float = 0.01
    refresh_ms: int = 33
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SimulationConfig":
        environ = os.environ if environ is None else environ
        overrides: Dict[str, object] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = _coerce(f.name, f.type, raw)
        config = cls(**overrides)
        config.validate()
        return config

    def validate(self) -> None:
        if not self.length > 0.0:
            raise InvalidParameterError(f"length must be > 0, got {self.length!r}")
        if not self.max_frame_dt > 0.0:
            raise InvalidParameterError("max_frame_dt must be > 0")
        if self.preview_steps < 0:
            raise InvalidParameterError("preview_steps must be >= 0")
        for name, (lo, hi) in RANGES.items():
            value = getattr(self, name)
            if not lo <= value <= hi:
                raise InvalidParameterError(f"{name} must lie in [{lo:g}, {hi:g}], got {value!r}")
        if self.trail_max_points < 1:
            raise InvalidParameterError("trail_max_points must be >= 1")

    def params(self) -> Params:
        return Params(gravity=self.gravity, length=self.length, damping=self.damping)

    def initial_state(self) -> State:
        return State(self.initial_angle, self.initial_velocity)


def _coerce(name: str, type_name: object, raw: str) -> object:
    # field types are strings because of postponed annotations
    type_name = getattr(type_name, "__name__", type_name)
    try:
        if type_name == "int":
            return int(raw)
        if type_name == "float":
            return float(raw)
    except ValueError as exc:
        raise InvalidParameterError(f"{ENV_PREFIX}{name.upper()}={raw!r} is not a valid {type_name}") from exc
    return raw.strip()
