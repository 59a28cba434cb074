from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from damped_pendulum.config import SimulationConfig
from damped_pendulum.physics import (
    Derivative,
    Params,
    Perturbation,
    State,
    Trajectory,
    configure_derivative,
    drag_to_impulse,
    integrate,
    normalize_angle,
    propagate,
    total_energy,
)

logger = logging.getLogger(__name__)

VANE_OFFSETS = (0.0, 0.5 * math.pi, math.pi, 1.5 * math.pi)

# impulses below this no longer count as external driving
SPENT_IMPULSE = 1e-12


class SimulationDivergedError(RuntimeError):
    """Raised when the live state stops being finite."""


@dataclass
class SimulationSession:
    """Holds the per-session simulation state, parameters and impulse channel."""

    config: SimulationConfig = field(default_factory=SimulationConfig)
    params: Params = field(init=False)
    state: State = field(init=False)
    perturbation: Perturbation = field(default_factory=Perturbation)

    time_scale: float = field(init=False)
    sim_time: float = 0.0
    last_acceleration: float = 0.0

    energy_ref: Optional[float] = None
    energy_err: float = 0.0
    energy_check_interval: float = 0.5
    _energy_accum: float = 0.0

    trail_enabled: bool = True
    trail_points: List[Tuple[float, float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.params = self.config.params()
        self.state = self.config.initial_state()
        self.time_scale = self.config.time_scale
        self._derivative = configure_derivative(self.params)

    @property
    def derivative(self) -> Derivative:
        return self._derivative

    def step(self, dt: float) -> State:
        """Advance the live simulation by one frame of dt seconds."""
        dt = min(max(0.0, float(dt)), self.config.max_frame_dt) * self.time_scale
        if dt <= 0.0:
            return self.state

        result = integrate(self.state, self._derivative, dt, self.perturbation)
        if not (math.isfinite(result.angle) and math.isfinite(result.velocity)):
            logger.warning(
                "simulation diverged at t=%.3f (angle=%r, velocity=%r)", self.sim_time, result.angle, result.velocity
            )
            self.perturbation.reset()
            raise SimulationDivergedError(f"non-finite state after step at t={self.sim_time:.3f}")

        self.state = State(normalize_angle(result.angle), result.velocity)
        self.last_acceleration = result.acceleration
        self.sim_time += dt

        # energy monitoring when no damping
        if self.params.damping == 0.0 and abs(self.perturbation.value) < SPENT_IMPULSE:
            if self.energy_ref is None:
                self.energy_ref = total_energy(self.state, self.params)
            self._energy_accum += dt
            if self._energy_accum >= self.energy_check_interval:
                self._energy_accum = 0.0
                e = total_energy(self.state, self.params)
                self.energy_err = abs(e - self.energy_ref) / max(1e-9, abs(self.energy_ref))

        if self.trail_enabled:
            self._append_trail_point(self.state.angle, self.state.velocity)
        return self.state

    def apply_impulse(self, magnitude: float) -> None:
        self.perturbation.apply_impulse(magnitude)
        # a kick changes the energy level on purpose
        self.energy_ref = None
        self.energy_err = 0.0

    def apply_drag(self, start: Tuple[float, float], end: Tuple[float, float]) -> float:
        impulse = drag_to_impulse(start, end, gain=self.config.impulse_gain)
        self.apply_impulse(impulse)
        return impulse

    def set_params(self, **changes: float) -> None:
        """Replace some of gravity, length, damping and rebuild the derivative."""
        params = replace(self.params, **changes)
        if params == self.params:
            return
        self._derivative = configure_derivative(params)
        self.params = params
        self.energy_ref = None
        self.energy_err = 0.0
        logger.debug("params changed: %s", params)

    def set_state(self, angle: float, velocity: float) -> None:
        """Jump to a point of the phase plane."""
        self.state = State(normalize_angle(float(angle)), float(velocity))
        self.perturbation.reset()
        self.trail_points.clear()
        self.energy_ref = None
        self.energy_err = 0.0

    def phase_preview(self, steps: Optional[int] = None) -> Trajectory:
        """Phase-portrait curve from the current state, without the live impulse."""
        steps = self.config.preview_steps if steps is None else steps
        start = self.state.angle
        limit = self.config.preview_max_turns * 2.0 * math.pi

        def within_turns(state: State) -> bool:
            return abs(state.angle - start) <= limit

        return propagate(self.state, self._derivative, self.config.preview_delta, steps, condition=within_turns)

    def vane_angles(self) -> Tuple[float, ...]:
        """Angles of the four windmill vanes; the first one carries the bob."""
        a = self.state.angle
        return tuple(a + offset for offset in VANE_OFFSETS)

    def reset(self) -> None:
        self.state = self.config.initial_state()
        self.perturbation.reset()
        self.sim_time = 0.0
        self.last_acceleration = 0.0
        self.energy_ref = None
        self.energy_err = 0.0
        self._energy_accum = 0.0
        self.trail_points.clear()
        logger.debug("session reset to %s", self.state)

    def _append_trail_point(self, angle: float, velocity: float) -> None:
        self.trail_points.append((float(angle), float(velocity)))
        if len(self.trail_points) > self.config.trail_max_points:
            self.trail_points.pop(0)
