"""
Numerical physics utilities for the damped single pendulum.

This module provides:
- The damped pendulum equation of motion (derivative builder)
- A classical RK4 integrator with an injected, decaying velocity perturbation
- Trajectory sampling for phase-portrait previews
- Energy, angle normalization and position helpers for visualization
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

DECELERATION_RATE = 0.5

Trajectory = List[Tuple[float, float]]


class InvalidParameterError(ValueError):
    """Raised when a physical or configuration parameter is out of range."""


@dataclass(frozen=True)
class State:
    """Angular position (rad) and angular velocity (rad per time unit)."""

    angle: float
    velocity: float


@dataclass(frozen=True)
class Params:
    gravity: float
    length: float
    damping: float = 0.0


@dataclass(frozen=True)
class IntegrationResult(State):
    """State after one step, plus the acceleration increment of that step."""

    acceleration: float = 0.0

    def to_state(self) -> State:
        return State(self.angle, self.velocity)


Derivative = Callable[[State], float]


class Perturbation:
    """Externally injected angular velocity that halves on every step.

    Each simulation owns its own instance; ``integrate`` adds the current
    value to the new velocity once and then decays it.
    """

    def __init__(self, value: float = 0.0, rate: float = DECELERATION_RATE) -> None:
        self.value = float(value)
        self.rate = float(rate)

    def apply_impulse(self, magnitude: float) -> None:
        self.value += float(magnitude)

    def decay(self) -> None:
        self.value *= self.rate

    def reset(self) -> None:
        self.value = 0.0

    def __repr__(self) -> str:
        return f"Perturbation(value={self.value!r}, rate={self.rate!r})"


def configure_derivative(params: Params) -> Derivative:
    """Return the angular acceleration function for a damped pendulum.

    angle'' = -damping * angle' - (gravity / length) * sin(angle)
    """
    gravity = float(params.gravity)
    length = float(params.length)
    damping = float(params.damping)
    if not length > 0.0:
        raise InvalidParameterError(f"pendulum length must be > 0, got {length!r}")

    def derivative(state: State) -> float:
        return -damping * state.velocity - (gravity / length) * math.sin(state.angle)

    return derivative


def _stage(state: State, derivative: Derivative, offset: Tuple[float, float], delta: float) -> Tuple[float, float]:
    angle = state.angle + offset[0]
    velocity = state.velocity + offset[1]
    return delta * velocity, delta * derivative(State(angle, velocity))


def integrate(
    state: State,
    derivative: Derivative,
    delta: float,
    perturbation: Optional[Perturbation] = None,
) -> IntegrationResult:
    """Advance ``state`` by one classical RK4 step of size ``delta``.

    The perturbation's current value is added to the new velocity after the
    RK4 combination and then decayed. Non-finite values are not checked.
    """
    k1 = _stage(state, derivative, (0.0, 0.0), delta)
    k2 = _stage(state, derivative, (k1[0] / 2.0, k1[1] / 2.0), delta)
    k3 = _stage(state, derivative, (k2[0] / 2.0, k2[1] / 2.0), delta)
    k4 = _stage(state, derivative, k3, delta)

    velocity_inc = (k1[0] + 2.0 * k2[0] + 2.0 * k3[0] + k4[0]) / 6.0
    acceleration_inc = (k1[1] + 2.0 * k2[1] + 2.0 * k3[1] + k4[1]) / 6.0

    injected = 0.0
    if perturbation is not None:
        injected = perturbation.value
        perturbation.decay()

    return IntegrationResult(
        angle=state.angle + velocity_inc,
        velocity=state.velocity + acceleration_inc + injected,
        acceleration=acceleration_inc,
    )


def propagate(
    state: State,
    derivative: Derivative,
    delta: float,
    steps: int,
    condition: Optional[Callable[[State], object]] = None,
) -> Trajectory:
    """Sample up to ``steps`` (angle, velocity) pairs starting at ``state``.

    Sampling stops before recording a state for which ``condition`` returns
    exactly ``False``. Other falsy results (None, 0) do not stop it.
    No perturbation is applied, so every call starts a fresh timeline.
    """
    points: Trajectory = []
    current = state
    for _ in range(int(steps)):
        if condition is not None and condition(current) is False:
            break
        points.append((current.angle, current.velocity))
        current = integrate(current, derivative, delta).to_state()
    return points


def total_energy(state: State, params: Params) -> float:
    """Mechanical energy per unit m*L^2 (reference: hinge height)."""
    return 0.5 * state.velocity * state.velocity - (params.gravity / params.length) * math.cos(state.angle)


def normalize_angle(angle: float) -> float:
    """Wrap an angle to [-pi, pi)."""
    two_pi = 2.0 * math.pi
    a = (angle + math.pi) % two_pi
    if a < 0:
        a += two_pi
    return a - math.pi


def bob_position(angle: float, length: float) -> Tuple[float, float]:
    """Bob position relative to the hinge at (0, 0); y grows downwards."""
    return length * math.sin(angle), length * math.cos(angle)


def drag_to_impulse(
    start: Tuple[float, float], end: Tuple[float, float], gain: float = 0.01
) -> float:
    """Convert a pointer drag into a signed angular impulse.

    Magnitude is ``gain`` times the drag length; the sign follows the
    horizontal direction of the drag (rightwards is positive).
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    direction = 1.0 if end[0] > start[0] else -1.0
    return direction * gain * math.hypot(dx, dy)
