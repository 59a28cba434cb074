from __future__ import annotations

import logging
import time
from typing import Sequence, Tuple

import plotly.graph_objects as go
import streamlit as st
from streamlit_autorefresh import st_autorefresh

from damped_pendulum.config import RANGES, SimulationConfig
from damped_pendulum.physics import Trajectory, bob_position
from damped_pendulum.sim_session import SimulationDivergedError, SimulationSession

logger = logging.getLogger(__name__)

BOB_COLOR = "#2563EB"
VANE_COLOR = "#111827"


def _ensure_session() -> SimulationSession:
    if "sim" not in st.session_state:
        config = SimulationConfig.from_env()
        logging.basicConfig(level=config.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
        st.session_state.sim = SimulationSession(config=config)
        logger.info("new session with %s", config)
    if "running" not in st.session_state:
        st.session_state.running = False
    if "last_time" not in st.session_state:
        st.session_state.last_time = time.time()
    return st.session_state.sim


def _slider(label: str, name: str, value: float, step: float) -> float:
    lo, hi = RANGES[name]
    return st.sidebar.slider(label, min_value=lo, max_value=hi, value=min(max(float(value), lo), hi), step=step)


def _update_params_from_sidebar(sim: SimulationSession) -> None:
    g = _slider("Gravity (m/s²)", "gravity", sim.params.gravity, 0.1)
    length = _slider("Length (m)", "length", sim.params.length, 0.05)
    damping = _slider("Damping (1/s)", "damping", sim.params.damping, 0.01)
    sim.set_params(gravity=float(g), length=float(length), damping=float(damping))

    sim.time_scale = float(_slider("Speed", "time_scale", sim.time_scale, 0.1))

    trail_enabled = st.sidebar.checkbox("Show trail", value=bool(sim.trail_enabled))
    sim.trail_enabled = bool(trail_enabled)
    if st.sidebar.button("Clear trail"):
        sim.trail_points.clear()

    # keyed inputs keep the typed values while the live state moves on
    if "jump_angle" not in st.session_state:
        st.session_state.jump_angle = float(sim.state.angle)
        st.session_state.jump_velocity = float(sim.state.velocity)
    st.sidebar.subheader("Phase point")
    lo, hi = RANGES["initial_angle"]
    st.sidebar.number_input("Angle (rad)", min_value=lo, max_value=hi, step=0.05, key="jump_angle")
    st.sidebar.number_input("Velocity (rad/s)", step=0.1, key="jump_velocity")
    if st.sidebar.button("Jump", key="jump"):
        sim.set_state(st.session_state.jump_angle, st.session_state.jump_velocity)


def _scene_extent(length: float) -> float:
    return max(1.0, length) * 1.2


def build_scene_figure(length: float, vane_angles: Sequence[float]) -> go.Figure:
    """3D windmill view: one vane per angle, the bob sits on the first vane."""
    fig = go.Figure()
    for i, angle in enumerate(vane_angles):
        x, y = bob_position(angle, length)
        # y downward in physics coordinates, upward on screen
        if i == 0:
            style = dict(mode="lines+markers", marker=dict(size=[3, 10], color=["#1F2937", BOB_COLOR]))
        else:
            style = dict(mode="lines")
        fig.add_trace(go.Scatter3d(
            x=[0.0, x], y=[0.0, -y], z=[0.0, 0.0],
            line=dict(color=VANE_COLOR, width=8),
            hoverinfo="skip",
            showlegend=False,
            **style,
        ))

    extent = _scene_extent(length)
    axis = dict(range=[-extent, extent], showgrid=True, zeroline=False, showticklabels=False, title="")
    fig.update_layout(
        template="plotly_white",
        margin=dict(l=0, r=0, t=0, b=0),
        scene=dict(
            xaxis=axis,
            yaxis=axis,
            zaxis=dict(axis, range=[-extent / 2, extent / 2]),
            aspectmode="manual",
            aspectratio=dict(x=1.0, y=1.0, z=0.5),
            camera=dict(eye=dict(x=0.0, y=0.3, z=2.0)),
            dragmode="orbit",
        ),
    )
    return fig


def build_phase_figure(
    preview: Trajectory, trail: Sequence[Tuple[float, float]], current: Tuple[float, float]
) -> go.Figure:
    """Phase portrait: predicted curve, recent trail and the current point."""
    fig = go.Figure()
    if preview:
        fig.add_trace(go.Scatter(
            x=[p[0] for p in preview], y=[p[1] for p in preview],
            mode="lines", line=dict(color="rgba(107,114,128,0.6)", width=1, dash="dot"),
            name="preview", hoverinfo="skip",
        ))
    if len(trail) > 1:
        fig.add_trace(go.Scatter(
            x=[p[0] for p in trail], y=[p[1] for p in trail],
            mode="lines", line=dict(color="rgba(31,119,180,0.6)", width=2),
            name="trail", hoverinfo="skip",
        ))
    fig.add_trace(go.Scatter(
        x=[current[0]], y=[current[1]],
        mode="markers", marker=dict(size=10, color="#DC2626"), name="state",
    ))
    fig.update_layout(
        template="plotly_white",
        margin=dict(l=20, r=20, t=20, b=20),
        xaxis=dict(title="angle (rad)", autorange=True, zeroline=True),
        yaxis=dict(title="velocity (rad/s)", zeroline=True),
        showlegend=False,
        dragmode=False,
    )
    return fig


def _impulse_controls(sim: SimulationSession) -> None:
    drag = st.slider("Drag length (px)", min_value=10, max_value=400, value=100, step=10)
    col_l, col_r = st.columns(2)
    with col_l:
        if st.button("Push left"):
            sim.apply_drag((0.0, 0.0), (-float(drag), 0.0))
    with col_r:
        if st.button("Push right"):
            sim.apply_drag((0.0, 0.0), (float(drag), 0.0))


def main() -> None:
    st.set_page_config(page_title="Damped Pendulum", layout="wide")
    sim = _ensure_session()

    st.title("Damped Pendulum")
    st.caption("RK4 integration, phase portrait, drag impulses")

    _update_params_from_sidebar(sim)

    col_a, col_b, col_c = st.columns([1, 1, 1])
    with col_a:
        if not st.session_state.get("running", False):
            if st.button("Start", type="primary", key="start"):
                st.session_state.running = True
                st.session_state.last_time = time.time()
        else:
            if st.button("Stop", type="secondary", key="stop"):
                st.session_state.running = False
    with col_b:
        if st.button("Reset"):
            sim.reset()
            st.session_state.last_time = time.time()
    with col_c:
        st.metric("ΔE/E", f"{sim.energy_err * 100.0:.3f}%")

    _impulse_controls(sim)

    if st.session_state.get("running", False):
        st_autorefresh(interval=sim.config.refresh_ms, key="pendulum_autorefresh")

    now = time.time()
    dt = max(0.0, now - float(st.session_state.get("last_time", now)))
    st.session_state.last_time = now
    if st.session_state.get("running", False):
        try:
            sim.step(dt)
        except SimulationDivergedError as exc:
            st.session_state.running = False
            st.warning(f"Simulation stopped: {exc}")

    scene_col, phase_col = st.columns([1, 1])
    with scene_col:
        st.plotly_chart(build_scene_figure(sim.params.length, sim.vane_angles()), use_container_width=True)
    with phase_col:
        fig = build_phase_figure(sim.phase_preview(), sim.trail_points, (sim.state.angle, sim.state.velocity))
        st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})

    with st.expander("Details (State)", expanded=False):
        st.write({
            "state": {"angle": sim.state.angle, "velocity": sim.state.velocity},
            "acceleration": sim.last_acceleration,
            "perturbation": sim.perturbation.value,
            "params": {"gravity": sim.params.gravity, "length": sim.params.length, "damping": sim.params.damping},
            "sim_time": sim.sim_time,
            "energy_err": sim.energy_err,
            "trail_len": len(sim.trail_points),
        })


if __name__ == "__main__":
    main()
