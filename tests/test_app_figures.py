import math

import plotly.graph_objects as go
import pytest

from damped_pendulum.app_streamlit import build_phase_figure, build_scene_figure
from damped_pendulum.physics import bob_position


def test_scene_has_one_trace_per_vane():
    angles = tuple(0.3 + k * math.pi / 2 for k in range(4))
    fig = build_scene_figure(2.0, angles)

    assert isinstance(fig, go.Figure)
    assert len(fig.data) == 4
    x, y = bob_position(0.3, 2.0)
    main = fig.data[0]
    assert main.mode == "lines+markers"
    assert main.x[1] == pytest.approx(x)
    assert main.y[1] == pytest.approx(-y)
    assert tuple(main.z) == (0.0, 0.0)
    assert all(vane.mode == "lines" for vane in fig.data[1:])


def test_scene_extent_follows_length():
    fig = build_scene_figure(4.0, (0.0,))
    lo, hi = fig.layout.scene.xaxis.range
    assert hi == pytest.approx(4.8)
    assert lo == pytest.approx(-4.8)


def test_phase_figure_traces():
    preview = [(0.5, 0.0), (0.49, -0.05), (0.47, -0.1)]
    trail = [(0.4, -0.2), (0.35, -0.25)]
    fig = build_phase_figure(preview, trail, (0.35, -0.25))

    names = [trace.name for trace in fig.data]
    assert names == ["preview", "trail", "state"]
    assert list(fig.data[0].x) == [0.5, 0.49, 0.47]
    assert list(fig.data[2].y) == [-0.25]


def test_phase_figure_without_history():
    fig = build_phase_figure([], [(0.1, 0.0)], (0.1, 0.0))
    assert [trace.name for trace in fig.data] == ["state"]


def test_phase_axis_fits_whirling_preview():
    preview = [(0.1 * i, 20.0) for i in range(100)]  # runs well past pi
    fig = build_phase_figure(preview, [], preview[-1])
    assert fig.layout.xaxis.range is None
    assert fig.layout.xaxis.autorange is True
