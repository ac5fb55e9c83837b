"""Matplotlib host: key mapping, projection to NDC and drawing a runner's frames."""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest
from matplotlib.backend_bases import KeyEvent
from matplotlib.collections import LineCollection, PolyCollection

from physcommon.math import Matrix4, Vector3D
from physsim.render import MatplotlibHost, key_code, project
from physsim.runner import Runner


@pytest.fixture
def host():
    h = MatplotlibHost()
    yield h
    h.close()


def send_key(host, name, key):
    canvas = host.fig.canvas
    canvas.callbacks.process(name, KeyEvent(name, canvas, key))


@pytest.mark.parametrize("key, code", [
    ("w", "KeyW"), ("W", "KeyW"), ("shift+l", "KeyL"), ("v", "KeyV"),
    ("space", None), ("1", None), (None, None),
])
def test_key_code(key, code):
    assert key_code(key) == code


def test_project_identity():
    positions = np.array([[0.5, -0.25, 0.0], [1.0, 1.0, 1.0]])
    xy, visible = project(positions, Matrix4.identity().to_gl())
    np.testing.assert_allclose(xy, positions[:, :2])
    assert visible.all()


def test_project_divides_by_w_and_masks_points_behind_eye():
    projection = Matrix4.perspective(np.radians(90.0), 1.0, 0.1, 100.0).to_gl()
    xy, visible = project(np.array([[1.0, 0.0, -2.0], [0.0, 0.0, 5.0]]), projection)
    assert visible.tolist() == [True, False]
    assert xy[0, 0] == pytest.approx(0.5)


def test_host_clears_default_keymaps(host):
    assert matplotlib.rcParams['keymap.save'] == []
    assert matplotlib.rcParams['keymap.quit'] == []


def test_close_restores_keymaps():
    before = list(matplotlib.rcParams['keymap.save'])
    h = MatplotlibHost()
    h.close()
    assert matplotlib.rcParams['keymap.save'] == before
    assert before != []


def test_render_tick_draws_body_and_arrows(host):
    with Runner(host) as runner:
        runner.on_render_tick()
        kinds = sorted(type(c).__name__ for c in host.ax.collections)
        assert kinds == ['LineCollection', 'PolyCollection']
        # redrawing replaces the previous frame
        runner.on_render_tick()
        assert len(host.ax.collections) == 2
        lines = [c for c in host.ax.collections if isinstance(c, LineCollection)][0]
        assert len(lines.get_segments()) == 35
        body = [c for c in host.ax.collections if isinstance(c, PolyCollection)][0]
        assert len(body.get_paths()) == 12


def test_keys_reach_runner(host):
    with Runner(host) as runner:
        send_key(host, 'key_press_event', 'v')
        send_key(host, 'key_release_event', 'v')
        assert runner.state.wireframe is True
        send_key(host, 'key_press_event', 'd')
        assert runner.state.keys_pressed.held() == ['right']
        runner.on_physics_tick()
        assert runner.state.camera_pos.v[0] > 0

        runner.on_render_tick()
        assert all(isinstance(c, LineCollection) for c in host.ax.collections)


def test_shutdown_disconnects_keys(host):
    runner = Runner(host)
    runner.shutdown()
    send_key(host, 'key_press_event', 'v')
    assert runner.state.wireframe is False
    assert host.gpu.shaders == {}


def test_geometry_behind_camera_is_dropped(host):
    with Runner(host) as runner:
        runner.state.rigid_body.pos = Vector3D(0, 0, 20)
        runner.on_render_tick()
        body = [c for c in host.ax.collections if isinstance(c, PolyCollection)][0]
        assert len(body.get_paths()) == 0
