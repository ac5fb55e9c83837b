import itertools

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection, PolyCollection

from physcommon.interface import Host, Input, Timers, KEY_DOWN, KEY_UP, LINES, TRIANGLES
from physcommon.logger import get_logger
from .errors import InitializationError
from .host import RecordingGPU

logger = get_logger("physsim.render")

WHITE = (1.0, 1.0, 1.0)
# Clip-space w below this is at or behind the eye
MIN_W = 1e-6


def key_code(key):
    """Map a matplotlib key name ('w', 'W', 'shift+w') to a DOM code ('KeyW')."""
    if not key:
        return None
    key = key.split('+')[-1]
    if len(key) == 1 and key.isalpha():
        return "Key" + key.upper()
    return None


def project(positions, projection):
    """Return NDC xy for each vertex and a mask of vertices in front of the eye.

    ``projection`` holds 16 column-major floats as passed to ``uniform mat4``.
    """
    m = np.asarray(projection, dtype=float).reshape(4, 4).T
    hom = np.hstack([positions, np.ones((len(positions), 1))])
    clip = hom @ m.T
    w = clip[:, 3]
    visible = w > MIN_W
    safe_w = np.where(visible, w, 1.0)
    return clip[:, :2] / safe_w[:, None], visible


class SoftwareGPU(RecordingGPU):
    """Rasterises recorded draw calls onto a 2D matplotlib axes spanning NDC."""
    def __init__(self, ax):
        super().__init__()
        self.ax = ax
        self._artists = []

    def clear(self, r, g, b, a):
        super().clear(r, g, b, a)
        # only the frame being built is kept
        del self.frames[:-1]
        for artist in self._artists:
            artist.remove()
        self._artists = []
        self.ax.figure.patch.set_facecolor((r, g, b, a))

    def draw_arrays(self, mode, first, count):
        call = super().draw_arrays(mode, first, count)
        if call.positions is None or count == 0 or 'projection' not in call.uniforms:
            return call
        xy, visible = project(call.positions, call.uniforms['projection'])
        colors = call.colors if call.colors is not None else np.tile(WHITE, (count, 1))

        if mode == LINES:
            n = count // 2
            keep = visible[:2 * n].reshape(n, 2).all(axis=1)
            segments = xy[:2 * n].reshape(n, 2, 2)[keep]
            seg_colors = colors[:2 * n:2][keep]
            artist = LineCollection(segments, colors=seg_colors, linewidths=1.5)
        elif mode == TRIANGLES:
            n = count // 3
            keep = visible[:3 * n].reshape(n, 3).all(axis=1)
            triangles = xy[:3 * n].reshape(n, 3, 2)[keep]
            tri_colors = colors[:3 * n:3][keep]
            artist = PolyCollection(triangles, facecolors=tri_colors, edgecolors=tri_colors)
        else:
            return call
        self.ax.add_collection(artist)
        self._artists.append(artist)
        self.ax.figure.canvas.draw_idle()
        return call


class MatplotlibTimers(Timers):
    def __init__(self, canvas):
        self.canvas = canvas
        self._timers = {}
        self._ids = itertools.count(1)

    def set_interval(self, callback, period_ms):
        timer = self.canvas.new_timer(interval=period_ms)
        timer.add_callback(callback)
        timer.start()
        token = next(self._ids)
        self._timers[token] = timer
        logger.debug(f"Timer {token} started every {period_ms} ms")
        return token

    def clear_interval(self, token):
        timer = self._timers.pop(token, None)
        if timer is not None:
            timer.stop()


class MatplotlibInput(Input):
    EVENTS = {KEY_DOWN: 'key_press_event', KEY_UP: 'key_release_event'}

    def __init__(self, canvas):
        self.canvas = canvas

    def add_key_listener(self, event, callback):
        def handler(mpl_event):
            code = key_code(mpl_event.key)
            if code is not None:
                callback(code)
        return self.canvas.mpl_connect(self.EVENTS[event], handler)

    def remove_key_listener(self, token):
        self.canvas.mpl_disconnect(token)


class MatplotlibHost(Host):
    """Interactive window: matplotlib timers and key events, software GPU."""
    def __init__(self, title="physsim"):
        # matplotlib's default shortcuts (s = save, q = quit, ...) collide with the controls;
        # restored by close()
        self._keymaps = {name: plt.rcParams[name] for name in list(plt.rcParams) if name.startswith('keymap.')}
        for name in self._keymaps:
            plt.rcParams[name] = []
        try:
            self.fig = plt.figure(figsize=(8, 6))
        except Exception as e:
            plt.rcParams.update(self._keymaps)
            raise InitializationError("environment", f"Couldn't open a figure window: {e}") from e
        if self.fig.canvas.manager is not None:
            self.fig.canvas.manager.set_window_title(title)
        self.ax = self.fig.add_axes([0, 0, 1, 1])
        self.ax.set_xlim(-1, 1)
        self.ax.set_ylim(-1, 1)
        self.ax.set_axis_off()
        self.fig.patch.set_facecolor('black')
        super().__init__(
            timers=MatplotlibTimers(self.fig.canvas),
            input=MatplotlibInput(self.fig.canvas),
            gpu=SoftwareGPU(self.ax),
        )

    def run(self):
        """Block in the GUI loop until the window is closed."""
        plt.show()

    def close(self):
        plt.close(self.fig)
        plt.rcParams.update(self._keymaps)
        self._keymaps = {}
