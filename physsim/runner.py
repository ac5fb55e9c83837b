# runner.py
# Simulation driver: shared state, fixed-step physics tick, render tick and key input

import threading
from contextlib import contextmanager

import numpy as np

from physcommon.interface import (
    GPUError, TRIANGLES, LINES, DYNAMIC_DRAW, VERTEX_SHADER, FRAGMENT_SHADER, KEY_DOWN, KEY_UP,
)
from physcommon.logger import get_logger
from physcommon.math import Vector3D, Matrix4
from .camera import KeysPressed
from .config import RunnerConfig
from .errors import InitializationError, ReentrancyError
from .geometry import arrow_vertices, cuboid_vertices, RED, GREEN, BLUE, YELLOW, CYAN

logger = get_logger("physsim.runner")

FOVY_DEG = 75.0
ASPECT = 1.333
Z_NEAR = 0.01
Z_FAR = 1000.0

TOGGLE_KEY = "KeyV"

AXIS_LENGTH = 5.0
AXIS_TIP = 0.5
BODY_ARROW_TIP = 0.1

FLOAT_BYTES = 4

PLAIN_VERTEX_SHADER = """#version 300 es

in vec3 position;
uniform mat4 projection;

void main() {
    gl_Position = projection * vec4(position, 1.0);
}
"""

PLAIN_FRAGMENT_SHADER = """#version 300 es

precision highp float;
out vec4 outColor;

void main() {
    outColor = vec4(1, 1, 1, 1);
}
"""

COLORED_VERTEX_SHADER = """#version 300 es

in vec3 position;
in vec3 color;
uniform mat4 projection;
out vec3 vColor;

void main() {
    gl_Position = projection * vec4(position, 1.0);
    vColor = color;
}
"""

COLORED_FRAGMENT_SHADER = """#version 300 es

precision highp float;
in vec3 vColor;
out vec4 outColor;

void main() {
    outColor = vec4(vColor, 1);
}
"""

# program name -> (vertex source, fragment source, [(attribute, size, offset)], stride)
PROGRAMS = {
    'plain': (PLAIN_VERTEX_SHADER, PLAIN_FRAGMENT_SHADER,
              [('position', 3, 0)], 3 * FLOAT_BYTES),
    'colored': (COLORED_VERTEX_SHADER, COLORED_FRAGMENT_SHADER,
                [('position', 3, 0), ('color', 3, 3 * FLOAT_BYTES)], 6 * FLOAT_BYTES),
}


class RunnerState:
    """Everything the entry points share. Only touched under ``StateGuard``."""
    def __init__(self, rigid_body, camera):
        self.rigid_body = rigid_body
        self.camera = camera
        self.keys_pressed = KeysPressed()
        self.wireframe = False
        self.counter = 0
        # V is still down since its last press edge
        self.toggle_held = False

    @property
    def camera_pos(self):
        return self.camera.pos

    @property
    def camera_rot(self):
        return self.camera.rot


class StateGuard:
    """Exclusive, non-reentrant access to a ``RunnerState``."""
    def __init__(self, state):
        self._state = state
        self._lock = threading.Lock()

    @contextmanager
    def hold(self):
        if not self._lock.acquire(blocking=False):
            raise ReentrancyError("runner state entered while already held")
        try:
            yield self._state
        finally:
            self._lock.release()

    def locked(self):
        return self._lock.locked()


class Frame:
    """Everything one render tick hands to the GPU."""
    def __init__(self, projection, body_vertices, body_mode, colored_vertices):
        self.projection = projection
        self.body_vertices = body_vertices
        self.body_mode = body_mode
        self.colored_vertices = colored_vertices

    @property
    def body_count(self):
        return len(self.body_vertices) // 3

    @property
    def colored_count(self):
        return len(self.colored_vertices) // 6


def projection_matrix(camera):
    """Perspective (75°, 1.333, 0.01..1000) times the camera's view matrix."""
    perspective = Matrix4.perspective(np.radians(FOVY_DEG), ASPECT, Z_NEAR, Z_FAR)
    return perspective @ camera.view_matrix()


def build_frame(state):
    body = state.rigid_body
    plain = cuboid_vertices(body, state.wireframe, [])

    colored = []
    origin = Vector3D()
    for axis, color in ((Vector3D(1, 0, 0), RED), (Vector3D(0, 1, 0), GREEN), (Vector3D(0, 0, 1), BLUE)):
        arrow_vertices(origin, axis * AXIS_LENGTH, colored, color=color, tip_size=AXIS_TIP)
    arrow_vertices(body.pos, body.lin_vel, colored, color=YELLOW, tip_size=BODY_ARROW_TIP)
    arrow_vertices(body.pos, body.ang_mom, colored, color=CYAN, tip_size=BODY_ARROW_TIP)

    return Frame(
        projection=projection_matrix(state.camera),
        body_vertices=np.array(plain, dtype=np.float32),
        body_mode=LINES if state.wireframe else TRIANGLES,
        colored_vertices=np.array(colored, dtype=np.float32),
    )


class _Pipeline:
    def __init__(self, program, vao):
        self.program = program
        self.vao = vao


class Runner:
    """Drives one rigid body, a camera and the renderer from host callbacks.

    Construction acquires every GPU object, key listener and timer; any
    failure releases what was taken and raises a single
    ``InitializationError``. ``shutdown`` (or leaving the ``with`` block)
    releases everything in reverse order.
    """
    def __init__(self, host, config=None):
        self.config = config if config is not None else RunnerConfig()
        self.state = RunnerState(self.config.body.copy(), self.config.make_camera())
        self.guard = StateGuard(self.state)
        self._host = host
        self._resources = []  # (kind, handle) in acquisition order
        self._pipelines = {}
        self._buffer = None
        self._closed = False

        try:
            if host is None or getattr(host, 'gpu', None) is None:
                raise InitializationError("environment", "No GPU context available")
            if getattr(host, 'timers', None) is None or getattr(host, 'input', None) is None:
                raise InitializationError("environment", "Host lacks timers or keyboard input")
            self._init_gpu()
            self._init_input()
            self._init_timers()
        except InitializationError as e:
            logger.error(f"Initialization failed: {e}")
            self._release()
            self._closed = True
            raise
        logger.info(
            f"Runner started: physics every {self.config.physics_interval_ms} ms, "
            f"render every {self.config.draw_interval_ms} ms"
        )

    # ------------------------------------------------------------------
    # Start-up
    # ------------------------------------------------------------------
    def _acquire(self, stage, kind, create, *args):
        try:
            handle = create(*args)
        except GPUError as e:
            raise InitializationError(stage, e.message, e.log) from e
        if handle is None:
            raise InitializationError(stage, f"Couldn't create {kind}")
        self._resources.append((kind, handle))
        return handle

    def _init_gpu(self):
        gpu = self._host.gpu
        programs = {}
        for name, (vs_src, fs_src, _, _) in PROGRAMS.items():
            vs = self._acquire("shader", "shader", gpu.compile_shader, VERTEX_SHADER, vs_src)
            fs = self._acquire("shader", "shader", gpu.compile_shader, FRAGMENT_SHADER, fs_src)
            programs[name] = self._acquire("program", "program", gpu.link_program, vs, fs)

        self._buffer = self._acquire("buffer", "buffer", gpu.create_buffer)

        for name, (_, _, attributes, stride) in PROGRAMS.items():
            program = programs[name]
            vao = self._acquire("vertex_array", "vertex_array", gpu.create_vertex_array)
            try:
                gpu.bind_vertex_array(vao)
                gpu.bind_buffer(self._buffer)
                for attribute, size, offset in attributes:
                    location = gpu.get_attrib_location(program, attribute)
                    if location is None or location < 0:
                        raise InitializationError("program", f"Attribute '{attribute}' missing from {name} program")
                    gpu.vertex_attrib_pointer(location, size, stride, offset)
                    gpu.enable_vertex_attrib_array(location)
                gpu.bind_vertex_array(None)
            except GPUError as e:
                raise InitializationError("vertex_array", e.message, e.log) from e
            self._pipelines[name] = _Pipeline(program, vao)

    def _init_input(self):
        inp = self._host.input
        try:
            down = inp.add_key_listener(KEY_DOWN, lambda code: self.on_key(code, True))
            self._resources.append(('listener', down))
            up = inp.add_key_listener(KEY_UP, lambda code: self.on_key(code, False))
            self._resources.append(('listener', up))
        except Exception as e:
            raise InitializationError("input", f"Couldn't register key listener: {e}") from e

    def _init_timers(self):
        timers = self._host.timers
        for callback, period in ((self.on_physics_tick, self.config.physics_interval_ms),
                                 (self.on_render_tick, self.config.draw_interval_ms)):
            try:
                token = timers.set_interval(callback, period)
            except Exception as e:
                raise InitializationError("timer", f"Couldn't register {period} ms timer: {e}") from e
            if token is None:
                raise InitializationError("timer", f"Couldn't register {period} ms timer")
            self._resources.append(('timer', token))

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def on_physics_tick(self):
        """Advance camera controls, then the body, by one physics interval."""
        if self._closed:
            return
        dt_ms = self.config.physics_interval_ms
        with self.guard.hold() as state:
            state.camera.apply_controls(state.keys_pressed, dt_ms)
            state.rigid_body.step_sim(dt_ms / 1000)
            state.counter += 1

    def on_render_tick(self):
        if self._closed:
            return
        with self.guard.hold() as state:
            frame = build_frame(state)
        self.draw(frame)

    def on_key(self, code, pressed):
        with self.guard.hold() as state:
            if code == TOGGLE_KEY:
                if pressed and not state.toggle_held:
                    state.wireframe = not state.wireframe
                state.toggle_held = pressed
            else:
                state.keys_pressed.set(code, pressed)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def draw(self, frame):
        gpu = self._host.gpu
        projection = frame.projection.to_gl()
        gpu.clear(0.0, 0.0, 0.0, 1.0)
        for pipeline, vertices, mode, count in (
            (self._pipelines['plain'], frame.body_vertices, frame.body_mode, frame.body_count),
            (self._pipelines['colored'], frame.colored_vertices, LINES, frame.colored_count),
        ):
            gpu.use_program(pipeline.program)
            gpu.bind_vertex_array(pipeline.vao)
            gpu.bind_buffer(self._buffer)
            gpu.buffer_data(self._buffer, vertices, DYNAMIC_DRAW)
            gpu.uniform_matrix4(pipeline.program, "projection", projection)
            gpu.draw_arrays(mode, 0, count)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------
    def _release(self):
        host = self._host
        while self._resources:
            kind, handle = self._resources.pop()
            if kind == 'timer':
                host.timers.clear_interval(handle)
            elif kind == 'listener':
                host.input.remove_key_listener(handle)
            elif kind == 'vertex_array':
                host.gpu.delete_vertex_array(handle)
            elif kind == 'buffer':
                host.gpu.delete_buffer(handle)
            elif kind == 'program':
                host.gpu.delete_program(handle)
            elif kind == 'shader':
                host.gpu.delete_shader(handle)
        self._pipelines = {}
        self._buffer = None

    def shutdown(self):
        """Cancel timers and listeners and free GPU objects. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._release()
        logger.info(f"Runner stopped after {self.state.counter} physics ticks")

    @property
    def closed(self):
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()
        return False
