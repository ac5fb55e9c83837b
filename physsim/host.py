"""
Headless host: simulated-time timers, scripted keyboard and a recording GPU.

Used by the ``headless`` target and throughout the tests. Nothing here sleeps;
``HeadlessHost.advance`` runs every due callback in time order.
"""
import itertools
import re

import numpy as np

from physcommon.interface import (
    GPU, GPUError, Host, Input, Timers,
    DYNAMIC_DRAW, FRAGMENT_SHADER, KEY_DOWN, KEY_UP, VERTEX_SHADER,
)
from physcommon.logger import get_logger
from physcommon.scheduler import Scheduler

logger = get_logger("physsim.host")

GLSL_VERSION = "#version 300 es"

# `in vec3 position;`, `uniform mat4 projection;` ...
_DECLARATION = re.compile(r"^\s*(in|out|uniform)\s+(\w+)\s+(\w+)\s*;", re.MULTILINE)


class Shader:
    def __init__(self, kind, source):
        self.kind = kind
        self.source = source
        self.inputs = []
        self.outputs = []
        self.uniforms = []
        for qualifier, _type, name in _DECLARATION.findall(source):
            {'in': self.inputs, 'out': self.outputs, 'uniform': self.uniforms}[qualifier].append(name)


class Program:
    def __init__(self, vertex_shader, fragment_shader):
        self.vertex_shader = vertex_shader
        self.fragment_shader = fragment_shader
        # locations follow declaration order
        self.attributes = {name: i for i, name in enumerate(vertex_shader.inputs)}
        self.uniforms = set(vertex_shader.uniforms) | set(fragment_shader.uniforms)
        self.uniform_values = {}

    def attribute_name(self, location):
        for name, loc in self.attributes.items():
            if loc == location:
                return name
        return None


class VertexArray:
    def __init__(self):
        self.attributes = {}  # location -> {'buffer', 'size', 'stride', 'offset', 'enabled'}


class DrawCall:
    """One recorded ``draw_arrays``: resolved per-vertex attributes and uniforms."""
    def __init__(self, mode, first, count, program, attributes, uniforms):
        self.mode = mode
        self.first = first
        self.count = count
        self.program = program
        self.attributes = attributes
        self.uniforms = uniforms

    @property
    def positions(self):
        return self.attributes.get('position')

    @property
    def colors(self):
        return self.attributes.get('color')

    def __repr__(self):
        return f"DrawCall({self.mode}, count={self.count}, attributes={sorted(self.attributes)})"


class RecordingGPU(GPU):
    """In-memory GL state machine that validates calls and records draws.

    ``fail`` may name steps to reject ("compile", "link", "buffer",
    "vertex_array", "attrib") so start-up error paths can be exercised.
    """
    def __init__(self, fail=()):
        self.fail = set(fail)
        self._ids = itertools.count(1)
        self.shaders = {}
        self.programs = {}
        self.vertex_arrays = {}
        self.buffers = {}
        self.buffer_usage = {}
        self.bound_vertex_array = None
        self.bound_buffer = None
        self.current_program = None
        self.clear_color = None
        self.frames = []   # one list of DrawCall per clear()
        self.deleted = []  # (kind, handle) in deletion order

    # -- creation ------------------------------------------------------
    def compile_shader(self, kind, source):
        if kind not in (VERTEX_SHADER, FRAGMENT_SHADER):
            raise GPUError("Couldn't create shader object", f"unknown shader kind {kind!r}")
        if 'compile' in self.fail:
            raise GPUError("Shader compilation failed", "ERROR: 0:1: compiler unavailable")
        if not source.lstrip().startswith(GLSL_VERSION):
            raise GPUError("Shader compilation failed", f"ERROR: 0:1: '{GLSL_VERSION}' directive missing")
        if "void main()" not in source:
            raise GPUError("Shader compilation failed", "ERROR: 0:0: missing main()")
        handle = next(self._ids)
        self.shaders[handle] = Shader(kind, source)
        return handle

    def link_program(self, vertex_shader, fragment_shader):
        if 'link' in self.fail:
            raise GPUError("Program linking failed", "ERROR: linker unavailable")
        vs = self.shaders.get(vertex_shader)
        fs = self.shaders.get(fragment_shader)
        if vs is None or fs is None or vs.kind != VERTEX_SHADER or fs.kind != FRAGMENT_SHADER:
            raise GPUError("Program linking failed", "ERROR: needs one vertex and one fragment shader")
        missing = [name for name in fs.inputs if name not in vs.outputs]
        if missing:
            raise GPUError("Program linking failed", f"ERROR: fragment inputs {missing} not written by vertex shader")
        handle = next(self._ids)
        self.programs[handle] = Program(vs, fs)
        return handle

    def create_vertex_array(self):
        if 'vertex_array' in self.fail:
            raise GPUError("Couldn't create VAO")
        handle = next(self._ids)
        self.vertex_arrays[handle] = VertexArray()
        return handle

    def create_buffer(self):
        if 'buffer' in self.fail:
            raise GPUError("Couldn't create VBO")
        handle = next(self._ids)
        self.buffers[handle] = np.zeros(0, dtype=np.float32)
        return handle

    # -- state ---------------------------------------------------------
    def bind_vertex_array(self, vao):
        self.bound_vertex_array = vao

    def bind_buffer(self, buffer):
        self.bound_buffer = buffer

    def get_attrib_location(self, program, name):
        return self.programs[program].attributes.get(name, -1)

    def vertex_attrib_pointer(self, location, size, stride, offset):
        if 'attrib' in self.fail:
            raise GPUError("Attribute setup failed", f"ERROR: bad layout for location {location}")
        vao = self.vertex_arrays[self.bound_vertex_array]
        vao.attributes[location] = {
            'buffer': self.bound_buffer, 'size': size, 'stride': stride, 'offset': offset, 'enabled': False,
        }

    def enable_vertex_attrib_array(self, location):
        self.vertex_arrays[self.bound_vertex_array].attributes[location]['enabled'] = True

    def use_program(self, program):
        self.current_program = program

    def buffer_data(self, buffer, data, usage=DYNAMIC_DRAW):
        self.buffers[buffer] = np.array(data, dtype=np.float32).ravel()
        self.buffer_usage[buffer] = usage

    def uniform_matrix4(self, program, name, values):
        prog = self.programs[program]
        if name in prog.uniforms:
            prog.uniform_values[name] = np.array(values, dtype=np.float32).reshape(16)

    # -- drawing -------------------------------------------------------
    def _fetch(self, attribute, first, count):
        data = self.buffers[attribute['buffer']]
        stride = attribute['stride'] // 4 or attribute['size']
        start = first * stride + attribute['offset'] // 4
        rows = start + stride * np.arange(count)[:, None] + np.arange(attribute['size'])
        return data[rows]

    def draw_arrays(self, mode, first, count):
        prog = self.programs[self.current_program]
        vao = self.vertex_arrays[self.bound_vertex_array]
        attributes = {}
        for location, attribute in vao.attributes.items():
            name = prog.attribute_name(location)
            if attribute['enabled'] and name is not None:
                attributes[name] = self._fetch(attribute, first, count)
        call = DrawCall(mode, first, count, self.current_program, attributes, dict(prog.uniform_values))
        if not self.frames:
            self.frames.append([])
        self.frames[-1].append(call)
        return call

    def clear(self, r, g, b, a):
        self.clear_color = (r, g, b, a)
        self.frames.append([])

    @property
    def last_frame(self):
        return self.frames[-1] if self.frames else []

    # -- deletion ------------------------------------------------------
    def delete_shader(self, shader):
        self.shaders.pop(shader, None)
        self.deleted.append(('shader', shader))

    def delete_program(self, program):
        self.programs.pop(program, None)
        self.deleted.append(('program', program))

    def delete_vertex_array(self, vao):
        self.vertex_arrays.pop(vao, None)
        self.deleted.append(('vertex_array', vao))

    def delete_buffer(self, buffer):
        self.buffers.pop(buffer, None)
        self.deleted.append(('buffer', buffer))


class HeadlessTimers(Timers):
    """Intervals on a simulated millisecond clock."""
    def __init__(self, clock, fail=False):
        self.scheduler = Scheduler(time_fn=clock)
        self.fail = fail

    def set_interval(self, callback, period_ms):
        if self.fail:
            raise RuntimeError("timer registration refused")
        token = self.scheduler.add_task(callback, period_ms)
        logger.debug(f"Interval {token} registered every {period_ms} ms")
        return token

    def clear_interval(self, token):
        self.scheduler.remove_task(token)

    @property
    def active(self):
        return len(self.scheduler.tasks)


class HeadlessInput(Input):
    """Keyboard fed by ``dispatch`` instead of a real device."""
    def __init__(self, fail=False):
        self.listeners = {}
        self._ids = itertools.count(1)
        self.fail = fail

    def add_key_listener(self, event, callback):
        if event not in (KEY_DOWN, KEY_UP):
            raise ValueError(f"Unknown key event {event!r}")
        if self.fail:
            raise RuntimeError("input device unavailable")
        token = next(self._ids)
        self.listeners[token] = (event, callback)
        logger.debug(f"Key listener {token} registered for '{event}'")
        return token

    def remove_key_listener(self, token):
        self.listeners.pop(token, None)

    def dispatch(self, event, code):
        for listener_event, callback in list(self.listeners.values()):
            if listener_event == event:
                callback(code)


class HeadlessHost(Host):
    """Deterministic host: time only moves through ``advance``."""
    def __init__(self, fail=()):
        fail = set(fail)
        self.now_ms = 0
        super().__init__(
            timers=HeadlessTimers(lambda: self.now_ms, fail='timer' in fail),
            input=HeadlessInput(fail='input' in fail),
            gpu=RecordingGPU(fail=fail & {'compile', 'link', 'buffer', 'vertex_array', 'attrib'}),
        )

    def advance(self, ms):
        """Move the clock forward ``ms`` milliseconds, firing due intervals in order."""
        target = self.now_ms + ms
        scheduler = self.timers.scheduler
        while True:
            due = scheduler.next_due()
            if due is None or due > target:
                break
            self.now_ms = due
            scheduler.step()
        self.now_ms = target

    def press(self, code):
        self.input.dispatch(KEY_DOWN, code)

    def release(self, code):
        self.input.dispatch(KEY_UP, code)

    def tap(self, code):
        self.press(code)
        self.release(code)
