"""
Interface definitions for the host environment: timers, keyboard input and GPU.

The simulation driver only talks to these classes; concrete hosts live in
``physsim.host`` (headless) and ``physsim.render`` (matplotlib).
"""

# Primitive modes
TRIANGLES = "TRIANGLES"
LINES = "LINES"

# Buffer usage hint
DYNAMIC_DRAW = "DYNAMIC_DRAW"

# Shader kinds
VERTEX_SHADER = "VERTEX_SHADER"
FRAGMENT_SHADER = "FRAGMENT_SHADER"

# Key events
KEY_DOWN = "down"
KEY_UP = "up"


class GPUError(Exception):
    """GPU resource creation failed; ``log`` carries the driver diagnostic."""
    def __init__(self, message, log=""):
        super().__init__(message)
        self.message = message
        self.log = log

    def __str__(self):
        if self.log:
            return f"{self.message}: {self.log}"
        return self.message


class Timers:
    """Abstract base for periodic callbacks fired on the host loop thread."""
    def set_interval(self, callback, period_ms):
        """Call ``callback()`` every ``period_ms`` milliseconds; return a token."""
        raise NotImplementedError

    def clear_interval(self, token):
        """Cancel a callback registered with ``set_interval``."""
        raise NotImplementedError


class Input:
    """Abstract base for keyboard event sources."""
    def add_key_listener(self, event, callback):
        """Register ``callback(code)`` for ``event`` ("down" or "up"); return a token.

        ``code`` is a DOM-style key code such as ``"KeyW"``.
        """
        raise NotImplementedError

    def remove_key_listener(self, token):
        """Unregister a listener added with ``add_key_listener``."""
        raise NotImplementedError


class GPU:
    """Abstract base for the minimal GL ES 3.0 surface used by the driver.

    Creation calls raise ``GPUError`` on failure; draw calls never fail.
    """
    def compile_shader(self, kind, source):
        raise NotImplementedError

    def link_program(self, vertex_shader, fragment_shader):
        raise NotImplementedError

    def create_vertex_array(self):
        raise NotImplementedError

    def create_buffer(self):
        raise NotImplementedError

    def bind_vertex_array(self, vao):
        raise NotImplementedError

    def bind_buffer(self, buffer):
        raise NotImplementedError

    def get_attrib_location(self, program, name):
        raise NotImplementedError

    def vertex_attrib_pointer(self, location, size, stride, offset):
        """Describe a float attribute of ``size`` components in the bound buffer (bytes)."""
        raise NotImplementedError

    def enable_vertex_attrib_array(self, location):
        raise NotImplementedError

    def use_program(self, program):
        raise NotImplementedError

    def buffer_data(self, buffer, data, usage=DYNAMIC_DRAW):
        """Upload a float32 array into ``buffer``."""
        raise NotImplementedError

    def uniform_matrix4(self, program, name, values):
        """Set a ``mat4`` uniform from 16 column-major floats."""
        raise NotImplementedError

    def draw_arrays(self, mode, first, count):
        raise NotImplementedError

    def clear(self, r, g, b, a):
        raise NotImplementedError

    def delete_shader(self, shader):
        raise NotImplementedError

    def delete_program(self, program):
        raise NotImplementedError

    def delete_vertex_array(self, vao):
        raise NotImplementedError

    def delete_buffer(self, buffer):
        raise NotImplementedError


class Host:
    """Bundle of the three collaborators a ``Runner`` needs."""
    def __init__(self, timers, input, gpu):
        self.timers = timers
        self.input = input
        self.gpu = gpu
