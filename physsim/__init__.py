# physsim/__init__.py

from physcommon.math import Vector3D, Matrix3, Matrix4, axis_angle_to_rotation
from .dynamics import RigidBody
from .geometry import cuboid_vertices, arrow_vertices
from .camera import Camera, KeysPressed, KEY_BINDINGS
from .config import RunnerConfig, load_config, PHYSICS_INTERVAL, DRAW_INTERVAL
from .errors import PhysSimError, InitializationError, ReentrancyError, ConfigError
from .runner import Runner, RunnerState, StateGuard, Frame, build_frame, projection_matrix
from .host import HeadlessHost, RecordingGPU

__all__ = [
    'Vector3D', 'Matrix3', 'Matrix4', 'axis_angle_to_rotation',
    'RigidBody',
    'cuboid_vertices', 'arrow_vertices',
    'Camera', 'KeysPressed', 'KEY_BINDINGS',
    'RunnerConfig', 'load_config', 'PHYSICS_INTERVAL', 'DRAW_INTERVAL',
    'PhysSimError', 'InitializationError', 'ReentrancyError', 'ConfigError',
    'Runner', 'RunnerState', 'StateGuard', 'Frame', 'build_frame', 'projection_matrix',
    'HeadlessHost', 'RecordingGPU',
]
