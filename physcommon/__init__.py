# physcommon/__init__.py

from .math import Vector3D, Matrix3, Matrix4, axis_angle_to_rotation, orthonormalize, skew
from .scheduler import Scheduler
from .logger import get_logger

__all__ = [
    'Vector3D', 'Matrix3', 'Matrix4',
    'axis_angle_to_rotation', 'orthonormalize', 'skew',
    'Scheduler',
    'get_logger',
]
