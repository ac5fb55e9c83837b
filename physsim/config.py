"""
Configuration: JSON file merged over built-in defaults.
"""
import copy
import json

import numpy as np

from physcommon.logger import get_logger
from physcommon.math import Vector3D, Matrix3
from .camera import Camera, LINEAR_SPEED, ANGULAR_SPEED, DEFAULT_CAMERA_POS
from .dynamics import RigidBody
from .errors import ConfigError

logger = get_logger("physsim.config")

PHYSICS_INTERVAL = 10  # ms
DRAW_INTERVAL = 100    # ms

DEFAULTS = {
    "target": "matplotlib",
    "physics_interval_ms": PHYSICS_INTERVAL,
    "draw_interval_ms": DRAW_INTERVAL,
    "linear_speed": LINEAR_SPEED,
    "angular_speed": ANGULAR_SPEED,
    "camera_pos": list(DEFAULT_CAMERA_POS),
    "body": {
        "pos": [0.0, 0.0, 0.0],
        "lin_vel": [0.0, 0.0, 0.0],
        "ang_mom": [1.0, 0.3, 0.1],
        "inertia": [1.0, 2.0, 3.0],
    },
    "headless_duration_ms": 10000,
    "log_level": "INFO",
}


def load_config(path="config.json"):
    """
    Load JSON configuration and return it merged over ``DEFAULTS``.
    A missing file yields the defaults.
    """
    config = copy.deepcopy(DEFAULTS)
    try:
        with open(path, "r") as f:
            user = json.load(f)
    except FileNotFoundError:
        logger.info(f"Config file '{path}' not found, using defaults.")
        return config
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file '{path}' is not valid JSON: {e}") from e
    if not isinstance(user, dict):
        raise ConfigError(f"Config file '{path}' must hold a JSON object")
    body = user.pop("body", None)
    config.update(user)
    if body is not None:
        config["body"].update(body)
    return config


def _vector(value, name):
    try:
        a = np.asarray(value, dtype=float)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be a list of 3 numbers") from e
    if a.shape != (3,) or not np.all(np.isfinite(a)):
        raise ConfigError(f"'{name}' must be a list of 3 finite numbers, got {value!r}")
    return Vector3D(*a)


def _inertia(value):
    try:
        a = np.asarray(value, dtype=float)
    except (TypeError, ValueError) as e:
        raise ConfigError("'body.inertia' must be 3 diagonal entries or a 3x3 matrix") from e
    if a.shape == (3,):
        a = np.diag(a)
    if a.shape != (3, 3):
        raise ConfigError(f"'body.inertia' must be 3 diagonal entries or a 3x3 matrix, got {value!r}")
    if not np.allclose(a, a.T):
        raise ConfigError("'body.inertia' must be symmetric")
    if np.any(np.linalg.eigvalsh(a) <= 0):
        raise ConfigError("'body.inertia' must be positive definite")
    return Matrix3(np.linalg.inv(a))


class RunnerConfig:
    """Validated settings for a ``Runner``."""
    def __init__(self, physics_interval_ms=PHYSICS_INTERVAL, draw_interval_ms=DRAW_INTERVAL,
                 linear_speed=LINEAR_SPEED, angular_speed=ANGULAR_SPEED,
                 camera_pos=None, body=None):
        for name, value in (("physics_interval_ms", physics_interval_ms),
                            ("draw_interval_ms", draw_interval_ms)):
            if not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"'{name}' must be a positive number, got {value!r}")
        self.physics_interval_ms = physics_interval_ms
        self.draw_interval_ms = draw_interval_ms
        self.linear_speed = float(linear_speed)
        self.angular_speed = float(angular_speed)
        self.camera_pos = camera_pos if camera_pos is not None else Vector3D(*DEFAULT_CAMERA_POS)
        self.body = body if body is not None else RigidBody()

    @classmethod
    def from_dict(cls, config):
        body_cfg = {**DEFAULTS["body"], **config.get("body", {})}
        body = RigidBody(
            pos=_vector(body_cfg["pos"], "body.pos"),
            lin_vel=_vector(body_cfg["lin_vel"], "body.lin_vel"),
            ang_mom=_vector(body_cfg["ang_mom"], "body.ang_mom"),
            inv_ine=_inertia(body_cfg["inertia"]),
        )
        return cls(
            physics_interval_ms=config.get("physics_interval_ms", PHYSICS_INTERVAL),
            draw_interval_ms=config.get("draw_interval_ms", DRAW_INTERVAL),
            linear_speed=config.get("linear_speed", LINEAR_SPEED),
            angular_speed=config.get("angular_speed", ANGULAR_SPEED),
            camera_pos=_vector(config.get("camera_pos", DEFAULT_CAMERA_POS), "camera_pos"),
            body=body,
        )

    def make_camera(self):
        return Camera(pos=self.camera_pos.copy(),
                      linear_speed=self.linear_speed,
                      angular_speed=self.angular_speed)
