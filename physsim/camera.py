# camera.py
# Free-fly camera driven by held keys

from physcommon.math import Vector3D, Matrix3, Matrix4, axis_angle_to_rotation

LINEAR_SPEED = 0.001   # units per ms of physics interval
ANGULAR_SPEED = 0.001  # rad per ms of physics interval

DEFAULT_CAMERA_POS = (0.0, 0.0, 10.0)

# slot -> (kind, camera-local axis); forward is −Z
CONTROLS = {
    'forward':    ('translate', (0, 0, -1)),
    'back':       ('translate', (0, 0, 1)),
    'left':       ('translate', (-1, 0, 0)),
    'right':      ('translate', (1, 0, 0)),
    'down':       ('translate', (0, -1, 0)),
    'up':         ('translate', (0, 1, 0)),
    'pitch_down': ('rotate', (-1, 0, 0)),
    'pitch_up':   ('rotate', (1, 0, 0)),
    'yaw_left':   ('rotate', (0, -1, 0)),
    'yaw_right':  ('rotate', (0, 1, 0)),
    'roll_ccw':   ('rotate', (0, 0, 1)),
    'roll_cw':    ('rotate', (0, 0, -1)),
}

KEY_BINDINGS = {
    'KeyW': 'forward',
    'KeyS': 'back',
    'KeyA': 'left',
    'KeyD': 'right',
    'KeyQ': 'down',
    'KeyE': 'up',
    'KeyI': 'pitch_down',
    'KeyK': 'pitch_up',
    'KeyJ': 'yaw_left',
    'KeyL': 'yaw_right',
    'KeyU': 'roll_ccw',
    'KeyO': 'roll_cw',
}


class KeysPressed:
    """The twelve held-key slots, one boolean attribute per control."""
    SLOTS = tuple(CONTROLS)

    def __init__(self):
        self.clear()

    def clear(self):
        for slot in self.SLOTS:
            setattr(self, slot, False)

    def set(self, code, pressed):
        """Update the slot bound to ``code``. Returns False for unbound codes."""
        slot = KEY_BINDINGS.get(code)
        if slot is None:
            return False
        setattr(self, slot, bool(pressed))
        return True

    def held(self):
        return [slot for slot in self.SLOTS if getattr(self, slot)]

    def any(self):
        return any(getattr(self, slot) for slot in self.SLOTS)

    def __repr__(self):
        return f"KeysPressed({', '.join(self.held())})"


class Camera:
    """Camera pose; the view matrix is (T(pos)·R(rot))⁻¹."""
    def __init__(self, pos=None, rot=None, linear_speed=LINEAR_SPEED, angular_speed=ANGULAR_SPEED):
        self.pos = pos if pos is not None else Vector3D(*DEFAULT_CAMERA_POS)
        self.rot = rot if rot is not None else Matrix3.identity()
        self.linear_speed = linear_speed
        self.angular_speed = angular_speed

    def apply_controls(self, keys, dt_ms):
        """Move the camera for every held key over ``dt_ms`` milliseconds.

        Translations are taken along the camera's own axes; rotations
        post-multiply ``rot`` so they also act about local axes. All held
        translations are applied before any rotation.
        """
        held = keys.held()
        for slot in held:
            kind, axis = CONTROLS[slot]
            if kind == 'translate':
                step = Vector3D(*axis) * (self.linear_speed * dt_ms)
                self.pos = self.pos + self.rot @ step
        for slot in held:
            kind, axis = CONTROLS[slot]
            if kind == 'rotate':
                delta = axis_angle_to_rotation(Vector3D(*axis) * (self.angular_speed * dt_ms))
                self.rot = self.rot @ delta

    def transform(self):
        """Camera→world transform T(pos)·R(rot)."""
        return Matrix4.translation(self.pos) @ Matrix4.from_rotation(self.rot)

    def view_matrix(self):
        return self.transform().inverse()

    def forward(self):
        """World-space viewing direction (camera-local −Z)."""
        return Vector3D(*(-self.rot.m[:, 2]))

    def __repr__(self):
        return f"Camera(pos={self.pos}, forward={self.forward()})"
