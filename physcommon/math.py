import numpy as np

# Below this rotation angle Rodrigues' formula is replaced by its first-order expansion
SMALL_ANGLE = 1e-8


class Vector3D:
    def __init__(self, x=0, y=0, z=0):
        self.v = np.array([x, y, z], dtype=float)

    @staticmethod
    def from_array(a):
        return Vector3D(*np.asarray(a, dtype=float).reshape(3))

    def __add__(self, other):
        return Vector3D(*(self.v + other.v))

    def __sub__(self, other):
        return Vector3D(*(self.v - other.v))

    def __mul__(self, scalar):
        return Vector3D(*(self.v * scalar))

    def __rmul__(self, scalar):
        return self.__mul__(scalar)

    def __truediv__(self, scalar):
        return Vector3D(*(self.v / scalar))

    def __iadd__(self, other):
        self.v += other.v
        return self

    def __isub__(self, other):
        self.v -= other.v
        return self

    def __imul__(self, scalar):
        self.v *= scalar
        return self

    def __itruediv__(self, scalar):
        self.v /= scalar
        return self

    def __neg__(self):
        return Vector3D(*(-self.v))

    def __iter__(self):
        return iter(self.v.tolist())

    def dot(self, other):
        """Return scalar dot‐product between two vectors."""
        return float(np.dot(self.v, other.v))

    def cross(self, other):
        return Vector3D(*np.cross(self.v, other.v))

    def magnitude(self):
        return float(np.linalg.norm(self.v))

    def copy(self):
        return Vector3D(*self.v)

    def __repr__(self):
        return f"Vector3D({self.v[0]}, {self.v[1]}, {self.v[2]})"


class Matrix3:
    """Row-major 3×3 matrix; ``M @ v`` treats ``v`` as a column vector."""

    def __init__(self, rows=None):
        if rows is None:
            self.m = np.zeros((3, 3), dtype=float)
        else:
            self.m = np.array(rows, dtype=float).reshape(3, 3)

    @staticmethod
    def identity():
        return Matrix3(np.eye(3))

    @staticmethod
    def diag(a, b, c):
        return Matrix3(np.diag([a, b, c]))

    @staticmethod
    def from_columns(c0, c1, c2):
        return Matrix3(np.column_stack([c0.v, c1.v, c2.v]))

    def __matmul__(self, other):
        if isinstance(other, Matrix3):
            return Matrix3(self.m @ other.m)
        elif isinstance(other, Vector3D):
            return Vector3D(*(self.m @ other.v))
        return NotImplemented

    def __mul__(self, scalar):
        return Matrix3(self.m * scalar)

    def __rmul__(self, scalar):
        return self.__mul__(scalar)

    def __add__(self, other):
        return Matrix3(self.m + other.m)

    def __sub__(self, other):
        return Matrix3(self.m - other.m)

    def column(self, i):
        return Vector3D(*self.m[:, i])

    def transpose(self):
        return Matrix3(self.m.T)

    def inverse(self):
        return Matrix3(np.linalg.inv(self.m))

    def determinant(self):
        return float(np.linalg.det(self.m))

    def copy(self):
        return Matrix3(self.m)

    def __repr__(self):
        return f"Matrix3({self.m.tolist()})"


class Matrix4:
    """Row-major 4×4 homogeneous transform."""

    def __init__(self, rows=None):
        if rows is None:
            self.m = np.zeros((4, 4), dtype=float)
        else:
            self.m = np.array(rows, dtype=float).reshape(4, 4)

    @staticmethod
    def identity():
        return Matrix4(np.eye(4))

    @staticmethod
    def translation(v):
        t = np.eye(4)
        t[:3, 3] = v.v
        return Matrix4(t)

    @staticmethod
    def from_rotation(rot):
        r = np.eye(4)
        r[:3, :3] = rot.m
        return Matrix4(r)

    @staticmethod
    def perspective(fovy, aspect, z_near, z_far):
        """OpenGL-style projection: eye looks down −Z, depth maps to [−1, 1].

        ``fovy`` is in radians.
        """
        f = 1.0 / np.tan(fovy / 2.0)
        nf = 1.0 / (z_near - z_far)
        return Matrix4([
            [f / aspect, 0.0, 0.0, 0.0],
            [0.0, f, 0.0, 0.0],
            [0.0, 0.0, (z_far + z_near) * nf, 2.0 * z_far * z_near * nf],
            [0.0, 0.0, -1.0, 0.0],
        ])

    def __matmul__(self, other):
        if isinstance(other, Matrix4):
            return Matrix4(self.m @ other.m)
        return NotImplemented

    def transform_point(self, p):
        """Apply to a point (w = 1) and return the homogeneous 4-vector."""
        return self.m @ np.append(p.v, 1.0)

    def transpose(self):
        return Matrix4(self.m.T)

    def inverse(self):
        return Matrix4(np.linalg.inv(self.m))

    def determinant(self):
        return float(np.linalg.det(self.m))

    def to_gl(self):
        """Column-major float32 values as expected by ``uniform mat4``."""
        return np.ascontiguousarray(self.m.T, dtype=np.float32).ravel()

    def copy(self):
        return Matrix4(self.m)

    def __repr__(self):
        return f"Matrix4({self.m.tolist()})"


def skew(v):
    """Cross-product matrix [v]× such that skew(v) @ u == v × u."""
    x, y, z = v.v
    return Matrix3([
        [0.0, -z, y],
        [z, 0.0, -x],
        [-y, x, 0.0],
    ])


def axis_angle_to_rotation(vec):
    """Rotation matrix for the axis-angle vector ``vec`` (Rodrigues).

    The direction of ``vec`` is the axis and its magnitude the angle in
    radians. A zero vector gives the identity exactly; tiny angles use
    ``I + [vec]×`` so the axis normalisation never divides by ~0.
    """
    angle = vec.magnitude()
    if angle == 0.0:
        return Matrix3.identity()
    if angle < SMALL_ANGLE:
        return Matrix3.identity() + skew(vec)
    k = skew(vec / angle)
    return Matrix3.identity() + k * np.sin(angle) + (k @ k) * (1.0 - np.cos(angle))


def orthonormalize(rot):
    """Project a near-rotation back onto SO(3) with modified Gram–Schmidt on its columns."""
    c0, c1, c2 = (rot.m[:, i].copy() for i in range(3))
    c0 /= np.linalg.norm(c0)
    c1 -= np.dot(c0, c1) * c0
    c1 /= np.linalg.norm(c1)
    c2 -= np.dot(c0, c2) * c0
    c2 -= np.dot(c1, c2) * c1
    c2 /= np.linalg.norm(c2)
    return Matrix3(np.column_stack([c0, c1, c2]))
