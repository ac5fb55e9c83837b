# geometry.py
# Tessellation of bodies and vectors into flat vertex lists for the renderer

import numpy as np

HALF = 0.5

# Corner k (0-based) of the unit cube has sign pattern given by the bits of k:
# x ↔ 4, y ↔ 2, z ↔ 1, so (−−−, −−+, −+−, −++, +−−, +−+, ++−, +++).
CUBE_CORNERS = np.array([
    [-HALF if not (k & 4) else HALF,
     -HALF if not (k & 2) else HALF,
     -HALF if not (k & 1) else HALF]
    for k in range(8)
])

# F1..F12, two triangles per face: −X, +X, −Y, +Y, −Z, +Z
CUBE_TRIANGLES = np.array([
    (1, 2, 4), (1, 4, 3),
    (5, 7, 8), (5, 8, 6),
    (1, 5, 6), (1, 6, 2),
    (3, 4, 8), (3, 8, 7),
    (1, 3, 7), (1, 7, 5),
    (2, 6, 8), (2, 8, 4),
]) - 1

# E1..E12: edges along Z, then Y, then X
CUBE_EDGES = np.array([
    (1, 2), (3, 4), (5, 6), (7, 8),
    (1, 3), (2, 4), (5, 7), (6, 8),
    (1, 5), (2, 6), (3, 7), (4, 8),
]) - 1

# Arrow-head leg directions: ±x, ±y, ±z
ARROW_TIP_DIRS = np.array([
    [1.0, 0.0, 0.0], [-1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0], [0.0, -1.0, 0.0],
    [0.0, 0.0, 1.0], [0.0, 0.0, -1.0],
])

ARROW_LINES = 1 + len(ARROW_TIP_DIRS)

RED = (1.0, 0.0, 0.0)
GREEN = (0.0, 1.0, 0.0)
BLUE = (0.0, 0.0, 1.0)
YELLOW = (1.0, 1.0, 0.0)
CYAN = (0.0, 1.0, 1.0)


def cuboid_corners(body):
    """World-space corners v1..v8 of the unit cube posed by ``body`` (8×3 array)."""
    return CUBE_CORNERS @ body.rot_mat.m.T + body.pos.v


def cuboid_vertices(body, wireframe, out):
    """Append the body's cube to ``out`` as xyz floats.

    Solid mode emits 36 vertices (TRIANGLES), wireframe mode 24 (LINES).
    """
    corners = cuboid_corners(body)
    indices = CUBE_EDGES if wireframe else CUBE_TRIANGLES
    out.extend(corners[indices.ravel()].ravel().tolist())
    return out


def arrow_vertices(pos, vec, out, color=None, tip_size=0.1):
    """Append an arrow from ``pos`` along ``vec`` to ``out`` as a LINES list.

    The shaft is followed by six head legs from the tip towards
    ``tip ± tip_size`` on each world axis. With ``color`` every vertex is
    ``x, y, z, r, g, b``; without, ``x, y, z``.
    """
    tip = pos.v + vec.v
    points = [pos.v, tip]
    for d in ARROW_TIP_DIRS:
        points.append(tip)
        points.append(tip + tip_size * d)
    points = np.array(points)
    if color is not None:
        points = np.hstack([points, np.tile(np.asarray(color, dtype=float), (len(points), 1))])
    out.extend(points.ravel().tolist())
    return out
