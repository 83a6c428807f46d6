"""Homography estimation used by the planar pose solver."""

from __future__ import annotations

import numpy as np

_FLOAT_EPS = float(np.finfo(np.float32).eps)


def _xy(points) -> np.ndarray:
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim == 1:
        raise ValueError("points must be a sequence of 2-d or 3-d points")
    pts = pts.reshape(-1, pts.shape[-1])
    if pts.shape[1] not in (2, 3):
        raise ValueError(f"points must have 2 or 3 coordinates, got {pts.shape[1]}")
    return pts[:, :2]


def normalize_data_isotropic(points):
    """Centre the points and scale them to a mean squared norm of 2.

    Returns ``(normalized, t, t_inv)`` where ``normalized`` is a 2xN array,
    ``t`` maps normalized coordinates back and ``t_inv`` maps into them.
    """
    xy = _xy(points)
    n = len(xy)
    if n < 4:
        raise ValueError(f"at least 4 points are needed, got {n}")
    mean = xy.mean(axis=0)
    centred = xy - mean
    kappa = float(np.sum(centred * centred))
    beta = np.sqrt(2 * n / kappa)
    normalized = (centred * beta).T

    t = np.zeros((3, 3))
    t[0, 0] = t[1, 1] = 1.0 / beta
    t[0, 2], t[1, 2] = mean
    t[2, 2] = 1.0

    t_inv = np.zeros((3, 3))
    t_inv[0, 0] = t_inv[1, 1] = beta
    t_inv[0, 2], t_inv[1, 2] = -beta * mean
    t_inv[2, 2] = 1.0
    return normalized, t, t_inv


def homography_ho(src_points, target_points) -> np.ndarray:
    """Estimate the homography mapping ``src_points`` to ``target_points``.

    Harker and O'Leary's normalized linear method; H[2, 2] is 1.
    """
    data_a, _, ta_inv = normalize_data_isotropic(src_points)
    data_b, tb, _ = normalize_data_isotropic(target_points)
    n = data_a.shape[1]
    if n != data_b.shape[1]:
        raise ValueError("source and target must hold the same number of points")

    ax, ay = data_a
    bx, by = data_b
    c1 = -bx * ax
    c2 = -bx * ay
    c3 = -by * ax
    c4 = -by * ay
    m_c1, m_c2, m_c3, m_c4 = c1.mean(), c2.mean(), c3.mean(), c4.mean()

    mx = np.column_stack([c1 - m_c1, c2 - m_c2, -bx])
    my = np.column_stack([c3 - m_c3, c4 - m_c4, -by])

    aat = data_a @ data_a.T
    pp = np.linalg.inv(aat) @ data_a
    bx_mat = pp @ mx
    by_mat = pp @ my
    ex = data_a.T @ bx_mat
    ey = data_a.T @ by_mat

    d = np.vstack([mx - ex, my - ey])
    _, vecs = np.linalg.eigh(d.T @ d)
    h789 = vecs[:, 0]

    h12 = -bx_mat @ h789
    h45 = -by_mat @ h789
    h3 = -(m_c1 * h789[0] + m_c2 * h789[1])
    h6 = -(m_c3 * h789[0] + m_c4 * h789[1])

    h = np.array([[h12[0], h12[1], h3], [h45[0], h45[1], h6], h789])
    h = tb @ h @ ta_inv
    return h / h[2, 2]


def homography_from_square_points(target_points, half_length) -> np.ndarray:
    """Closed-form homography from the square corners to the four target points.

    The square corners are (-h, h), (h, h), (h, -h), (-h, -h) with h = ``half_length``.
    """
    pts = _xy(target_points)
    if len(pts) < 4:
        raise ValueError(f"four target points are needed, got {len(pts)}")
    (p1x, p1y), (p2x, p2y), (p3x, p3y), (p4x, p4y) = -pts[:4]
    hl = float(half_length)

    dets_inv = -1 / (
        hl
        * (
            p1x * p2y - p2x * p1y - p1x * p4y + p2x * p3y
            - p3x * p2y + p4x * p1y + p3x * p4y - p4x * p3y
        )
    )
    h = np.empty((3, 3))
    h[0, 0] = dets_inv * (
        p1x * p3x * p2y - p2x * p3x * p1y - p1x * p4x * p2y + p2x * p4x * p1y
        - p1x * p3x * p4y + p1x * p4x * p3y + p2x * p3x * p4y - p2x * p4x * p3y
    )
    h[0, 1] = dets_inv * (
        p1x * p2x * p3y - p1x * p3x * p2y - p1x * p2x * p4y + p2x * p4x * p1y
        + p1x * p3x * p4y - p3x * p4x * p1y - p2x * p4x * p3y + p3x * p4x * p2y
    )
    h[0, 2] = dets_inv * hl * (
        p1x * p2x * p3y - p2x * p3x * p1y - p1x * p2x * p4y + p1x * p4x * p2y
        - p1x * p4x * p3y + p3x * p4x * p1y + p2x * p3x * p4y - p3x * p4x * p2y
    )
    h[1, 0] = dets_inv * (
        p1x * p2y * p3y - p2x * p1y * p3y - p1x * p2y * p4y + p2x * p1y * p4y
        - p3x * p1y * p4y + p4x * p1y * p3y + p3x * p2y * p4y - p4x * p2y * p3y
    )
    h[1, 1] = dets_inv * (
        p2x * p1y * p3y - p3x * p1y * p2y - p1x * p2y * p4y + p4x * p1y * p2y
        + p1x * p3y * p4y - p4x * p1y * p3y - p2x * p3y * p4y + p3x * p2y * p4y
    )
    h[1, 2] = dets_inv * hl * (
        p1x * p2y * p3y - p3x * p1y * p2y - p2x * p1y * p4y + p4x * p1y * p2y
        - p1x * p3y * p4y + p3x * p1y * p4y + p2x * p3y * p4y - p4x * p2y * p3y
    )
    h[2, 0] = -dets_inv * (
        p1x * p3y - p3x * p1y - p1x * p4y - p2x * p3y
        + p3x * p2y + p4x * p1y + p2x * p4y - p4x * p2y
    )
    h[2, 1] = dets_inv * (
        p1x * p2y - p2x * p1y - p1x * p3y + p3x * p1y
        + p2x * p4y - p4x * p2y - p3x * p4y + p4x * p3y
    )
    h[2, 2] = 1.0
    return h


def rotate_vec_to_z_axis(a) -> np.ndarray:
    """Return the rotation matrix that turns the direction of ``a`` onto the +z axis."""
    vec = np.asarray(a, dtype=np.float64).reshape(-1)
    if vec.size != 3:
        raise ValueError(f"expected a 3-vector, got {vec.size} values")
    nrm = float(np.linalg.norm(vec))
    if nrm == 0:
        raise ValueError("cannot rotate a zero vector")
    ax, ay, az = vec / nrm

    if abs(1.0 + az) < _FLOAT_EPS:
        return np.diag([1.0, 1.0, -1.0])

    d = 1.0 / (1.0 + az)
    ax2, ay2, axay = ax * ax, ay * ay, ax * ay
    return np.array(
        [
            [-ax2 * d + 1.0, -axay * d, -ax],
            [-axay * d, -ay2 * d + 1.0, -ay],
            [ax, ay, 1.0 - (ax2 + ay2) * d],
        ]
    )