"""Elementary planar formulas shared by elements and boundary vertices."""

from __future__ import annotations

import numpy as np

__all__ = ["ROT", "line_length", "line_normal", "find_height"]

ROT = np.array([[0.0, -1.0], [1.0, 0.0]])
"""Rotation by 90 degrees counter-clockwise."""


def line_length(x1: float, y1: float, x2: float, y2: float) -> float:
    """Length of the segment from (x1, y1) to (x2, y2)."""
    return float(np.hypot(x2 - x1, y2 - y1))


def line_normal(x1: float, y1: float, x2: float, y2: float) -> np.ndarray:
    """Normal vector of the segment from (x1, y1) to (x2, y2), scaled by its length.

    The normal points to the right of the direction of travel, which is outwards for
    a boundary traversed counter-clockwise.

    """
    return -ROT @ np.array([x2 - x1, y2 - y1])


def find_height(x, y, x0: float, y0: float, xdir: float, ydir: float):
    """Signed height of points measured along the direction (xdir, ydir).

    Parameters:
        x: x coordinates, scalar or array.
        y: y coordinates, scalar or array.
        x0: x coordinate of a point with zero height.
        y0: y coordinate of a point with zero height.
        xdir: x component of the direction in which the height increases.
        ydir: y component of the direction in which the height increases.

    Returns:
        Heights, with the same shape as x.

    """
    norm = np.hypot(xdir, ydir)
    return (xdir * (np.asarray(x) - x0) + ydir * (np.asarray(y) - y0)) / norm
