"""Shapes used to overwrite the saturation field in set-field mode."""

from __future__ import annotations

import abc

import numpy as np

__all__ = ["Shape", "Rectangle", "Circle"]

# Tolerance added to the shapes, so that points on the outline count as inside.
_EPSILON = 1e-11


class Shape(abc.ABC):
    """A closed planar region."""

    @abc.abstractmethod
    def contains(self, x, y) -> np.ndarray:
        """Whether the points (x, y) lie inside the shape."""


class Rectangle(Shape):
    """Axis aligned rectangle with lower left corner (x0, y0) and upper right corner
    (x1, y1)."""

    def __init__(self, x0: float, y0: float, x1: float, y1: float) -> None:
        self.x0 = x0 - _EPSILON
        self.y0 = y0 - _EPSILON
        self.x1 = x1 + _EPSILON
        self.y1 = y1 + _EPSILON

    def __repr__(self) -> str:
        return f"Rectangle x0-y0-x1-y1: {self.x0} {self.y0} {self.x1} {self.y1}"

    def contains(self, x, y) -> np.ndarray:
        x = np.asarray(x)
        y = np.asarray(y)
        return (x > self.x0) & (x < self.x1) & (y > self.y0) & (y < self.y1)


class Circle(Shape):
    """Circle with center (x0, y0) and radius r."""

    def __init__(self, x0: float, y0: float, r: float) -> None:
        self.x0 = x0
        self.y0 = y0
        self.r = r + _EPSILON

    def __repr__(self) -> str:
        return f"Circle x0-y0-r: {self.x0} {self.y0} {self.r}"

    def contains(self, x, y) -> np.ndarray:
        return (np.asarray(x) - self.x0) ** 2 + (
            np.asarray(y) - self.y0
        ) ** 2 < self.r**2
