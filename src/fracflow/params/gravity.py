"""The gravity field, in dimensionless form."""

from __future__ import annotations

from dataclasses import dataclass

import fracflow as ff

__all__ = ["Gravity"]


@dataclass(frozen=True, kw_only=True)
class Gravity:
    """Gravity acting on the two phases.

    The heights are measured along ``(xdir, ydir)`` from the point ``(x0, y0)``.

    """

    gw: float = 0.0
    """Dimensionless wetting phase gravity number, rho_w g L / P."""

    gn: float = 0.0
    """Dimensionless non-wetting phase gravity number, rho_n g L / P."""

    x0: float = 0.0
    """x coordinate of a point with zero height."""

    y0: float = 0.0
    """y coordinate of a point with zero height."""

    xdir: float = 0.0
    """x component of the upward direction."""

    ydir: float = 1.0
    """y component of the upward direction."""

    def __post_init__(self) -> None:
        if self.xdir == 0 and self.ydir == 0:
            raise ValueError("The direction of gravity must be a non-zero vector.")

    def height(self, x, y):
        """Height of the points (x, y)."""
        return ff.formulas.find_height(x, y, self.x0, self.y0, self.xdir, self.ydir)

    def potential(self, x, y):
        """Gravity contribution to the capillary potential, (gn - gw) * height."""
        return (self.gn - self.gw) * self.height(x, y)
