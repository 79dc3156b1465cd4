"""Capillary pressure (J) and relative permeability (K) curves.

A J-function maps the wetting saturation to the dimensionless capillary pressure,
such that the capillary pressure in a region equals ``pd * J(s)``. Where two regions
with different entry pressures ``pd`` meet at a node, capillary continuity links the
saturation of the slave region to that of the master region. The J-function provides
this relation, ``sopp(s, p1, p2)``, and its derivative ``ds(s, p1, p2)``, with p1 the
entry pressure of the master region and p2 that of the slave. Which of the regions is
the master is also decided by the J-function, through :meth:`JFunction.sort_key`.

All curves accept scalars and numpy arrays. Saturations are clamped before
evaluating expressions that are singular at 0 or 1.

"""

from __future__ import annotations

import abc

import numpy as np

__all__ = [
    "JFunction",
    "JFunctionFirooz",
    "JFunctionZero",
    "JFunctionLinear",
    "JFunctionVanGenuchten",
    "JFunctionBrooksCorey",
    "KFunction",
    "KFunctionFirooz",
    "KFunctionVanGenuchten",
    "KFunctionBrooksCorey",
]


class JFunction(abc.ABC):
    """Abstract capillary pressure curve."""

    @abc.abstractmethod
    def sort_key(self, region) -> tuple:
        """Sorting key of a porous region. Regions with smaller keys are masters.

        Parameters:
            region: A porous region, providing ``pd`` and ``id``.

        """

    @abc.abstractmethod
    def j(self, s):
        """Dimensionless capillary pressure at saturation s."""

    @abc.abstractmethod
    def ds(self, s, p1, p2):
        """Derivative of the slave saturation with respect to the master saturation.

        Parameters:
            s: Master saturation.
            p1: Entry pressure of the master region.
            p2: Entry pressure of the slave region.

        """

    @abc.abstractmethod
    def sopp(self, s, p1, p2):
        """Saturation of the slave region, given the master saturation s.

        Parameters:
            s: Master saturation.
            p1: Entry pressure of the master region.
            p2: Entry pressure of the slave region.

        """

    def __repr__(self) -> str:
        return self.__str__()


class JFunctionFirooz(JFunction):
    """J(s) = -ln(s). Regions with the largest entry pressure are masters."""

    def sort_key(self, region) -> tuple:
        return (-region.pd, region.id)

    def j(self, s):
        return -np.log(np.maximum(s, 0.001))

    def ds(self, s, p1, p2):
        r = np.asarray(p1) / p2
        return r * np.power(np.clip(s, 0.0, 1.0), r - 1)

    def sopp(self, s, p1, p2):
        return np.power(np.clip(s, 0.0, 1.0), np.asarray(p1) / p2)

    def __str__(self) -> str:
        return "FiroozCapillaryCurve"


class JFunctionZero(JFunction):
    """No capillary pressure. Saturation is continuous across regions."""

    def sort_key(self, region) -> tuple:
        return (region.id,)

    def j(self, s):
        return np.zeros_like(np.asarray(s, dtype=float))

    def ds(self, s, p1, p2):
        return np.ones_like(np.asarray(s, dtype=float))

    def sopp(self, s, p1, p2):
        return np.array(s, dtype=float)

    def __str__(self) -> str:
        return "JFunctionZero"


class JFunctionLinear(JFunction):
    """J(s) = 1 - s. Regions with the largest entry pressure are masters."""

    def sort_key(self, region) -> tuple:
        return (-region.pd, region.id)

    def j(self, s):
        return 1 - np.asarray(s, dtype=float)

    def ds(self, s, p1, p2):
        s, r = np.broadcast_arrays(np.asarray(s, dtype=float), np.asarray(p1) / p2)
        return np.where(s < 1 - 1 / r, 0.0, r)

    def sopp(self, s, p1, p2):
        s, r = np.broadcast_arrays(np.asarray(s, dtype=float), np.asarray(p1) / p2)
        return np.where(s < 1 - 1 / r, 0.0, 1 - r * (1 - s))

    def __str__(self) -> str:
        return "JFunctionLinear"


class JFunctionVanGenuchten(JFunction):
    """van Genuchten capillary pressure curve.

    For this curve

        j(s) = (s^(-1/m) - 1)^(1 - m)

    which is truncated to j(e) for saturations below e. The slave saturation is the
    inverse of j applied to r * j(s), with r = p1 / p2. Regions with the largest entry
    pressure are masters.

    Parameters:
        m: Shape parameter, 0 < m < 1.
        e: Truncation saturation.

    """

    def __init__(self, m: float, e: float = 0.01) -> None:
        if not 0 < m < 1:
            raise ValueError("The van Genuchten parameter m must be in (0, 1).")
        self.m = m
        self.e = e
        self.j0 = float(self._j(e))

    def _j(self, s):
        return np.power(np.power(s, -1 / self.m) - 1, 1 - self.m)

    def _s_minus(self, s, r):
        m = self.m
        return np.power(np.power(r, 1 / (1 - m)) * (np.power(s, -1 / m) - 1) + 1, -m)

    def _j_inverse(self, y):
        return np.power(1 + np.power(y, 1 / (1 - self.m)), -self.m)

    def _ds_minus(self, s, r):
        m = self.m
        rr = np.power(r, 1 / (1 - m))
        return (
            np.power(rr * (np.power(s, -1 / m) - 1) + 1, -1 - m)
            * rr
            * np.power(s, -1 / m - 1)
        )

    @staticmethod
    def _clamp(s):
        return np.clip(s, 0.001, 0.999)

    def sort_key(self, region) -> tuple:
        return (-region.pd, region.id)

    def j(self, s):
        s = np.asarray(s, dtype=float)
        return np.where(s < self.e, self.j0, self._j(self._clamp(s)))

    def ds(self, s, p1, p2):
        s, r = np.broadcast_arrays(np.asarray(s, dtype=float), np.asarray(p1) / p2)
        s_lower = self._j_inverse(self.j0 / r)
        return np.where(s < s_lower, 0.0, self._ds_minus(self._clamp(s), r))

    def sopp(self, s, p1, p2):
        s, r = np.broadcast_arrays(np.asarray(s, dtype=float), np.asarray(p1) / p2)
        s_lower = self._j_inverse(self.j0 / r)
        return np.where(s < s_lower, 0.0, self._s_minus(self._clamp(s), r))

    def __str__(self) -> str:
        return f"JFunctionVang: m = {self.m} e = {self.e} j0 = {self.j0}"


class JFunctionBrooksCorey(JFunction):
    """Brooks-Corey curve, J(s) = s^(-1/lambda).

    Regions with the smallest entry pressure are masters.

    """

    def __init__(self, lmbda: float) -> None:
        if lmbda <= 0:
            raise ValueError("The Brooks-Corey parameter lambda must be positive.")
        self.lmbda = lmbda

    def sort_key(self, region) -> tuple:
        return (region.pd, region.id)

    def j(self, s):
        return np.power(np.maximum(0.01, s), -1 / self.lmbda)

    def ds(self, s, p1, p2):
        s, r = np.broadcast_arrays(np.asarray(s, dtype=float), np.asarray(p1) / p2)
        s_r = np.power(r, self.lmbda)
        return np.where(s > s_r, 0.0, np.power(r, -self.lmbda))

    def sopp(self, s, p1, p2):
        s, r = np.broadcast_arrays(np.asarray(s, dtype=float), np.asarray(p1) / p2)
        s_r = np.power(r, self.lmbda)
        return np.where(s > s_r, 1.0, np.power(r, -self.lmbda) * s)

    def __str__(self) -> str:
        return f"JFunctionBrooks: lambda = {self.lmbda}"


class KFunction(abc.ABC):
    """Abstract relative permeability curves."""

    @abc.abstractmethod
    def w(self, s):
        """Wetting phase relative permeability."""

    @abc.abstractmethod
    def nw(self, s):
        """Non-wetting phase relative permeability."""

    def __repr__(self) -> str:
        return self.__str__()


class KFunctionFirooz(KFunction):
    """Power law curves, krw = kw0 s^vw and krn = kn0 (1 - s)^vn."""

    def __init__(self, vw: float, vn: float, kw0: float, kn0: float) -> None:
        self.vw = vw
        self.vn = vn
        self.kw0 = kw0
        self.kn0 = kn0

    def w(self, s):
        return self.kw0 * np.power(np.clip(s, 0.0, 1.0), self.vw)

    def nw(self, s):
        return self.kn0 * np.power(1 - np.clip(s, 0.0, 1.0), self.vn)

    def __str__(self) -> str:
        return (
            f"FiroozRelativePerm vw: {self.vw} vn: {self.vn} kw0: {self.kw0} "
            f"kn0: {self.kn0}"
        )


class KFunctionVanGenuchten(KFunction):
    """van Genuchten-Parker curves.

        krw = kw0 sqrt(s) (1 - (1 - s^(1/m))^m)^2
        krn = kn0 sqrt(1 - s) (1 - s^(1/m))^(2m)

    """

    def __init__(self, m: float, kw0: float, kn0: float) -> None:
        self.m = m
        self.kw0 = kw0
        self.kn0 = kn0

    def w(self, s):
        ss = np.clip(s, 0.001, 0.999)
        return (
            self.kw0
            * np.sqrt(ss)
            * np.power(1 - np.power(1 - np.power(ss, 1 / self.m), self.m), 2)
        )

    def nw(self, s):
        ss = np.clip(s, 0.001, 0.999)
        return (
            self.kn0
            * np.sqrt(1 - ss)
            * np.power(1 - np.power(ss, 1 / self.m), 2 * self.m)
        )

    def __str__(self) -> str:
        return f"VangRelativePerm m: {self.m} kw0: {self.kw0} kn0: {self.kn0}"


class KFunctionBrooksCorey(KFunction):
    """Brooks-Corey curves.

        krw = kw0 s^(3 + 2 lambda)
        krn = kn0 (1 - s)^2 (1 - s^(1 + 2 lambda))

    """

    def __init__(self, lmbda: float, kw0: float, kn0: float) -> None:
        self.lmbda = lmbda
        self.kw0 = kw0
        self.kn0 = kn0

    def w(self, s):
        return self.kw0 * np.power(np.clip(s, 0.0, 1.0), 3 + 2 * self.lmbda)

    def nw(self, s):
        ss = np.clip(s, 0.0, 1.0)
        return self.kn0 * (1 - ss) ** 2 * (1 - np.power(ss, 1 + 2 * self.lmbda))

    def __str__(self) -> str:
        return (
            f"BrooksRelativePerm lambda: {self.lmbda} kw0: {self.kw0} kn0: {self.kn0}"
        )
