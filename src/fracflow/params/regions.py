"""Regions partition the mesh into porous matrix, fractures and boundary parts.

Each region carries the identifier assigned by the mesh generator, ``id``, and a
priority index ``idx`` assigned by :func:`sort_regions`. Porous regions are sorted
first, in the order decided by the active J-function. Boundary regions follow, sorted
by id. At a node shared by several porous regions, the region with the smallest
``idx`` is the master.

"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

import fracflow as ff

__all__ = [
    "Region",
    "PorousRegion",
    "MatrixRegion",
    "FractureRegion",
    "BoundaryRegion",
    "SaturationCondition",
    "PressureCondition",
    "sort_regions",
]

logger = logging.getLogger(__name__)


class SaturationCondition(Enum):
    """Saturation condition on a boundary region."""

    CONSTANT = "sconst"
    """The saturation of the boundary nodes is kept constant."""

    ZERO_CAPILLARY_GRADIENT = "gpczero"
    """The normal gradient of the capillary pressure vanishes."""


class PressureCondition(Enum):
    """Pressure condition on a boundary region."""

    CONSTANT_PRESSURE = "pconst"
    CONSTANT_FLUX = "qconst"


@dataclass(eq=False, kw_only=True)
class Region:
    """Base class of all regions."""

    id: int
    """Identifier assigned by the mesh generator."""

    idx: int = field(default=-1, init=False)
    """Priority index, assigned by :func:`sort_regions`."""

    @property
    def is_boundary(self) -> bool:
        return False


@dataclass(eq=False, kw_only=True)
class PorousRegion(Region, abc.ABC):
    """Region filled with porous material."""

    phi: float
    """Porosity."""

    pd: float
    """Capillary entry pressure, the scaling of the J-function."""

    kr: ff.KFunction
    """Relative permeability curves."""

    @property
    @abc.abstractmethod
    def dim(self) -> int:
        """1 for fractures, 2 for the matrix."""

    def __post_init__(self) -> None:
        if self.phi <= 0:
            raise ValueError(f"Region {self.id}: porosity must be positive.")
        if self.pd < 0:
            raise ValueError(f"Region {self.id}: entry pressure must not be negative.")


@dataclass(eq=False, kw_only=True)
class MatrixRegion(PorousRegion):
    """Two-dimensional porous matrix with a permeability tensor."""

    k: ff.SecondOrderTensor

    @property
    def dim(self) -> int:
        return 2

    def __str__(self) -> str:
        return (
            f"MatrixRegion: |ID: {self.id} |idx: {self.idx} |phi: {self.phi} "
            f"|pd: {self.pd} |kr: {self.kr} |k: {self.k} |"
        )


@dataclass(eq=False, kw_only=True)
class FractureRegion(PorousRegion):
    """One-dimensional fracture with scalar permeability and an aperture."""

    k: float
    e: float
    """Aperture."""

    @property
    def dim(self) -> int:
        return 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.k <= 0 or self.e <= 0:
            raise ValueError(
                f"Region {self.id}: permeability and aperture must be positive."
            )

    def __str__(self) -> str:
        return (
            f"FractureRegion: |ID: {self.id} |idx: {self.idx} |phi: {self.phi} "
            f"|pd: {self.pd} |kr: {self.kr} |k: {self.k} |e: {self.e}|"
        )


@dataclass(eq=False, kw_only=True)
class BoundaryRegion(Region):
    """Part of the boundary with a pressure and a saturation condition."""

    stype: SaturationCondition
    ptype: PressureCondition
    value: float
    """Prescribed pressure, or flux per unit length."""

    @property
    def is_boundary(self) -> bool:
        return True

    def __str__(self) -> str:
        stype = (
            "constant_s"
            if self.stype == SaturationCondition.CONSTANT
            else "(grad_pc).n=0"
        )
        ptype = (
            "constant_p"
            if self.ptype == PressureCondition.CONSTANT_PRESSURE
            else "constant_q"
        )
        return (
            f"BoundaryRegion: |ID: {self.id} |idx: {self.idx} |SType: {stype} "
            f"|PType: {ptype} |value: {self.value}|"
        )


def sort_regions(regions: Iterable[Region], j_function: ff.JFunction) -> list[Region]:
    """Sort regions by priority and assign their priority index.

    Porous regions come first, ordered by ``j_function.sort_key``, then the boundary
    regions ordered by id.

    Parameters:
        regions: All regions of a mesh.
        j_function: The active capillary pressure curve.

    Returns:
        The regions in priority order. Their ``idx`` equals their position.

    """

    def key(region: Region) -> tuple:
        if region.is_boundary:
            return (1, region.id)
        return (0, *j_function.sort_key(region))

    ordered = sorted(regions, key=key)
    for i, region in enumerate(ordered):
        region.idx = i
        logger.debug(f"Region {region.id} got priority index {i}")
    return ordered
