"""Constant tables of the reference cells used by the elements.

A reference cell is described in local coordinates (z, e). For every supported cell
type the tables give the shape functions and their derivatives, the integration points
of the sub-control-volume faces and volumes, and the cyclic neighbour indices of the
corners.

Face ``i`` of a polygonal cell is the segment between the midpoint of the edge
connecting corner ``i`` with corner ``idx_minus1[i]`` and the cell center. Its
direction vector ``delta[:, i]`` points from the edge midpoint towards the center,
such that the left normal of the face points from corner ``i`` into the
sub-control-volume of corner ``idx_minus1[i]``, provided the corners are ordered
counter-clockwise.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional

import numpy as np

import fracflow as ff

__all__ = ["CellType", "ReferenceCell", "reference_cell"]


class CellType(IntEnum):
    """Supported cell types. The value is the number of corners."""

    POINT = 1
    LINE = 2
    TRIANGLE = 3
    QUAD = 4


# Cell type names used by meshio.
MESHIO_NAMES: dict[CellType, str] = {
    CellType.POINT: "vertex",
    CellType.LINE: "line",
    CellType.TRIANGLE: "triangle",
    CellType.QUAD: "quad",
}


@dataclass(frozen=True)
class ReferenceCell:
    """Constant data of one reference cell."""

    cell_type: CellType
    """Type of the cell."""

    num_points: int
    """Number of corners."""

    num_faces: int
    """Number of sub-control-volume faces."""

    idx_plus1: np.ndarray
    """Index of the next corner, counter-clockwise."""

    idx_minus1: np.ndarray
    """Index of the previous corner."""

    delta: np.ndarray = field(default_factory=lambda: np.zeros((2, 0)))
    """``2 x num_faces`` face direction vectors in local coordinates."""

    face_ip: np.ndarray = field(default_factory=lambda: np.zeros((2, 0)))
    """``2 x num_faces`` integration points of the faces."""

    volume_ip: np.ndarray = field(default_factory=lambda: np.zeros((2, 0)))
    """``2 x num_points`` integration points of the sub-control-volumes."""

    center: np.ndarray = field(default_factory=lambda: np.zeros(2))
    """Cell center in local coordinates."""

    raw_volume: float = 0.0
    """Area of the reference cell."""

    shape: Optional[Callable[[float, float], np.ndarray]] = field(
        default=None, repr=False
    )
    shape_gradient: Optional[Callable[[float, float], np.ndarray]] = field(
        default=None, repr=False
    )

    def shape_functions(self, z: float, e: float) -> np.ndarray:
        """Values of the shape functions at (z, e), shape ``(num_points,)``."""
        if self.shape is None:
            raise ValueError(f"No shape functions for {self.cell_type.name}.")
        return self.shape(z, e)

    def shape_derivatives(self, z: float, e: float) -> np.ndarray:
        """Derivatives of the shape functions at (z, e).

        Returns:
            Array of shape ``(num_points, 2)``, with derivatives with respect to z in
            the first column and with respect to e in the second.

        """
        if self.shape_gradient is None:
            raise ValueError(f"No shape functions for {self.cell_type.name}.")
        return self.shape_gradient(z, e)


def _triangle_shape(z: float, e: float) -> np.ndarray:
    return np.array([1 - z - e, z, e])


def _triangle_derivatives(z: float, e: float) -> np.ndarray:
    return np.array([[-1.0, -1.0], [1.0, 0.0], [0.0, 1.0]])


def _quad_shape(z: float, e: float) -> np.ndarray:
    return np.array([(1 - z) * (1 - e), z * (1 - e), z * e, (1 - z) * e])


def _quad_derivatives(z: float, e: float) -> np.ndarray:
    return np.array(
        [
            [-(1 - e), -(1 - z)],
            [1 - e, -z],
            [e, z],
            [-e, 1 - z],
        ]
    )


TRIANGLE = ReferenceCell(
    cell_type=CellType.TRIANGLE,
    num_points=3,
    num_faces=3,
    idx_plus1=np.array([1, 2, 0]),
    idx_minus1=np.array([2, 0, 1]),
    delta=np.array([[1 / 3, -1 / 6, -1 / 6], [-1 / 6, 1 / 3, -1 / 6]]),
    face_ip=np.array([[1 / 6, 5 / 12, 5 / 12], [5 / 12, 1 / 6, 5 / 12]]),
    # The Jacobian is constant on a triangle, any point will do.
    volume_ip=np.zeros((2, 3)),
    center=np.zeros(2),
    raw_volume=0.5,
    shape=_triangle_shape,
    shape_gradient=_triangle_derivatives,
)

QUAD = ReferenceCell(
    cell_type=CellType.QUAD,
    num_points=4,
    num_faces=4,
    idx_plus1=np.array([1, 2, 3, 0]),
    idx_minus1=np.array([3, 0, 1, 2]),
    delta=np.array([[0.5, 0.0, -0.5, 0.0], [0.0, 0.5, 0.0, -0.5]]),
    face_ip=np.array([[0.25, 0.5, 0.75, 0.5], [0.5, 0.25, 0.5, 0.75]]),
    volume_ip=np.array([[0.25, 0.75, 0.75, 0.25], [0.25, 0.25, 0.75, 0.75]]),
    center=np.array([0.5, 0.5]),
    raw_volume=1.0,
    shape=_quad_shape,
    shape_gradient=_quad_derivatives,
)

LINE = ReferenceCell(
    cell_type=CellType.LINE,
    num_points=2,
    num_faces=1,
    idx_plus1=np.array([1, 0]),
    idx_minus1=np.array([1, 0]),
)

_REFERENCE_CELLS: dict[CellType, ReferenceCell] = {
    CellType.LINE: LINE,
    CellType.TRIANGLE: TRIANGLE,
    CellType.QUAD: QUAD,
}


def reference_cell(cell_type: CellType) -> ReferenceCell:
    """Return the reference cell of a cell type.

    Raises:
        MalformedInputError: For cell types without a reference cell (points).

    """
    try:
        return _REFERENCE_CELLS[CellType(cell_type)]
    except KeyError as err:
        raise ff.MalformedInputError(
            f"No element can be built from a {CellType(cell_type).name} cell."
        ) from err
