"""The element family: flux operators and local equations of the mesh cells.

Elements come in two variants. :class:`PolygonElement` covers triangles and
quadrilaterals of the porous matrix, and builds its flux operator from the shape
functions of the reference cell. :class:`FractureElement` is a two-node segment of a
fracture with closed-form one-dimensional expressions.

An element goes through the following stages, in this order:

    1. construction from a region and its corner nodes,
    2. :meth:`Element.construct_dupl_data`, resolving the DuplData of each corner,
    3. :meth:`Element.construct_boundary_links`, ordering the neighbours of boundary
       vertices at the corners,
    4. :meth:`Element.construct_geo_params`, computing the static operators,
    5. :meth:`Element.update_storage_indices`, once the DuplData are numbered,

after which the upwind selection and the local pressure and saturation equations can
be evaluated repeatedly.

The local equations follow the sign convention that the product of a row of
:meth:`Element.lhs_pressure` with the corner pressures, minus the corresponding entry
of :meth:`Element.rhs_pressure`, is the total inflow into the sub-control-volume of
that corner. Likewise :meth:`Element.rhs_saturation` gives the wetting phase inflow.

All local data extracted from global fields are copies, so they can be held
simultaneously without aliasing.

"""

from __future__ import annotations

import abc
import logging
from typing import Optional, Sequence

import numpy as np

import fracflow as ff
from fracflow.geometry.shapes import LINE, CellType, ReferenceCell

__all__ = ["Element", "PolygonElement", "FractureElement", "new_element"]

logger = logging.getLogger(__name__)


class Element(abc.ABC):
    """Common part of all elements.

    Parameters:
        region: The porous region of the element.
        nodes: The corner nodes, ordered counter-clockwise for polygons.

    """

    cell: ReferenceCell
    """Reference cell of the element type."""

    def __init__(self, region: ff.PorousRegion, nodes: Sequence[ff.Node]) -> None:
        if len(nodes) != self.cell.num_points:
            raise ff.InvariantViolationError(
                f"A {self.cell.cell_type.name} needs {self.cell.num_points} nodes, "
                f"got {len(nodes)}."
            )
        self.region = region
        self.nodes: list[ff.Node] = list(nodes)
        self.dd: list[Optional[ff.DuplData]] = [None] * self.cell.num_points
        self.node_idx = np.array([n.idx for n in self.nodes], dtype=int)
        self.dupl_idx = np.full(self.cell.num_points, -1, dtype=int)
        # Upwind corner of each face, for the wetting and non-wetting phase.
        self.upwind_w = np.arange(self.cell.num_faces)
        self.upwind_n = np.arange(self.cell.num_faces)

    @property
    def cell_type(self) -> CellType:
        return self.cell.cell_type

    @property
    def num_nodes(self) -> int:
        return self.cell.num_points

    @property
    def num_faces(self) -> int:
        return self.cell.num_faces

    @property
    def region_id(self) -> int:
        return self.region.id

    def construct_dupl_data(self) -> None:
        """Find or create the DuplData of the element region at every corner."""
        self.dd = [node.add_region(self.region) for node in self.nodes]

    def update_storage_indices(self) -> None:
        """Cache the storage indices of the corner DuplData."""
        if any(d is None for d in self.dd):
            raise ff.InvariantViolationError(
                "DuplData must be constructed before their indices are used."
            )
        self.dupl_idx = np.array([d.idx for d in self.dd], dtype=int)  # type: ignore

    def local_continuous(self, field: np.ndarray) -> np.ndarray:
        """Values of a node field at the corners."""
        return field[self.node_idx]

    def local_discontinuous(self, field: np.ndarray) -> np.ndarray:
        """Values of a DuplData field at the corners."""
        return field[self.dupl_idx]

    def local_upwind(self, field: np.ndarray, upwind: np.ndarray) -> np.ndarray:
        """Values of a DuplData field at the upwind corner of every face."""
        return field[self.dupl_idx[upwind]]

    @abc.abstractmethod
    def construct_boundary_links(self) -> None:
        """Order the neighbours of boundary vertices at the corners."""

    @abc.abstractmethod
    def construct_geo_params(self) -> None:
        """Compute the static geometric operators."""

    @abc.abstractmethod
    def mat_volume(self) -> np.ndarray:
        """Volume of the sub-control-volume of every corner."""

    @abc.abstractmethod
    def mat_kd(self) -> np.ndarray:
        """``2 x num_nodes`` permeability weighted gradient operator at the center."""

    @abc.abstractmethod
    def find_upwind_wetting(self, p: np.ndarray) -> None:
        """Select the wetting phase upwind corner of every face.

        Parameters:
            p: Pressure of all nodes.

        """

    @abc.abstractmethod
    def find_upwind_nonwetting(self, p: np.ndarray, pc: np.ndarray) -> None:
        """Select the non-wetting phase upwind corner of every face.

        Parameters:
            p: Pressure of all nodes.
            pc: Capillary potential of all DuplData.

        """

    @abc.abstractmethod
    def lhs_pressure(self, lw: np.ndarray, ln: np.ndarray) -> np.ndarray:
        """Local matrix of the pressure equation, using upwind mobilities."""

    @abc.abstractmethod
    def rhs_pressure(self, ln: np.ndarray, pc: np.ndarray) -> np.ndarray:
        """Local right hand side of the pressure equation."""

    @abc.abstractmethod
    def rhs_saturation(self, lw: np.ndarray, p: np.ndarray) -> np.ndarray:
        """Wetting phase inflow into the sub-control-volume of every corner."""

    def describe(
        self,
        s: Optional[np.ndarray] = None,
        p: Optional[np.ndarray] = None,
        pc: Optional[np.ndarray] = None,
        lw: Optional[np.ndarray] = None,
        ln: Optional[np.ndarray] = None,
    ) -> str:
        """Human readable summary of the element, with local field values."""
        lines = [
            f"{type(self).__name__}<{self.cell_type.name}>:",
            f"Region: {self.region.idx}",
            f"Nodes: {self.node_idx}",
            "DuplData: "
            + " | ".join(
                f"{d.idx} {d.region.idx}" for d in self.dd if d is not None
            ),
            f"UpNodeWetting: {self.node_idx[self.upwind_w]}",
            f"UpNodeNonWetting: {self.node_idx[self.upwind_n]}",
        ]
        if p is not None:
            lines.append(f"p_corner: {self.local_continuous(p)}")
        if pc is not None:
            lines.append(f"pc_corner: {self.local_discontinuous(pc)}")
        if s is not None:
            lines.append(f"s_corner: {self.local_discontinuous(s)}")
        if lw is not None:
            lines.append(f"lw_corner: {self.local_discontinuous(lw)}")
            lines.append(f"lw_up: {self.local_upwind(lw, self.upwind_w)}")
        if ln is not None:
            lines.append(f"ln_corner: {self.local_discontinuous(ln)}")
            lines.append(f"ln_up: {self.local_upwind(ln, self.upwind_n)}")
        lines.append(f"V: {self.mat_volume()}")
        lines.append(f"KD:\n{self.mat_kd()}")
        if lw is not None and ln is not None:
            lines.append(f"lhsP:\n{self.lhs_pressure(lw, ln)}")
        if ln is not None and pc is not None:
            lines.append(f"rhsP: {self.rhs_pressure(ln, pc)}")
        if lw is not None and p is not None:
            lines.append(f"rhsS: {self.rhs_saturation(lw, p)}")
        return "\n".join(lines) + "\n"


class PolygonElement(Element):
    """Triangle or quadrilateral of a matrix region.

    The flux operator ``H`` has one row per face. For face ``i``, ``H[i] @ p`` equals
    ``K grad(p) . n``, integrated over the face, where ``n`` points from corner ``i``
    towards corner ``idx_minus1[i]``.

    Clockwise ordered corners are reversed on construction.

    """

    def __init__(
        self,
        region: ff.MatrixRegion,
        nodes: Sequence[ff.Node],
        cell: ReferenceCell,
    ) -> None:
        self.cell = cell
        nodes = list(nodes)
        if _signed_area(nodes) < 0:
            logger.debug(
                f"Reordering clockwise element {[n.idx for n in nodes]} of region "
                f"{region.id}"
            )
            nodes = [nodes[0]] + nodes[:0:-1]
        super().__init__(region, nodes)
        self.k = region.k.values
        self.H = np.zeros((cell.num_faces, cell.num_points))
        self._volume = np.zeros(cell.num_points)
        self._kd = np.zeros((2, cell.num_points))

    def _coordinates(self) -> np.ndarray:
        return np.array([[n.x for n in self.nodes], [n.y for n in self.nodes]])

    def _jacobian(self, z: float, e: float) -> tuple[np.ndarray, np.ndarray]:
        """Jacobian of the reference map and the shape derivatives at (z, e)."""
        B = self.cell.shape_derivatives(z, e)
        return self._coordinates() @ B, B

    def construct_boundary_links(self) -> None:
        for i, node in enumerate(self.nodes):
            if node.bvertex is not None:
                node.bvertex.check_previous(self.nodes[self.cell.idx_minus1[i]])
                node.bvertex.check_next(self.nodes[self.cell.idx_plus1[i]])

    def construct_geo_params(self) -> None:
        cell = self.cell
        rot = ff.formulas.ROT
        for i in range(cell.num_faces):
            J, B = self._jacobian(cell.face_ip[0, i], cell.face_ip[1, i])
            if np.linalg.det(J) <= 0:
                raise ff.MalformedInputError(
                    f"Degenerate element with nodes {self.node_idx} in region "
                    f"{self.region.id}."
                )
            self.H[i] = B @ np.linalg.inv(J) @ self.k.T @ rot @ J @ cell.delta[:, i]

        for i in range(cell.num_points):
            J, _ = self._jacobian(cell.volume_ip[0, i], cell.volume_ip[1, i])
            self._volume[i] = cell.raw_volume * np.linalg.det(J) / cell.num_points

        J, B = self._jacobian(cell.center[0], cell.center[1])
        self._kd = self.k @ (B @ np.linalg.inv(J)).T

    def mat_volume(self) -> np.ndarray:
        return self._volume.copy()

    def mat_kd(self) -> np.ndarray:
        return self._kd.copy()

    def _upwind(self, potential: np.ndarray) -> np.ndarray:
        # Non-negative flux out of corner i across face i keeps i upwind, so a
        # zero-flux face always picks i whatever the previous potential was.
        flux = -(self.H @ potential)
        return np.where(flux >= 0, np.arange(self.num_faces), self.cell.idx_minus1)

    def find_upwind_wetting(self, p: np.ndarray) -> None:
        self.upwind_w = self._upwind(self.local_continuous(p))

    def find_upwind_nonwetting(self, p: np.ndarray, pc: np.ndarray) -> None:
        self.upwind_n = self._upwind(
            self.local_continuous(p) + self.local_discontinuous(pc)
        )

    def _face_difference(self, mobility: np.ndarray) -> np.ndarray:
        # Row i: mobility[i] * H[i] - mobility[i + 1] * H[i + 1]
        weighted = mobility[:, None] * self.H
        return weighted - weighted[self.cell.idx_plus1]

    def lhs_pressure(self, lw: np.ndarray, ln: np.ndarray) -> np.ndarray:
        mobility = self.local_upwind(lw, self.upwind_w) + self.local_upwind(
            ln, self.upwind_n
        )
        return self._face_difference(mobility)

    def rhs_pressure(self, ln: np.ndarray, pc: np.ndarray) -> np.ndarray:
        return -(
            self._face_difference(self.local_upwind(ln, self.upwind_n))
            @ self.local_discontinuous(pc)
        )

    def rhs_saturation(self, lw: np.ndarray, p: np.ndarray) -> np.ndarray:
        return self._face_difference(
            self.local_upwind(lw, self.upwind_w)
        ) @ self.local_continuous(p)

    def describe(self, *args, **kwargs) -> str:
        return super().describe(*args, **kwargs) + f"H:\n{self.H}\n"


class FractureElement(Element):
    """Two-node segment of a fracture region."""

    cell = LINE

    def __init__(self, region: ff.FractureRegion, nodes: Sequence[ff.Node]) -> None:
        super().__init__(region, nodes)
        self.k = region.k
        self.e = region.e
        self.length = 0.0
        # Transmissibility, k * e / length
        self.ke_l = 0.0

    def construct_boundary_links(self) -> None:
        pass

    def construct_geo_params(self) -> None:
        n0, n1 = self.nodes
        self.length = ff.formulas.line_length(n0.x, n0.y, n1.x, n1.y)
        if self.length <= 0:
            raise ff.MalformedInputError(
                f"Fracture element with coinciding nodes {self.node_idx}."
            )
        self.ke_l = self.k * self.e / self.length

    def mat_volume(self) -> np.ndarray:
        return np.full(2, 0.5 * self.length * self.e)

    def mat_kd(self) -> np.ndarray:
        n0, n1 = self.nodes
        scale = self.k / self.length**2
        dx = (n1.x - n0.x) * scale
        dy = (n1.y - n0.y) * scale
        return np.array([[-dx, dx], [-dy, dy]])

    def find_upwind_wetting(self, p: np.ndarray) -> None:
        p0, p1 = self.local_continuous(p)
        self.upwind_w = np.array([1 if p1 > p0 else 0])

    def find_upwind_nonwetting(self, p: np.ndarray, pc: np.ndarray) -> None:
        p0, p1 = self.local_continuous(p) + self.local_discontinuous(pc)
        self.upwind_n = np.array([1 if p1 > p0 else 0])

    def lhs_pressure(self, lw: np.ndarray, ln: np.ndarray) -> np.ndarray:
        mobility = (
            self.local_upwind(lw, self.upwind_w) + self.local_upwind(ln, self.upwind_n)
        )[0]
        c = mobility * self.ke_l
        return np.array([[-c, c], [c, -c]])

    def rhs_pressure(self, ln: np.ndarray, pc: np.ndarray) -> np.ndarray:
        pc0, pc1 = self.local_discontinuous(pc)
        v1 = self.local_upwind(ln, self.upwind_n)[0] * self.ke_l * (pc1 - pc0)
        return np.array([-v1, v1])

    def rhs_saturation(self, lw: np.ndarray, p: np.ndarray) -> np.ndarray:
        p0, p1 = self.local_continuous(p)
        v1 = self.local_upwind(lw, self.upwind_w)[0] * self.ke_l * (p0 - p1)
        return np.array([-v1, v1])

    def describe(self, *args, **kwargs) -> str:
        return super().describe(*args, **kwargs) + f"KE_L: {self.ke_l}\n"


def _signed_area(nodes: Sequence[ff.Node]) -> float:
    x = np.array([n.x for n in nodes])
    y = np.array([n.y for n in nodes])
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def new_element(
    region: ff.PorousRegion, nodes: Sequence[ff.Node], cell_type: CellType
) -> Element:
    """Create the element matching a cell type.

    Raises:
        MalformedInputError: If the cell type is not supported, or does not match the
            dimension of the region.

    """
    cell_type = CellType(cell_type)
    if cell_type == CellType.LINE:
        if not isinstance(region, ff.FractureRegion):
            raise ff.MalformedInputError(
                f"Line cell in region {region.id}, which is not a fracture region."
            )
        return FractureElement(region, nodes)
    if cell_type in (CellType.TRIANGLE, CellType.QUAD):
        if not isinstance(region, ff.MatrixRegion):
            raise ff.MalformedInputError(
                f"{cell_type.name} cell in region {region.id}, which is not a matrix "
                "region."
            )
        return PolygonElement(region, nodes, ff.reference_cell(cell_type))
    raise ff.MalformedInputError(
        f"Cell type {cell_type.name} in porous region {region.id} is not supported."
    )
