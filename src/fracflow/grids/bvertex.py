"""Boundary vertices: nodes where a pressure or flux condition is enforced.

A boundary vertex is attached to one node and belongs to one boundary region. It
knows up to two neighbouring boundary nodes, ``pre`` and ``next``, ordered such that
the domain lies to the left when walking from ``pre`` through the vertex to ``next``.
Half of each adjacent boundary segment is attributed to the vertex, which gives its
boundary length and outward normal.

Two variants exist:

    :class:`ConstantFluxVertex` injects a prescribed total flux
    ``gamma = length * value * dp`` into the pressure equation.

    :class:`ConstantPressureVertex` pins the pressure of its node. Before pinning, the
    assembled matrix row and right hand side are saved, such that the flux through
    the boundary can be recovered from the solved pressure.

In both cases the wetting share ``gamma_w`` of the flux is added to the saturation
source. It follows from the saturation condition of the region: for a constant
saturation the wetting flux exactly cancels the accumulated source at the node, for a
zero capillary gradient it is split by mobility ratio, corrected for gravity.

"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import scipy.sparse as sps

import fracflow as ff

__all__ = ["ConstantFluxVertex", "ConstantPressureVertex", "new_boundary_vertex"]

logger = logging.getLogger(__name__)


class ConstantFluxVertex:
    """Boundary vertex with a prescribed flux per unit length.

    Parameters:
        node: The boundary node. It must not have a boundary vertex already.
        region: The boundary region.

    Raises:
        MalformedInputError: If the node already belongs to a boundary vertex.
        InvariantViolationError: If the pressure condition of the region does not
            match the class.

    """

    _ptype = ff.PressureCondition.CONSTANT_FLUX

    def __init__(self, node: ff.Node, region: ff.BoundaryRegion) -> None:
        if region.ptype != self._ptype:
            raise ff.InvariantViolationError(
                f"{type(self).__name__} needs a region with pressure condition "
                f"{self._ptype.value}, region {region.id} has {region.ptype.value}."
            )
        if node.bvertex is not None:
            raise ff.MalformedInputError(
                f"node {node.idx} was considered as boundary twice. once to "
                f"{node.bvertex.region.id} second time to {region.id}"
            )
        self.node = node
        self.region = region
        self.pre: Optional[ff.Node] = None
        self.next: Optional[ff.Node] = None
        self.length = 0.0
        self.normal = np.zeros(2)
        # K * (gn - gw) * grad(z) . n * A
        self.kdgdzna = 0.0
        self._gamma = 0.0
        self._gamma_w = 0.0
        node.bvertex = self

    @property
    def gamma(self) -> float:
        """Total flux through the vertex, positive into the domain."""
        return self._gamma

    @property
    def gamma_w(self) -> float:
        """Wetting phase flux through the vertex, positive into the domain."""
        return self._gamma_w

    def add_neighbor(self, node: ff.Node) -> int:
        """Register a neighbouring boundary node.

        Returns:
            1 if the node became ``pre``, 2 if it became ``next``, and 0 if both
            neighbours were already known.

        Raises:
            MalformedInputError: If the neighbour belongs to a different boundary
                region.

        """
        if node.bvertex is not None and node.bvertex.region is not self.region:
            raise ff.MalformedInputError(
                f"node {node.idx} wanted to be added to node {self.node.idx} as a "
                f"boundary neighbour. However region mismatch! ID1: "
                f"{node.bvertex.region.id} ID2: {self.region.id}"
            )
        if self.pre is None:
            self.pre = node
            return 1
        if self.next is None:
            self.next = node
            return 2
        return 0

    def check_previous(self, node: ff.Node) -> int:
        """Make sure ``node`` is ``pre``, if it is a neighbour at all.

        Returns:
            1 if the ordering was already correct, 2 if the neighbours were swapped,
            0 if the node is not a neighbour.

        """
        if self.pre is node:
            return 1
        if self.next is node:
            self.pre, self.next = self.next, self.pre
            return 2
        return 0

    def check_next(self, node: ff.Node) -> int:
        """Make sure ``node`` is ``next``, if it is a neighbour at all.

        Returns:
            1 if the ordering was already correct, 2 if the neighbours were swapped,
            0 if the node is not a neighbour.

        """
        if self.next is node:
            return 1
        if self.pre is node:
            self.pre, self.next = self.next, self.pre
            return 2
        return 0

    def _construct_length(self) -> None:
        fml = ff.formulas
        n = self.node
        self.length = 0.0
        if self.pre is not None:
            self.length += fml.line_length(self.pre.x, self.pre.y, n.x, n.y) / 2
        if self.next is not None:
            self.length += fml.line_length(n.x, n.y, self.next.x, self.next.y) / 2
        if self.pre is None and self.next is None:
            self.length = 1.0

    def _construct_normal(self, gravity: ff.Gravity) -> None:
        fml = ff.formulas
        n = self.node
        self.normal = np.zeros(2)
        if self.pre is not None:
            self.normal += fml.line_normal(self.pre.x, self.pre.y, n.x, n.y) / 2
        if self.next is not None:
            self.normal += fml.line_normal(n.x, n.y, self.next.x, self.next.y) / 2
        if self.pre is None and self.next is None:
            logger.warning(
                f"BoundaryWarning: node {n.idx} is source-sink term, setting nA to zero"
            )

        master_region = n.master.region
        if master_region.dim == 1:
            logger.warning(
                f"BoundaryWarning: node {n.idx} is boundary but has a fracture as "
                "master region, setting K*(gn-gw)*Grad(z)*n*A = 0"
            )
            self.kdgdzna = 0.0
        else:
            tmp = (
                master_region.k.values
                @ self.normal
                * (gravity.gn - gravity.gw)
                / np.hypot(gravity.xdir, gravity.ydir)
            )
            self.kdgdzna = float(tmp[0] * gravity.xdir + tmp[1] * gravity.ydir)

    def construct_geo_params(
        self, dp: float, pattern: sps.csr_matrix, gravity: ff.Gravity
    ) -> None:
        """Compute boundary length, normal, gravity term and the prescribed flux.

        Parameters:
            dp: Dimensionless pressure scale.
            pattern: Sparsity pattern of the pressure matrix.
            gravity: The gravity field.

        """
        if not self.node.dd:
            raise ff.MalformedInputError(
                f"Boundary node {self.node.idx} does not belong to any porous region."
            )
        self._construct_length()
        self._construct_normal(gravity)
        self._gamma = self.length * self.region.value * dp

    def assemble_pressure(self, A: sps.csr_matrix, b: np.ndarray) -> None:
        """Add the contribution of the vertex to the pressure system."""
        b[self.node.idx] -= self._gamma

    def find_wetting_flux(
        self, F: np.ndarray, lw: np.ndarray, ln: np.ndarray
    ) -> None:
        """Split the total flux and compute the wetting share.

        Parameters:
            F: Wetting phase source of all nodes, assembled from the elements.
            lw: Wetting mobility of all DuplData.
            ln: Non-wetting mobility of all DuplData.

        """
        if self.region.stype == ff.SaturationCondition.CONSTANT:
            self._gamma_w = -F[self.node.idx]
        else:
            m = self.node.master.idx
            self._gamma_w = (
                (self._gamma - ln[m] * self.kdgdzna) * lw[m] / (lw[m] + ln[m])
            )

    def find_flux_all(
        self, F: np.ndarray, p: np.ndarray, lw: np.ndarray, ln: np.ndarray
    ) -> None:
        """Compute total and wetting flux after the pressure solve.

        Parameters:
            F: Wetting phase source of all nodes, assembled from the elements.
            p: Pressure of all nodes.
            lw: Wetting mobility of all DuplData.
            ln: Non-wetting mobility of all DuplData.

        """
        self.find_wetting_flux(F, lw, ln)

    def assemble_saturation(self, F: np.ndarray) -> None:
        """Add the wetting phase flux to the saturation source."""
        F[self.node.idx] += self._gamma_w

    def _describe_base(self) -> str:
        return (
            f"l: {self.length} nA: {self.normal[0]}, {self.normal[1]} "
            f"mGamma: {self._gamma} mGammaW: {self._gamma_w} "
            f"pre: {self.pre.idx if self.pre is not None else -1} "
            f"self: {self.node.idx} "
            f"next: {self.next.idx if self.next is not None else -1} "
            f"reg: {self.region.id}"
        )

    def describe(self) -> str:
        return f"BVertexCQ {self._describe_base()}"

    def __str__(self) -> str:
        return self.describe()


class ConstantPressureVertex(ConstantFluxVertex):
    """Boundary vertex with a prescribed pressure.

    The matrix row of the node is captured and replaced by an identity row in
    :meth:`assemble_pressure`. The flux is recovered in :meth:`find_flux_all` as
    ``rhs - lhs @ p[conn]`` using the captured row.

    """

    _ptype = ff.PressureCondition.CONSTANT_PRESSURE

    def __init__(self, node: ff.Node, region: ff.BoundaryRegion) -> None:
        super().__init__(node, region)
        self.p = region.value
        # Column indices of the matrix row, and their positions in the data array.
        self.conn = np.zeros(0, dtype=int)
        self._row_slice = slice(0, 0)
        self._diagonal = -1
        # Captured row of the unmodified pressure system.
        self.lhs = np.zeros(0)
        self.rhs = 0.0

    def construct_geo_params(
        self, dp: float, pattern: sps.csr_matrix, gravity: ff.Gravity
    ) -> None:
        if not self.node.dd:
            raise ff.MalformedInputError(
                f"Boundary node {self.node.idx} does not belong to any porous region."
            )
        self._construct_length()
        self._construct_normal(gravity)

        row = self.node.idx
        start, end = pattern.indptr[row], pattern.indptr[row + 1]
        self._row_slice = slice(start, end)
        self.conn = pattern.indices[start:end].copy()
        diagonal = np.flatnonzero(self.conn == row)
        if diagonal.size != 1:
            raise ff.InvariantViolationError(
                f"Pressure matrix pattern has no diagonal entry in row {row}."
            )
        self._diagonal = start + int(diagonal[0])
        self.lhs = np.zeros(self.conn.size)

    def assemble_pressure(self, A: sps.csr_matrix, b: np.ndarray) -> None:
        """Capture the row of the node, then pin its pressure."""
        row = self.node.idx
        self.lhs = A.data[self._row_slice].copy()
        self.rhs = float(b[row])
        A.data[self._row_slice] = 0.0
        A.data[self._diagonal] = 1.0
        b[row] = self.p

    def find_flux_all(
        self, F: np.ndarray, p: np.ndarray, lw: np.ndarray, ln: np.ndarray
    ) -> None:
        self._gamma = self.rhs - float(self.lhs @ p[self.conn])
        self.find_wetting_flux(F, lw, ln)

    def describe(self) -> str:
        return (
            f"BVertexCP {self._describe_base()}\n"
            f"p: {self.p} nConn: {self.conn.size} rhs: {self.rhs}\n"
            f"conn: {self.conn} lhs: {self.lhs}"
        )


def new_boundary_vertex(
    node: ff.Node, region: ff.BoundaryRegion
) -> ConstantFluxVertex:
    """Create the boundary vertex variant matching the pressure condition."""
    if region.ptype == ff.PressureCondition.CONSTANT_PRESSURE:
        return ConstantPressureVertex(node, region)
    return ConstantFluxVertex(node, region)
