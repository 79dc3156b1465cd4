"""The mesh: owner of all regions, nodes, elements and boundary vertices.

A mesh is populated in two phases. First the regions and the nodes are added, the
nodes strictly in order of their index, starting at zero. Then cells are added with
:meth:`Mesh.add_element`. Cells of porous regions become elements, cells of boundary
regions (points and lines) become boundary vertices. Cells referring to an unknown
region are skipped.

:meth:`Mesh.construct_geo_params` then finalizes the mesh: the regions are sorted by
priority, the DuplData of every (node, region) pair are created and numbered, the
static element operators are computed, and the fixed sparsity pattern of the pressure
matrix is built. After this, the mesh exposes the layout arrays the time marching
relies on.

"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
import scipy.sparse as sps

import fracflow as ff
from fracflow.geometry.shapes import CellType

__all__ = ["Mesh"]

logger = logging.getLogger(__name__)

module_sections = ["gridding"]


class Mesh:
    """Container and wiring of the discretization entities.

    Attributes after :meth:`construct_geo_params`:
        pattern: CSR matrix with the sparsity pattern of the pressure system. All
            values are zero.
        matrix_positions: For every element, the positions in ``pattern.data`` of its
            local matrix entries, in row major order.
        node_of_dupl: Node index of every DuplData.
        region_of_dupl: Priority index of the region of every DuplData.
        master_of_node: Storage index of the master DuplData of every node.
        slave_dupl: Storage indices of all slave DuplData.
        master_of_slave: Storage index of the master DuplData of the node of every
            entry in ``slave_dupl``.
        phi: Porosity of the region of every DuplData.
        pd: Entry pressure of the region of every DuplData.

    """

    def __init__(self) -> None:
        self.regions: list[ff.Region] = []
        self.nodes: list[ff.Node] = []
        self.elements: list[ff.Element] = []
        self.bvertices: list[ff.ConstantFluxVertex] = []
        self.num_dupl = 0
        self.is_constructed = False

        self.pattern = sps.csr_matrix((0, 0))
        self.matrix_positions: list[np.ndarray] = []
        self.node_of_dupl = np.zeros(0, dtype=int)
        self.master_of_node = np.zeros(0, dtype=int)
        self.region_of_dupl = np.zeros(0, dtype=int)
        self.slave_dupl = np.zeros(0, dtype=int)
        self.master_of_slave = np.zeros(0, dtype=int)
        self.phi = np.zeros(0)
        self.pd = np.zeros(0)

    def __repr__(self) -> str:
        return (
            f"Mesh with {len(self.regions)} regions, {self.num_nodes} nodes, "
            f"{len(self.elements)} elements, {len(self.bvertices)} boundary vertices "
            f"and {self.num_dupl} DuplData."
        )

    @property
    def num_nodes(self) -> int:
        return len(self.nodes)

    @property
    def num_elements(self) -> int:
        return len(self.elements)

    @property
    def x(self) -> np.ndarray:
        return np.array([n.x for n in self.nodes])

    @property
    def y(self) -> np.ndarray:
        return np.array([n.y for n in self.nodes])

    @property
    def porous_regions(self) -> list[ff.PorousRegion]:
        return [r for r in self.regions if not r.is_boundary]  # type: ignore

    def add_region(self, region: ff.Region) -> None:
        """Register a region.

        Raises:
            MalformedInputError: If a region with the same id exists.

        """
        if self.find_region(region.id) is not None:
            raise ff.MalformedInputError(f"Region id {region.id} is used twice.")
        self.regions.append(region)

    def find_region(self, region_id: int) -> Optional[ff.Region]:
        """The region with a given id, or None if there is none."""
        for region in self.regions:
            if region.id == region_id:
                return region
        return None

    def add_node(self, idx: int, x: float, y: float) -> ff.Node:
        """Add a node. Nodes must be added in order of their index, starting at 0.

        Raises:
            InvariantViolationError: If the index is out of order.

        """
        if not self.nodes and idx != 0:
            raise ff.InvariantViolationError("first node should have index = 0")
        if self.nodes and idx != self.nodes[-1].idx + 1:
            raise ff.InvariantViolationError(
                f"nodes should be added in order, {self.nodes[-1].idx} -> {idx}"
            )
        node = ff.Node(idx, float(x), float(y))
        self.nodes.append(node)
        return node

    def add_element(
        self,
        region_id: int,
        node_indices: Sequence[int],
        cell_type: CellType,
        line_number: Optional[int] = None,
    ) -> None:
        """Add a cell of the mesh description.

        Parameters:
            region_id: Id of the region of the cell. Unknown ids are skipped.
            node_indices: Corner node indices.
            cell_type: Type of the cell.
            line_number: Position of the cell in the mesh file, for error messages.

        Raises:
            MalformedInputError: If a node index does not exist or does not fit the
                cell type, or a boundary region is given a cell that is neither a
                point nor a line.

        """
        region = self.find_region(region_id)
        if region is None:
            logger.debug(f"Skipping cell of unknown region {region_id}")
            return

        cell_type = CellType(cell_type)
        where = f" at line {line_number} of mesh file" if line_number else ""
        if len(node_indices) != int(cell_type) or any(i < 0 for i in node_indices):
            raise ff.MalformedInputError(
                f"Cell of region {region_id} has invalid nodes {list(node_indices)}"
                f"{where}, a {cell_type.name} needs {int(cell_type)} nodes."
            )
        try:
            nodes = [self.nodes[i] for i in node_indices]
        except IndexError as err:
            raise ff.MalformedInputError(
                f"Cell of region {region_id} refers to unknown nodes "
                f"{list(node_indices)}{where}."
            ) from err

        if region.is_boundary:
            self._add_boundary_cell(region, nodes, cell_type, where)  # type: ignore
        else:
            element = ff.new_element(region, nodes, cell_type)  # type: ignore
            self.elements.append(element)

    def _add_boundary_cell(
        self,
        region: ff.BoundaryRegion,
        nodes: list[ff.Node],
        cell_type: CellType,
        where: str,
    ) -> None:
        if cell_type == CellType.POINT:
            self.bvertices.append(ff.new_boundary_vertex(nodes[0], region))
        elif cell_type == CellType.LINE:
            n0, n1 = nodes
            if n0.bvertex is None:
                self.bvertices.append(ff.new_boundary_vertex(n0, region))
            n0.bvertex.add_neighbor(n1)  # type: ignore
            if n1.bvertex is None:
                self.bvertices.append(ff.new_boundary_vertex(n1, region))
            n1.bvertex.add_neighbor(n0)  # type: ignore
        else:
            raise ff.MalformedInputError(
                f"Element belongs to region: {region.id} which is boundary. However "
                f"it is neither a line nor a point. It is a {cell_type.name}{where}."
            )

    @ff.time_logger(sections=module_sections)
    def construct_geo_params(
        self, j_function: ff.JFunction, dp: float, gravity: ff.Gravity
    ) -> None:
        """Finalize the mesh.

        Parameters:
            j_function: The capillary pressure curve, which decides region priority.
            dp: Dimensionless pressure scale, used by the boundary vertices.
            gravity: The gravity field.

        Raises:
            MalformedInputError: If a node is not part of any porous element, or an
                element is degenerate, or a region with zero entry pressure would
                be a slave of a capillary pressure curve.
            InvariantViolationError: If the DuplData numbering is inconsistent.

        """
        if self.is_constructed:
            raise ff.InvariantViolationError("The mesh is already constructed.")

        self.regions = ff.sort_regions(self.regions, j_function)

        for element in self.elements:
            element.construct_dupl_data()
            element.construct_boundary_links()
            element.construct_geo_params()

        self._number_dupl_data()
        # Slave saturations scale with the entry pressure ratio master / slave.
        if not isinstance(j_function, ff.JFunctionZero) and np.any(
            self.pd[self.slave_dupl] == 0
        ):
            raise ff.MalformedInputError(
                "A region with zero entry pressure shares nodes with another porous "
                f"region, which {j_function} cannot link."
            )
        for element in self.elements:
            element.update_storage_indices()

        self._construct_pattern()

        for bvertex in self.bvertices:
            bvertex.construct_geo_params(dp, self.pattern, gravity)

        self.is_constructed = True
        logger.info(str(self))

    def _number_dupl_data(self) -> None:
        expected = 0
        counter = 0
        node_of_dupl: list[int] = []
        master_of_node = np.zeros(self.num_nodes, dtype=int)
        slave_dupl: list[int] = []
        master_of_slave: list[int] = []

        for node in self.nodes:
            if not node.dd:
                raise ff.MalformedInputError(
                    f"Node {node.idx} does not belong to any porous element."
                )
            expected += node.num_dupl
            for dd in node.dd:
                dd.idx = counter
                node_of_dupl.append(node.idx)
                counter += 1
            master_of_node[node.idx] = node.master.idx
            for dd in node.slaves:
                slave_dupl.append(dd.idx)
                master_of_slave.append(node.master.idx)

        if counter != expected:
            raise ff.InvariantViolationError(
                f"Numbered {counter} DuplData, but the nodes hold {expected}."
            )

        self.num_dupl = counter
        self.node_of_dupl = np.array(node_of_dupl, dtype=int)
        self.master_of_node = master_of_node
        self.slave_dupl = np.array(slave_dupl, dtype=int)
        self.master_of_slave = np.array(master_of_slave, dtype=int)

        regions = [dd.region for node in self.nodes for dd in node.dd]
        self.phi = np.array([r.phi for r in regions], dtype=float)
        self.pd = np.array([r.pd for r in regions], dtype=float)
        self.region_of_dupl = np.array([r.idx for r in regions], dtype=int)

    def _construct_pattern(self) -> None:
        """Build the sparsity pattern from the element connectivity."""
        n = self.num_nodes
        rows = [np.repeat(e.node_idx, e.num_nodes) for e in self.elements]
        cols = [np.tile(e.node_idx, e.num_nodes) for e in self.elements]
        all_rows = np.concatenate(rows) if rows else np.zeros(0, dtype=int)
        all_cols = np.concatenate(cols) if cols else np.zeros(0, dtype=int)

        pattern = sps.coo_matrix(
            (np.ones(all_rows.size), (all_rows, all_cols)), shape=(n, n)
        ).tocsr()
        pattern.sum_duplicates()
        pattern.sort_indices()
        pattern.data[:] = 0.0
        self.pattern = pattern

        # The (row, column) keys of the CSR entries are sorted, so the position of
        # any entry is found by a binary search.
        entry_rows = np.repeat(np.arange(n), np.diff(pattern.indptr))
        keys = entry_rows * n + pattern.indices
        self.matrix_positions = [
            np.searchsorted(keys, r * n + c) for r, c in zip(rows, cols)
        ]

    def new_matrix(self) -> sps.csr_matrix:
        """A zero matrix with the pressure sparsity pattern."""
        return self.pattern.copy()

    def assemble_matrix(
        self, A: sps.csr_matrix, local_matrices: Sequence[np.ndarray]
    ) -> None:
        """Add local element matrices into a matrix with the mesh pattern."""
        if not local_matrices:
            return
        positions = np.concatenate(self.matrix_positions)
        values = np.concatenate([m.ravel() for m in local_matrices])
        np.add.at(A.data, positions, values)

    def assemble_vector(
        self, b: np.ndarray, local_vectors: Sequence[np.ndarray]
    ) -> None:
        """Add local element vectors into a node vector."""
        if not local_vectors:
            return
        positions = np.concatenate([e.node_idx for e in self.elements])
        np.add.at(b, positions, np.concatenate(local_vectors))

    def describe_nodes(self) -> str:
        lines = []
        for node in self.nodes:
            dd = " ".join(f"({d.idx}, {d.region.idx})" for d in node.dd)
            lines.append(
                f"Node {node.idx}: x: {node.x} y: {node.y} n_dd: {node.num_dupl} "
                f"dd: {dd}"
            )
        return "\n".join(lines) + "\n"
