"""Readers of mesh descriptions.

Two formats are supported:

    gmsh: a ``<name>.msh`` file, read with meshio. The physical tag of a cell is
        the id of its region. Point, line, triangle and quadrilateral cells are
        accepted.

    triangle: the ``<name>.node``, ``<name>.ele`` and ``<name>.poly`` files written by
        the Triangle mesh generator. The first attribute of a triangle is the id of its
        region, and the marker of a segment the id of its region. Node indices are
        shifted such that the first node has index 0.

A reader returns a :class:`MeshDescription`, which :func:`build_mesh` turns into a
:class:`~fracflow.grids.mesh.Mesh`.

"""

from __future__ import annotations

import logging
from collections import namedtuple
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Union

import meshio
import numpy as np

import fracflow as ff
from fracflow.geometry.shapes import MESHIO_NAMES, CellType

__all__ = [
    "CellRecord",
    "MeshDescription",
    "read_gmsh",
    "read_triangle",
    "read_mesh",
    "build_mesh",
]

logger = logging.getLogger(__name__)

module_sections = ["io", "gridding"]

# One cell of a mesh description. The line number locates the cell in the mesh file,
# or is its position in the file for formats read by meshio.
CellRecord = namedtuple(
    "CellRecord", ["region_id", "nodes", "cell_type", "line_number"]
)

_CELL_TYPES_BY_MESHIO_NAME = {name: ct for ct, name in MESHIO_NAMES.items()}


@dataclass
class MeshDescription:
    """Nodes and cells, as read from a mesh file."""

    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)))
    """``num_nodes x 2`` node coordinates, in node index order."""

    cells: list[CellRecord] = field(default_factory=list)

    @property
    def num_nodes(self) -> int:
        return self.points.shape[0]


@ff.time_logger(sections=module_sections)
def read_gmsh(path: Union[str, Path]) -> MeshDescription:
    """Read a gmsh mesh file.

    Raises:
        MalformedInputError: If the file cannot be read, a cell has an unsupported
            type, or the physical tags are missing.

    """
    path = Path(path)
    try:
        mesh = meshio.read(path, file_format="gmsh")
    except (OSError, ValueError, meshio.ReadError) as err:
        raise ff.MalformedInputError(f"Cannot read gmsh file {path}: {err}") from err

    if "gmsh:physical" not in mesh.cell_data:
        raise ff.MalformedInputError(f"{path} has no physical tags.")

    cells: list[CellRecord] = []
    counter = 0
    for block, tags in zip(mesh.cells, mesh.cell_data["gmsh:physical"]):
        try:
            cell_type = _CELL_TYPES_BY_MESHIO_NAME[block.type]
        except KeyError as err:
            raise ff.MalformedInputError(
                f"{path}: unsupported cell type {block.type}."
            ) from err
        for nodes, tag in zip(block.data, tags):
            counter += 1
            cells.append(CellRecord(int(tag), nodes.astype(int), cell_type, counter))

    points = np.asarray(mesh.points)[:, :2].astype(float)
    logger.info(f"Read {points.shape[0]} nodes and {len(cells)} cells from {path}")
    return MeshDescription(points=points, cells=cells)


def _data_lines(path: Path) -> Iterator[tuple[int, list[str]]]:
    """Non-empty lines of a Triangle file split into words, without comments."""
    try:
        with open(path) as f:
            for number, line in enumerate(f, start=1):
                words = line.split("#", 1)[0].split()
                if words:
                    yield number, words
    except OSError as err:
        raise ff.MalformedInputError(f"Cannot open {path}: {err}") from err


def _parse(path: Path, number: int, words: list[str], fmt: str) -> list:
    """Convert the leading words of a line.

    The format has one letter per word, 'i' for an integer and 'f' for a float.

    """
    values = []
    try:
        for i, kind in enumerate(fmt):
            if i >= len(words):
                raise IndexError(f"expected {len(fmt)} values")
            if kind == "i":
                values.append(int(float(words[i])))
            else:
                values.append(float(words[i]))
    except (IndexError, ValueError) as err:
        raise ff.MalformedInputError(f"{path}, line {number}: {err}") from err
    return values


def _records(path: Path, lines: Iterator, count: int, fmt: str) -> Iterable:
    for _ in range(count):
        try:
            number, words = next(lines)
        except StopIteration as err:
            raise ff.MalformedInputError(
                f"{path}: unexpected end of file, {count} records expected."
            ) from err
        yield number, _parse(path, number, words, fmt)


def _header(path: Path, lines: Iterator) -> int:
    try:
        number, words = next(lines)
    except StopIteration as err:
        raise ff.MalformedInputError(f"{path} is empty.") from err
    return _parse(path, number, words, "i")[0]


@ff.time_logger(sections=module_sections)
def read_triangle(basename: Union[str, Path]) -> MeshDescription:
    """Read the node, element and poly files of a Triangle mesh.

    Parameters:
        basename: Path of the files without extension.

    Raises:
        MalformedInputError: If a file is missing or cannot be interpreted.

    """
    basename = Path(basename)

    # <# of vertices> <dim> <# attributes> <# boundary markers>
    # <vertex #> <x> <y> [attributes] [boundary marker]
    node_file = basename.parent / f"{basename.name}.node"
    lines = _data_lines(node_file)
    num_nodes = _header(node_file, lines)
    indices, coordinates = [], []
    for _, (idx, x, y) in _records(node_file, lines, num_nodes, "iff"):
        indices.append(idx)
        coordinates.append((x, y))
    offset = indices[0] if indices else 0
    if indices != list(range(offset, offset + len(indices))):
        raise ff.MalformedInputError(
            f"{node_file}: nodes must be numbered consecutively."
        )
    points = np.array(coordinates, dtype=float).reshape(-1, 2)

    cells: list[CellRecord] = []

    # <# of triangles> <nodes per triangle> <# of attributes>
    # <triangle #> <node> <node> <node> [attributes]
    ele_file = basename.parent / f"{basename.name}.ele"
    lines = _data_lines(ele_file)
    num_elements = _header(ele_file, lines)
    for number, (_, n0, n1, n2, region) in _records(
        ele_file, lines, num_elements, "iiiii"
    ):
        nodes = np.array([n0, n1, n2]) - offset
        cells.append(CellRecord(region, nodes, CellType.TRIANGLE, number))

    # <# of vertices> ... followed by the vertex lines, which are skipped
    # <# of segments> <# of boundary markers>
    # <segment #> <endpoint> <endpoint> [boundary marker]
    poly_file = basename.parent / f"{basename.name}.poly"
    lines = _data_lines(poly_file)
    num_vertices = _header(poly_file, lines)
    for _ in range(num_vertices):
        next(lines, None)
    num_segments = _header(poly_file, lines)
    for number, (_, n0, n1, marker) in _records(
        poly_file, lines, num_segments, "iiii"
    ):
        nodes = np.array([n0, n1]) - offset
        cells.append(CellRecord(marker, nodes, CellType.LINE, number))

    logger.info(
        f"Read {points.shape[0]} nodes and {len(cells)} cells from {basename}.*"
    )
    return MeshDescription(points=points, cells=cells)


def read_mesh(
    directory: Union[str, Path], mesh_type: str, name: str
) -> MeshDescription:
    """Read the mesh of a case directory.

    Parameters:
        directory: The case directory.
        mesh_type: ``gmsh`` or ``triangle``.
        name: File name of the mesh without extension.

    """
    directory = Path(directory)
    if mesh_type == "gmsh":
        return read_gmsh(directory / f"{name}.msh")
    if mesh_type == "triangle":
        return read_triangle(directory / name)
    raise ff.MalformedInputError(f"Unknown mesh type {mesh_type}.")


@ff.time_logger(sections=module_sections)
def build_mesh(
    description: MeshDescription, regions: Iterable[ff.Region]
) -> ff.Mesh:
    """Populate a mesh with regions, nodes and cells.

    Cells of unknown regions are skipped. The mesh is not constructed, see
    :func:`~fracflow.numerics.impes.preprocess`.

    """
    mesh = ff.Mesh()
    for region in regions:
        mesh.add_region(region)
    for idx, (x, y) in enumerate(description.points):
        mesh.add_node(idx, x, y)
    for cell in description.cells:
        mesh.add_element(cell.region_id, cell.nodes, cell.cell_type, cell.line_number)
    logger.info("Mesh read successfully")
    return mesh
