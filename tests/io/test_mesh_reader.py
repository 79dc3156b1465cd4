import numpy as np
import pytest

import fracflow as ff
from fracflow.geometry.shapes import CellType
from fracflow.io.mesh_reader import read_gmsh, read_mesh, read_triangle

# Unit square split into two triangles, with one boundary line on each vertical side
# and a point cell of an unknown region.
GMSH = """\
$MeshFormat
2.2 0 8
$EndMeshFormat
$Nodes
4
1 0 0 0
2 1 0 0
3 1 1 0
4 0 1 0
$EndNodes
$Elements
5
1 15 2 20 1 1
2 1 2 10 1 1 4
3 1 2 11 2 2 3
4 2 2 1 3 1 2 3
5 2 2 1 3 1 3 4
$EndElements
"""

TRIANGLE_NODE = """\
# Square
4 2 0 1
1 0.0 0.0 1
2 1.0 0.0 1
3 1.0 1.0 1
4 0.0 1.0 1
"""

TRIANGLE_ELE = """\
2 3 1
1 1 2 3 1
2 1 3 4 1.0
"""

TRIANGLE_POLY = """\
0 2 0 1
2 1
1 1 4 10
2 2 3 11
"""


def _regions():
    kr = ff.KFunctionFirooz(2, 2, 1, 1)
    return [
        ff.MatrixRegion(id=1, phi=0.2, pd=1, kr=kr, k=ff.SecondOrderTensor(1)),
        ff.BoundaryRegion(
            id=10,
            stype=ff.SaturationCondition.CONSTANT,
            ptype=ff.PressureCondition.CONSTANT_PRESSURE,
            value=1,
        ),
        ff.BoundaryRegion(
            id=11,
            stype=ff.SaturationCondition.ZERO_CAPILLARY_GRADIENT,
            ptype=ff.PressureCondition.CONSTANT_PRESSURE,
            value=0,
        ),
    ]


@pytest.fixture
def triangle_files(tmp_path):
    for suffix, text in [
        ("node", TRIANGLE_NODE),
        ("ele", TRIANGLE_ELE),
        ("poly", TRIANGLE_POLY),
    ]:
        (tmp_path / f"square.{suffix}").write_text(text)
    return tmp_path / "square"


def test_read_gmsh(tmp_path):
    path = tmp_path / "square.msh"
    path.write_text(GMSH)
    description = read_gmsh(path)
    np.testing.assert_allclose(description.points, [[0, 0], [1, 0], [1, 1], [0, 1]])
    by_type = {}
    for cell in description.cells:
        by_type.setdefault(cell.cell_type, []).append(cell)
    assert [c.region_id for c in by_type[CellType.POINT]] == [20]
    assert sorted(c.region_id for c in by_type[CellType.LINE]) == [10, 11]
    triangles = by_type[CellType.TRIANGLE]
    assert [list(c.nodes) for c in triangles] == [[0, 1, 2], [0, 2, 3]]
    assert all(c.region_id == 1 for c in triangles)


def test_read_triangle(triangle_files):
    description = read_triangle(triangle_files)
    assert description.num_nodes == 4
    np.testing.assert_allclose(description.points[2], [1, 1])
    cells = description.cells
    assert [c.cell_type for c in cells] == [CellType.TRIANGLE] * 2 + [CellType.LINE] * 2
    assert [list(c.nodes) for c in cells] == [[0, 1, 2], [0, 2, 3], [0, 3], [1, 2]]
    assert [c.region_id for c in cells] == [1, 1, 10, 11]
    # Line numbers within the element file.
    assert [c.line_number for c in cells[:2]] == [2, 3]


def test_read_mesh_dispatch(tmp_path, triangle_files):
    assert read_mesh(tmp_path, "triangle", "square").num_nodes == 4
    (tmp_path / "other.msh").write_text(GMSH)
    assert read_mesh(tmp_path, "gmsh", "other").num_nodes == 4
    with pytest.raises(ff.MalformedInputError):
        read_mesh(tmp_path, "vtk", "square")


def test_build_mesh(triangle_files):
    mesh = ff.mesh_reader.build_mesh(read_triangle(triangle_files), _regions())
    assert mesh.num_nodes == 4
    assert mesh.num_elements == 2
    assert len(mesh.bvertices) == 4
    assert not mesh.is_constructed
    ff.preprocess(mesh, ff.JFunctionZero(), 1.0, ff.Gravity())
    assert mesh.num_dupl == 4


def test_build_mesh_skips_unknown_regions(tmp_path):
    path = tmp_path / "square.msh"
    path.write_text(GMSH)
    mesh = ff.mesh_reader.build_mesh(read_gmsh(path), _regions())
    # The point cell of region 20 is skipped.
    assert len(mesh.bvertices) == 4
    assert mesh.num_elements == 2


@pytest.mark.parametrize(
    "suffix, old, new, message",
    [
        ("node", "3 1.0 1.0 1", "5 1.0 1.0 1", "numbered consecutively"),
        ("node", "4 0.0 1.0 1\n", "", "unexpected end of file"),
        ("ele", "2 1 3 4 1.0", "2 1 3 x 1.0", "square.ele, line 3"),
        ("ele", "2 1 3 4 1.0", "2 1 3 4", "expected 5 values"),
        ("poly", "2 1\n", "3 1\n", "unexpected end of file"),
    ],
)
def test_malformed_triangle_files(triangle_files, suffix, old, new, message):
    path = triangle_files.parent / f"square.{suffix}"
    text = path.read_text()
    assert old in text
    path.write_text(text.replace(old, new))
    with pytest.raises(ff.MalformedInputError) as excinfo:
        read_triangle(triangle_files)
    assert message in str(excinfo.value)


def test_missing_triangle_file(triangle_files):
    (triangle_files.parent / "square.poly").unlink()
    with pytest.raises(ff.MalformedInputError) as excinfo:
        read_triangle(triangle_files)
    assert "Cannot open" in str(excinfo.value)


def test_missing_gmsh_file(tmp_path):
    with pytest.raises(ff.MalformedInputError):
        read_gmsh(tmp_path / "none.msh")
