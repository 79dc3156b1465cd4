"""Fixtures shared by the tests: small structured meshes on the unit square.

The meshes have ``(n + 1)**2`` nodes, numbered row by row from the lower left corner.
Every square is split into two counter-clockwise triangles, or kept as a
quadrilateral. The left side (x = 0) carries the inlet boundary region and the right
side (x = 1) the outlet region. Optionally, a horizontal fracture runs through the
middle of the domain, from boundary to boundary.

"""

from __future__ import annotations

import numpy as np
import pytest

import fracflow as ff
from fracflow.geometry.shapes import CellType
from fracflow.io.config import SimulationParameters
from fracflow.io.mesh_reader import CellRecord, MeshDescription

MATRIX_ID = 1
FRACTURE_ID = 2
INLET_ID = 10
OUTLET_ID = 11
PIN_ID = 12


def _node(i: int, j: int, n: int) -> int:
    return j * (n + 1) + i


def square_description(
    n: int, quads: bool = False, fracture: bool = False
) -> MeshDescription:
    x, y = np.meshgrid(np.linspace(0, 1, n + 1), np.linspace(0, 1, n + 1))
    points = np.vstack((x.ravel(), y.ravel())).T

    cells = []
    for j in range(n):
        for i in range(n):
            a, b = _node(i, j, n), _node(i + 1, j, n)
            c, d = _node(i + 1, j + 1, n), _node(i, j + 1, n)
            if quads:
                cells.append(CellRecord(MATRIX_ID, [a, b, c, d], CellType.QUAD, 0))
            else:
                cells.append(CellRecord(MATRIX_ID, [a, b, c], CellType.TRIANGLE, 0))
                cells.append(CellRecord(MATRIX_ID, [a, c, d], CellType.TRIANGLE, 0))
    if fracture:
        for i in range(n):
            nodes = [_node(i, n // 2, n), _node(i + 1, n // 2, n)]
            cells.append(CellRecord(FRACTURE_ID, nodes, CellType.LINE, 0))
    for j in range(n):
        inlet = [_node(0, j, n), _node(0, j + 1, n)]
        outlet = [_node(n, j, n), _node(n, j + 1, n)]
        cells.append(CellRecord(INLET_ID, inlet, CellType.LINE, 0))
        cells.append(CellRecord(OUTLET_ID, outlet, CellType.LINE, 0))
    return MeshDescription(points=points, cells=cells)


def square_regions(
    inlet: ff.PressureCondition = ff.PressureCondition.CONSTANT_PRESSURE,
    inlet_value: float = 1.0,
    outlet: ff.PressureCondition = ff.PressureCondition.CONSTANT_PRESSURE,
    outlet_value: float = 0.0,
    pd_matrix: float = 1.0,
    pd_fracture: float = 0.5,
    k: float = 1.0,
) -> list[ff.Region]:
    kr = ff.KFunctionFirooz(2, 2, 1, 1)
    return [
        ff.MatrixRegion(
            id=MATRIX_ID, phi=0.2, pd=pd_matrix, kr=kr, k=ff.SecondOrderTensor(k)
        ),
        ff.FractureRegion(
            id=FRACTURE_ID, phi=0.5, pd=pd_fracture, kr=kr, k=100, e=0.01
        ),
        ff.BoundaryRegion(
            id=INLET_ID,
            stype=ff.SaturationCondition.CONSTANT,
            ptype=inlet,
            value=inlet_value,
        ),
        ff.BoundaryRegion(
            id=OUTLET_ID,
            stype=ff.SaturationCondition.ZERO_CAPILLARY_GRADIENT,
            ptype=outlet,
            value=outlet_value,
        ),
    ]


@pytest.fixture
def make_parameters():
    """Factory of simulation parameters with test defaults."""

    def make(**kwargs) -> SimulationParameters:
        values = dict(
            dm=1.0,
            dn=1.0,
            dp=1.0,
            gravity=ff.Gravity(),
            start_time=0.0,
            stop_time=0.05,
            time_step=0.01,
            max_time_step=0.05,
            min_time_step=1e-8,
            max_delta_s=0.05,
            min_delta_s=0.01,
            beta=2.0,
            max_time_iteration=50,
            j_function=ff.JFunctionZero(),
        )
        values.update(kwargs)
        return SimulationParameters(**values)

    return make


@pytest.fixture
def make_mesh():
    """Factory of populated, not yet constructed, meshes of the unit square."""

    def make(n: int = 2, quads: bool = False, fracture: bool = False, **kwargs):
        return ff.mesh_reader.build_mesh(
            square_description(n, quads=quads, fracture=fracture),
            square_regions(**kwargs),
        )

    return make


@pytest.fixture
def make_state(make_parameters, make_mesh):
    """Factory of simulation states on a constructed mesh.

    Keyword arguments not consumed by the mesh are passed to the parameters.

    """

    def make(s0=0.5, mesh_kwargs=None, **kwargs) -> ff.SimulationState:
        parameters = make_parameters(**kwargs)
        mesh = make_mesh(**(mesh_kwargs or {}))
        ff.preprocess(mesh, parameters.j_function, parameters.dp, parameters.gravity)
        state = ff.SimulationState.new(mesh, parameters)
        state.set_master_saturation(s0)
        return state

    return make


@pytest.fixture
def make_closed_state(make_parameters):
    """Factory of simulation states on the square without inlet and outlet.

    The only boundary vertex is an isolated point at node 0 which pins the pressure to
    zero. The wetting volume can then only change through that vertex.

    """

    def make(s0=0.5, n=4, fracture=True, **kwargs) -> ff.SimulationState:
        parameters = make_parameters(**kwargs)
        description = square_description(n, fracture=fracture)
        description.cells.append(CellRecord(PIN_ID, [0], CellType.POINT, 0))
        pin = ff.BoundaryRegion(
            id=PIN_ID,
            stype=ff.SaturationCondition.ZERO_CAPILLARY_GRADIENT,
            ptype=ff.PressureCondition.CONSTANT_PRESSURE,
            value=0.0,
        )
        # Cells of the inlet and outlet are skipped, their regions are unknown.
        regions = [r for r in square_regions() if not isinstance(r, ff.BoundaryRegion)]
        mesh = ff.mesh_reader.build_mesh(description, regions + [pin])
        ff.preprocess(mesh, parameters.j_function, parameters.dp, parameters.gravity)
        state = ff.SimulationState.new(mesh, parameters)
        state.set_master_saturation(s0)
        return state

    return make


CASE_CONFIG = """\
[simulation]
dm = 1
dn = 1
dp = 1
starttime = 0
stoptime = 0.75
timestep = 0.25
maxtimestep = 0.25
mintimestep = 1e-8
maxdeltas = 0.5
mindeltas = 0.0
beta = 2
maxtimeiteration = 50
jmodel = zero

[mesh]
type = triangle
name = square

[output]
nfilebegin = 0
nfileend = 3
visualtype = vtk
visualduplicate = 0

[region matrix]
type = mat
id = 1
phi = 0.2
pd = 1
kr = firooz 2 2 1 1
k = 1

[region inlet]
type = bnd
id = 10
stype = sconst
ptype = pconst
value = 1

[region outlet]
type = bnd
id = 11
stype = gpczero
ptype = pconst
value = 0

[setfield]
a = rectangle -0.1 -0.1 0.6 1.1 0.9
"""


def write_triangle_files(basename, description: MeshDescription) -> None:
    """Write a mesh description in the format of the Triangle mesh generator.

    Nodes are numbered from one. Triangles become elements with their region as the
    only attribute, lines become segments with their region as marker.

    """
    triangles = [c for c in description.cells if c.cell_type == CellType.TRIANGLE]
    lines = [c for c in description.cells if c.cell_type == CellType.LINE]
    with open(f"{basename}.node", "w") as f:
        f.write(f"{description.num_nodes} 2 0 1\n")
        for i, (x, y) in enumerate(description.points, start=1):
            f.write(f"{i} {x} {y} 0\n")
    with open(f"{basename}.ele", "w") as f:
        f.write(f"{len(triangles)} 3 1\n")
        for i, cell in enumerate(triangles, start=1):
            n0, n1, n2 = np.asarray(cell.nodes) + 1
            f.write(f"{i} {n0} {n1} {n2} {cell.region_id}\n")
    with open(f"{basename}.poly", "w") as f:
        f.write("# Vertices are listed in the node file.\n")
        f.write("0 2 0 1\n")
        f.write(f"{len(lines)} 1\n")
        for i, cell in enumerate(lines, start=1):
            n0, n1 = np.asarray(cell.nodes) + 1
            f.write(f"{i} {n0} {n1} {cell.region_id}\n")


@pytest.fixture
def case_directory(tmp_path):
    """A complete case directory on the 3 x 3 node mesh of the unit square."""
    (tmp_path / "solver.cfg").write_text(CASE_CONFIG)
    write_triangle_files(tmp_path / "square", square_description(2))
    (tmp_path / "initial").write_text("%initialcondition\n%mod u 0.5\n")
    return tmp_path
