import numpy as np
import pytest

import fracflow as ff
from fracflow.io.config import MAX_SET_FIELD_SHAPES

FULL = """\
[simulation]
dm = 2
dn = 0.5
dp = 4
dgw = 1.0
dgn = 0.8
gorigin = 0 1
gradz = 0 1
starttime = 1
stoptime = 10
timestep = 0.01
maxtimestep = 0.1
mintimestep = 1e-8
maxdeltas = 0.05
mindeltas = 0.01
beta = 1.5
maxtimeiteration = 50
jmodel = firooz   # capillary curve

[mesh]
type = gmsh
name = fractured

[output]
nfilebegin = 2
nfileend = 12
visualtype = VTK
visualduplicate = 2

[solver]
method = gmres
rtol = 1e-8

[region matrix]
type = mat
id = 1
phi = 0.2
pd = 1
kr = firooz 2 2 1 1
k = 1 0.1; 0.1 2

[region fracture]
type = frac
id = 2
phi = 0.5
pd = 0.1
kr = brooks 2 1 1
k = 1000
e = 1e-3

[region inlet]
type = bnd
id = 10
stype = sconst
ptype = qconst
value = 1

[setfield]
b = circle 0.5 0.5 0.1 1
a = rectangle 0 0 0.5 1 0.8
"""

MINIMAL = """\
[simulation]
dm = 1
dn = 1
dp = 1
stoptime = 1
timestep = 0.01
maxtimestep = 0.1
mintimestep = 1e-8
maxdeltas = 0.05
mindeltas = 0.01
beta = 1.5
maxtimeiteration = 50

[region matrix]
type = mat
id = 1
phi = 0.2
pd = 1
kr = vang 0.5 1 1
k = 3
"""


def _write(tmp_path, text):
    (tmp_path / "solver.cfg").write_text(text)
    return tmp_path


class TestRead:
    def test_simulation(self, tmp_path):
        config = ff.read_case_config(_write(tmp_path, FULL))
        sim = config.simulation
        assert config.directory == tmp_path
        assert (sim.dm, sim.dn, sim.dp) == (2, 0.5, 4)
        assert sim.gravity == ff.Gravity(gw=1.0, gn=0.8, x0=0, y0=1, xdir=0, ydir=1)
        assert isinstance(sim.j_function, ff.JFunctionFirooz)
        assert sim.start_time == 1
        assert sim.max_time_iteration == 50

        control = sim.new_time_control()
        assert control.time == 1
        assert control.time_final == 10
        assert control.ds_min_max == (0.01, 0.05)

    def test_output_solver_and_mesh(self, tmp_path):
        config = ff.read_case_config(_write(tmp_path, FULL))
        assert config.output.n_file_begin == 2
        assert config.output.n_file_end == 12
        assert config.output.visual_type == "vtk"
        assert config.output.visual_duplicate == 2
        solver = config.solver.new_solver()
        assert solver.method == "gmres"
        assert solver.rtol == 1e-8
        assert (config.mesh.type, config.mesh.name) == ("gmsh", "fractured")

    def test_regions(self, tmp_path):
        matrix, fracture, inlet = ff.read_case_config(_write(tmp_path, FULL)).regions
        assert isinstance(matrix, ff.MatrixRegion)
        np.testing.assert_array_equal(matrix.k.values, [[1, 0.1], [0.1, 2]])
        assert isinstance(matrix.kr, ff.KFunctionFirooz)
        assert isinstance(fracture, ff.FractureRegion)
        assert (fracture.k, fracture.e, fracture.pd) == (1000, 1e-3, 0.1)
        assert isinstance(fracture.kr, ff.KFunctionBrooksCorey)
        assert inlet.stype == ff.SaturationCondition.CONSTANT
        assert inlet.ptype == ff.PressureCondition.CONSTANT_FLUX
        assert inlet.value == 1

    def test_set_field_sorted_by_key(self, tmp_path):
        shapes = ff.read_case_config(_write(tmp_path, FULL)).set_field
        assert [type(s) for s, _ in shapes] == [ff.Rectangle, ff.Circle]
        assert [v for _, v in shapes] == [0.8, 1.0]

    def test_defaults(self, tmp_path):
        config = ff.read_case_config(_write(tmp_path, MINIMAL))
        assert config.simulation.start_time == 0
        assert config.simulation.gravity == ff.Gravity()
        assert isinstance(config.simulation.j_function, ff.JFunctionZero)
        assert config.output == ff.io.config.OutputParameters()
        assert config.solver.method == "direct"
        assert config.mesh.type == "gmsh"
        assert config.set_field == []
        assert isinstance(config.regions[0].kr, ff.KFunctionVanGenuchten)


def _replace(text, old, new):
    assert old in text
    return text.replace(old, new)


@pytest.mark.parametrize(
    "old, new, message",
    [
        ("stoptime = 10\n", "", "[simulation] stoptime: missing key"),
        ("dm = 2", "dm = two", "[simulation] dm: cannot read 'two'"),
        ("jmodel = firooz", "jmodel = cubic", "unknown J-function 'cubic'"),
        ("gradz = 0 1", "gradz = 0 0", "[simulation] gradz"),
        ("gorigin = 0 1", "gorigin = 0", "expected 2 numbers"),
        ("visualtype = VTK", "visualtype = hdf5", "unsupported format 'hdf5'"),
        ("visualduplicate = 2", "visualduplicate = 3", "expected 0, 1 or 2"),
        ("nfileend = 12", "nfileend = 2", "must exceed nfilebegin"),
        ("method = gmres", "method = cg", "unknown method 'cg'"),
        ("type = gmsh", "type = vtk", "unknown mesh type 'vtk'"),
        ("type = frac", "type = crack", "unknown region type 'crack'"),
        ("kr = firooz 2 2 1 1", "kr = corey 2", "unknown relative permeability"),
        ("kr = brooks 2 1 1", "kr = brooks 2", "[region fracture] kr"),
        ("k = 1 0.1; 0.1 2", "k = 1 0.1 0.1", "[region matrix] k"),
        ("k = 1 0.1; 0.1 2", "k = 1 2; 2 1", "[region matrix]"),
        ("phi = 0.2", "phi = 0", "porosity must be positive"),
        ("stype = sconst", "stype = free", "[region inlet] stype"),
        ("ptype = qconst", "ptype = q", "[region inlet] ptype"),
        ("a = rectangle 0 0 0.5 1 0.8", "a = rectangle 0 0 1", "[setfield] a"),
        ("a = rectangle 0 0 0.5 1 0.8", "a = triangle 0 0 1", "[setfield] a"),
    ],
)
def test_malformed(tmp_path, old, new, message):
    _write(tmp_path, _replace(FULL, old, new))
    with pytest.raises(ff.MalformedInputError) as excinfo:
        ff.read_case_config(tmp_path)
    assert message in str(excinfo.value)
    assert "solver.cfg" in str(excinfo.value)


def test_too_many_shapes(tmp_path):
    shapes = "".join(
        f"s{i} = circle 0 0 0.1 1\n" for i in range(MAX_SET_FIELD_SHAPES + 1)
    )
    _write(tmp_path, FULL + shapes)
    with pytest.raises(ff.MalformedInputError) as excinfo:
        ff.read_case_config(tmp_path)
    assert f"at most {MAX_SET_FIELD_SHAPES} shapes" in str(excinfo.value)


def test_no_porous_region(tmp_path):
    text = MINIMAL.replace("type = mat", "type = bnd\nstype = sconst\nptype = pconst")
    _write(tmp_path, text.replace("pd = 1", "value = 1"))
    with pytest.raises(ff.MalformedInputError) as excinfo:
        ff.read_case_config(tmp_path)
    assert "no porous region" in str(excinfo.value)


def test_missing_file(tmp_path):
    with pytest.raises(ff.MalformedInputError) as excinfo:
        ff.read_case_config(tmp_path)
    assert "Cannot open" in str(excinfo.value)


def test_unparsable_file(tmp_path):
    _write(tmp_path, "dm = 1\n")
    with pytest.raises(ff.MalformedInputError) as excinfo:
        ff.read_case_config(tmp_path)
    assert "Cannot parse" in str(excinfo.value)
