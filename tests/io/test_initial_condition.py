import numpy as np
import pytest

import fracflow as ff
from fracflow.io.initial_condition import read_initial, set_field, write_initial


def test_uniform(make_state, tmp_path):
    state = make_state(s0=0.0)
    path = tmp_path / "initial"
    path.write_text("Anything before is ignored\n%initialcondition\n%mod u 0.3\n")
    read_initial(path, state)
    np.testing.assert_allclose(state.master_saturation(), 0.3)


def test_per_node(make_state, tmp_path):
    state = make_state(s0=0.0)
    values = np.linspace(0.1, 0.9, 9)
    path = tmp_path / "initial"
    path.write_text(
        "%initialcondition\n%mod n\n" + "\n".join(str(v) for v in values) + "\n"
    )
    read_initial(path, state)
    np.testing.assert_allclose(state.master_saturation(), values)


@pytest.mark.parametrize(
    "text, message",
    [
        ("%initialcondition\n%mod x 0.3\n", 'mod "x" is invalid'),
        ("%mod u 0.3\n", "no %initialcondition line"),
        ("%initialcondition\n0.3\n", "expected a %mod line"),
        ("%initialcondition\n%mod n\n0.1\n0.2\n", "expected 9 values, found 2"),
        ("%initialcondition\n%mod u high\n", "initial"),
    ],
)
def test_malformed(make_state, tmp_path, text, message):
    state = make_state()
    path = tmp_path / "initial"
    path.write_text(text)
    with pytest.raises(ff.MalformedInputError) as excinfo:
        read_initial(path, state)
    assert message in str(excinfo.value)


def test_missing_file(make_state, tmp_path):
    with pytest.raises(ff.MalformedInputError) as excinfo:
        read_initial(tmp_path / "initial", make_state())
    assert "Cannot open" in str(excinfo.value)


def test_restart_file(make_state, tmp_path):
    state = make_state(s0=0.0)
    values = np.linspace(0.0, 1.0, 9)
    state.set_master_saturation(values)
    path = tmp_path / "restart.0"
    write_initial(path, state, restart=True)
    assert path.read_text().startswith("#Restart file @ time = 0.0\n%initialcondition")

    other = make_state(s0=0.5)
    read_initial(path, other)
    np.testing.assert_allclose(other.master_saturation(), values)


class TestSetField:
    def test_later_shape_wins(self, make_state):
        state = make_state(s0=0.5)
        changed = set_field(
            state,
            [
                (ff.Rectangle(-0.1, -0.1, 0.6, 1.1), 0.9),
                (ff.Circle(0, 0, 0.1), 0.1),
            ],
        )
        s = state.master_saturation()
        mesh = state.mesh
        np.testing.assert_array_equal(changed, mesh.x <= 0.5)
        assert s[0] == pytest.approx(0.1)
        np.testing.assert_allclose(s[(mesh.x <= 0.5) & (mesh.x + mesh.y > 0)], 0.9)
        np.testing.assert_allclose(s[mesh.x > 0.5], 0.5)

    def test_outline_is_inside(self, make_state):
        state = make_state(s0=0.5)
        changed = set_field(state, [(ff.Rectangle(0, 0, 0.5, 1), 0.9)])
        mesh = state.mesh
        np.testing.assert_array_equal(changed, mesh.x <= 0.5)
        np.testing.assert_allclose(state.master_saturation()[mesh.x <= 0.5], 0.9)
        np.testing.assert_allclose(state.master_saturation()[mesh.x > 0.5], 0.5)

    def test_slaves_follow_masters(self, make_state):
        state = make_state(
            s0=0.5,
            mesh_kwargs={"fracture": True},
            j_function=ff.JFunctionFirooz(),
        )
        mesh = state.mesh
        assert mesh.slave_dupl.size > 0
        set_field(state, [(ff.Rectangle(-1, -1, 2, 2), 0.8)])
        masters, slaves = mesh.master_of_slave, mesh.slave_dupl
        np.testing.assert_allclose(state.s[masters], 0.8)
        np.testing.assert_allclose(
            state.s[slaves],
            ff.JFunctionFirooz().sopp(0.8, mesh.pd[masters], mesh.pd[slaves]),
        )
