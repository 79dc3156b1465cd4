"""Tests of the saturation-increment based time step control.

`TestParameterInputs` checks the sanity checks of the constructor. `TestTimeControl`
checks that the time step shrinks on rejected increments, grows after small ones, and
that the bounds on the time step and the number of sub-steps are enforced.

"""

import pytest

import fracflow as ff


def _control(**kwargs):
    values = dict(
        time_init=0.0,
        time_final=1.0,
        dt_init=0.1,
        dt_min_max=(0.01, 0.2),
        ds_min_max=(0.01, 0.05),
        beta=2.0,
        iter_max=10,
    )
    values.update(kwargs)
    return ff.TimeStepControl(**values)


class TestParameterInputs:
    def test_initialization(self):
        control = _control()
        assert control.time == 0.0
        assert control.dt == 0.1
        assert control.time_index == 0
        assert not control.final_time_reached()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"time_final": -1.0},
            {"dt_init": 0.0},
            {"dt_min_max": (0.0, 1.0)},
            {"dt_min_max": (0.5, 0.1)},
            {"ds_min_max": (0.1, 0.05)},
            {"beta": 1.0},
            {"iter_max": 0},
        ],
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            _control(**kwargs)

    def test_repr(self):
        assert "Time step factor = 2.0" in repr(_control())


class TestTimeControl:
    def test_accepted_increment(self):
        control = _control()
        control.start_step()
        assert control.check_increment(0.03)
        assert not control.grow_flagged
        control.increase_time()
        assert control.time == pytest.approx(0.1)
        assert control.dt == 0.1
        assert control.time_index == 1
        assert control.total_substeps == 1

    def test_rejected_increment_shrinks_time_step(self):
        control = _control()
        control.start_step()
        assert not control.check_increment(0.2)
        assert control.dt == pytest.approx(0.05)
        assert control.check_increment(0.04)
        assert control.substeps == 2
        control.increase_time()
        assert control.time == pytest.approx(0.05)
        assert control.total_substeps == 2

    def test_small_increment_grows_time_step(self):
        control = _control()
        control.start_step()
        assert control.check_increment(0.001)
        assert control.grow_flagged
        control.increase_time()
        assert control.time == pytest.approx(0.1)
        assert control.dt == pytest.approx(0.2)
        # Growth is capped by the maximum time step.
        control.start_step()
        control.check_increment(0.0)
        control.increase_time()
        assert control.dt == pytest.approx(0.2)

    def test_growth_flag_is_reset(self):
        control = _control()
        control.start_step()
        control.check_increment(0.001)
        control.start_step()
        assert not control.grow_flagged

    def test_minimum_time_step(self):
        control = _control()
        control.start_step()
        assert not control.check_increment(1.0)
        assert not control.check_increment(1.0)
        assert not control.check_increment(1.0)
        with pytest.raises(ff.NumericalInstabilityError) as excinfo:
            control.check_increment(1.0)
        assert "either min_dt or max_s_iter error" in str(excinfo.value)

    def test_maximum_substeps(self):
        control = _control(dt_min_max=(1e-12, 0.2), iter_max=3)
        control.start_step()
        for _ in range(3):
            assert not control.check_increment(1.0)
        with pytest.raises(ff.NumericalInstabilityError):
            control.check_increment(1.0)

    def test_final_time(self):
        control = _control(time_final=0.25)
        steps = 0
        while not control.final_time_reached():
            control.start_step()
            control.check_increment(0.03)
            control.increase_time()
            steps += 1
        # The last step oversteps the final time.
        assert steps == 3
        assert control.time == pytest.approx(0.3)
