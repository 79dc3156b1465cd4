import numpy as np
import pytest

import fracflow as ff


class TestSecondOrderTensor:
    def test_isotropic(self):
        k = ff.SecondOrderTensor(2.0)
        np.testing.assert_array_equal(k.values, [[2, 0], [0, 2]])

    def test_full(self):
        k = ff.SecondOrderTensor(2.0, kyy=3.0, kxy=0.5, kyx=0.25)
        np.testing.assert_array_equal(k.values, [[2, 0.5], [0.25, 3]])

    def test_symmetric_by_default(self):
        k = ff.SecondOrderTensor(2.0, kyy=3.0, kxy=0.5)
        np.testing.assert_array_equal(k.values, k.values.T)

    @pytest.mark.parametrize(
        "kxx, kyy, kxy", [(-1.0, 1.0, 0.0), (1.0, 1.0, 1.0), (1.0, -1.0, 0.0)]
    )
    def test_not_positive_definite(self, kxx, kyy, kxy):
        with pytest.raises(ValueError):
            ff.SecondOrderTensor(kxx, kyy=kyy, kxy=kxy)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("3", [[3, 0], [0, 3]]),
        ("1 0.5; 0.25 2", [[1, 0.5], [0.25, 2]]),
        ("1, 0; 0, 4", [[1, 0], [0, 4]]),
    ],
)
def test_from_string(text, expected):
    np.testing.assert_array_equal(
        ff.SecondOrderTensor.from_string(text).values, expected
    )


@pytest.mark.parametrize("text", ["a", "1 2 3", "1 0; 0", ""])
def test_malformed_string(text):
    with pytest.raises(ff.MalformedInputError):
        ff.SecondOrderTensor.from_string(text)
