"""Tests of the reference cell tables."""

import numpy as np
import pytest

import fracflow as ff
from fracflow.geometry.shapes import QUAD, TRIANGLE, CellType


@pytest.mark.parametrize("cell", [TRIANGLE, QUAD])
class TestPolygonCells:
    def test_shape_functions_partition_unity(self, cell):
        for z, e in [(0.0, 0.0), (0.2, 0.3), (0.5, 0.5), (1 / 3, 1 / 3)]:
            assert np.isclose(np.sum(cell.shape_functions(z, e)), 1.0)
            np.testing.assert_allclose(
                np.sum(cell.shape_derivatives(z, e), axis=0), 0.0, atol=1e-14
            )

    def test_neighbour_indices_are_inverse(self, cell):
        np.testing.assert_array_equal(
            cell.idx_minus1[cell.idx_plus1], np.arange(cell.num_points)
        )

    def test_faces_point_towards_center(self, cell):
        # The face ends at the center, so integration point + delta / 2 is the center.
        # For the triangle the center is (1/3, 1/3) in reference coordinates.
        center = np.array([1 / 3, 1 / 3]) if cell is TRIANGLE else cell.center
        for i in range(cell.num_faces):
            np.testing.assert_allclose(
                cell.face_ip[:, i] + cell.delta[:, i] / 2, center, atol=1e-14
            )


def test_reference_cell_lookup():
    assert ff.reference_cell(CellType.TRIANGLE) is TRIANGLE
    assert ff.reference_cell(4) is QUAD
    with pytest.raises(ff.MalformedInputError):
        ff.reference_cell(CellType.POINT)

