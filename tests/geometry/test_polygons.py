import numpy as np

import fracflow as ff


def test_rectangle_includes_its_outline():
    rect = ff.Rectangle(0, 0, 0.5, 1)
    x = np.array([0.0, 0.25, 0.5, 0.5 + 1e-6, -1e-6])
    y = np.array([0.0, 0.5, 1.0, 0.5, 0.5])
    np.testing.assert_array_equal(rect.contains(x, y), [True, True, True, False, False])


def test_circle():
    circle = ff.Circle(0.5, 0.5, 0.25)
    x = np.array([0.5, 0.75, 0.5, 0.0])
    y = np.array([0.5, 0.5, 0.25 - 1e-6, 0.0])
    np.testing.assert_array_equal(circle.contains(x, y), [True, True, False, False])


def test_scalar_points():
    assert ff.Rectangle(0, 0, 1, 1).contains(0.5, 0.5)
    assert not ff.Circle(0, 0, 1).contains(2, 0)
