import numpy as np
import pytest
import scipy.sparse as sps

import fracflow as ff


def _laplacian(n):
    return sps.diags([-1, 2.5, -1], [-1, 0, 1], shape=(n, n), format="csr")


@pytest.mark.parametrize("method", ["direct", "bicgstab", "gmres"])
def test_solve(method):
    A = _laplacian(20)
    x = np.linspace(0, 1, 20)
    solver = ff.LinearSolver(method=method, rtol=1e-12)
    np.testing.assert_allclose(solver.solve(A, A @ x), x, rtol=1e-8, atol=1e-10)
    if method == "direct":
        assert solver.iterations == 1
    assert solver.residual < 1e-8


@pytest.mark.parametrize(
    "kwargs", [{"method": "cg"}, {"rtol": 0.0}, {"maxiter": 0}]
)
def test_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        ff.LinearSolver(**kwargs)


@pytest.mark.filterwarnings("ignore")
def test_singular_matrix():
    A = sps.csr_matrix(np.array([[1.0, 1.0], [1.0, 1.0]]))
    with pytest.raises(ff.ExternalSolverError):
        ff.LinearSolver().solve(A, np.array([1.0, 0.0]))
