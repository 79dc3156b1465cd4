"""Linear solver service for the pressure system.

The pressure matrix keeps the sparsity pattern of the mesh during the whole run. The
solver is selected by name:

    direct: scipy.sparse.linalg.spsolve (SuperLU).
    bicgstab, gmres: Krylov solvers of scipy.sparse.linalg, preconditioned with an
        incomplete LU factorization.

Any failure is reported as an :class:`~fracflow.utils.errors.ExternalSolverError`;
the solve is never retried.

"""

from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np
import scipy.sparse as sps
import scipy.sparse.linalg as spla

import fracflow as ff

__all__ = ["LinearSolver"]

logger = logging.getLogger(__name__)

module_sections = ["numerics"]


class LinearSolver:
    """Solve ``A x = b`` for the pressure.

    Parameters:
        method: One of ``direct``, ``bicgstab`` and ``gmres``.
        rtol: Relative residual tolerance of the Krylov solvers.
        maxiter: Maximum number of Krylov iterations.

    Attributes:
        iterations: Number of iterations of the last solve, 1 for the direct solver.
        residual: Norm of the residual of the last solve.

    """

    methods = ("direct", "bicgstab", "gmres")

    def __init__(
        self, method: str = "direct", rtol: float = 1e-10, maxiter: int = 1000
    ) -> None:
        if method not in self.methods:
            raise ValueError(
                f"Unknown linear solver {method}, expected one of {self.methods}."
            )
        if rtol <= 0:
            raise ValueError("The solver tolerance must be positive.")
        if maxiter <= 0:
            raise ValueError("The maximum number of iterations must be positive.")
        self.method = method
        self.rtol = rtol
        self.maxiter = maxiter
        self.iterations = 0
        self.residual = 0.0

    def __repr__(self) -> str:
        return (
            f"LinearSolver(method={self.method}, rtol={self.rtol}, "
            f"maxiter={self.maxiter})"
        )

    @ff.time_logger(sections=module_sections)
    def solve(
        self, A: sps.spmatrix, b: np.ndarray, x0: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """Solve the linear system.

        Parameters:
            A: Square sparse matrix.
            b: Right hand side.
            x0: Initial guess for the Krylov solvers.

        Returns:
            The solution vector.

        Raises:
            ExternalSolverError: If the solver reports a failure, or the solution is
                not finite.

        """
        t_0 = time.time()
        A = sps.csc_matrix(A)
        if self.method == "direct":
            try:
                x = spla.spsolve(A, b)
            except RuntimeError as err:
                raise ff.ExternalSolverError(f"Direct solver failed: {err}") from err
            self.iterations = 1
        else:
            x = self._solve_krylov(A, b, x0)

        x = np.atleast_1d(x)
        if not np.all(np.isfinite(x)):
            raise ff.ExternalSolverError(
                f"The {self.method} solver returned a non-finite solution."
            )
        self.residual = float(np.linalg.norm(b - A @ x))
        logger.debug(
            f"Solved linear system of size {b.size} in {time.time() - t_0:.2e} "
            f"seconds, residual {self.residual:.2e}"
        )
        return x

    def _solve_krylov(
        self, A: sps.csc_matrix, b: np.ndarray, x0: Optional[np.ndarray]
    ) -> np.ndarray:
        try:
            ilu = spla.spilu(A)
        except RuntimeError as err:
            raise ff.ExternalSolverError(
                f"Incomplete LU factorization failed: {err}"
            ) from err
        M = spla.LinearOperator(A.shape, ilu.solve)

        iterations = 0

        def count(_) -> None:
            nonlocal iterations
            iterations += 1

        solver = spla.bicgstab if self.method == "bicgstab" else spla.gmres
        kwargs = {}
        if self.method == "gmres":
            kwargs["callback_type"] = "pr_norm"
        x, info = solver(
            A,
            b,
            x0=x0,
            rtol=self.rtol,
            atol=0.0,
            maxiter=self.maxiter,
            M=M,
            callback=count,
            **kwargs,
        )
        self.iterations = iterations
        if info != 0:
            raise ff.ExternalSolverError(
                f"The {self.method} solver failed with status {info} after "
                f"{iterations} iterations."
            )
        return x
