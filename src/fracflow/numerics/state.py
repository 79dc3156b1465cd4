"""The simulation state record.

All fields that change during a simulation live here, so the engine can pass them
explicitly between its stages. Discontinuous fields are indexed by the storage index of
the DuplData, continuous fields by the node index. The record is created once the mesh
is constructed, and mutated only by :class:`~fracflow.numerics.impes.ImpesSolver`.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import numpy as np
import scipy.sparse as sps

import fracflow as ff

if TYPE_CHECKING:
    from fracflow.io.config import SimulationParameters

__all__ = ["SimulationState"]


@dataclass(kw_only=True, eq=False)
class SimulationState:
    """Fields and counters of a running simulation."""

    mesh: ff.Mesh
    parameters: SimulationParameters
    time_control: ff.TimeStepControl
    solver: ff.LinearSolver = field(default_factory=lambda: ff.LinearSolver())

    # Per DuplData
    s: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Wetting saturation."""
    pc: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Capillary potential, capillary pressure plus gravity potential."""
    lw: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Wetting mobility."""
    ln: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Non-wetting mobility, scaled by the viscosity ratio."""
    vphi: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Pore volume."""

    # Per node
    p: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Pressure."""
    fs: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Wetting phase source of the saturation equation."""
    ds: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Saturation increment of the master DuplData."""
    sphiv: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Pore volume of all DuplData, weighted by the derivative of their saturation."""
    dgh: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Gravity potential."""

    A: sps.csr_matrix = field(default_factory=lambda: sps.csr_matrix((0, 0)))
    b: np.ndarray = field(default_factory=lambda: np.zeros(0))

    # Cumulative flux through the boundary
    q_in: float = 0.0
    q_out: float = 0.0
    q_w_in: float = 0.0
    q_w_out: float = 0.0

    ds_max: float = 0.0
    """Largest saturation increment of the last step."""
    clock: float = 0.0
    """Wall clock time spent in time steps."""
    dclock: float = 0.0
    """Wall clock time of the last step."""

    @classmethod
    def new(
        cls,
        mesh: ff.Mesh,
        parameters: SimulationParameters,
        solver: Optional[ff.LinearSolver] = None,
        time_init: Optional[float] = None,
    ) -> SimulationState:
        """Allocate the fields of a constructed mesh, all set to zero.

        Raises:
            InvariantViolationError: If the mesh is not constructed.

        """
        if not mesh.is_constructed:
            raise ff.InvariantViolationError(
                "The mesh must be constructed before the simulation state."
            )
        nd, nn = mesh.num_dupl, mesh.num_nodes
        return cls(
            mesh=mesh,
            parameters=parameters,
            time_control=parameters.new_time_control(time_init),
            solver=solver if solver is not None else ff.LinearSolver(),
            s=np.zeros(nd),
            pc=np.zeros(nd),
            lw=np.zeros(nd),
            ln=np.zeros(nd),
            vphi=np.zeros(nd),
            p=np.zeros(nn),
            fs=np.zeros(nn),
            ds=np.zeros(nn),
            sphiv=np.zeros(nn),
            dgh=np.zeros(nn),
            A=mesh.new_matrix(),
            b=np.zeros(nn),
        )

    @property
    def t(self) -> float:
        return self.time_control.time

    @property
    def dt(self) -> float:
        return self.time_control.dt

    @property
    def n_it(self) -> int:
        """Number of sub-steps of all committed time steps."""
        return self.time_control.total_substeps

    @property
    def dn_it(self) -> int:
        """Number of sub-steps of the last time step."""
        return self.time_control.substeps

    @property
    def wetting_volume(self) -> float:
        """Volume of the wetting phase in the domain, sum of vphi * s."""
        return float(np.sum(self.vphi * self.s))

    def master_saturation(self) -> np.ndarray:
        """Saturation of the master DuplData of every node."""
        return self.s[self.mesh.master_of_node]

    def set_master_saturation(self, values) -> None:
        """Set the saturation of the master DuplData of every node.

        Slaves are not updated, see :meth:`ImpesSolver.update_nodes`.

        """
        values = np.broadcast_to(np.asarray(values, dtype=float), self.mesh.num_nodes)
        self.s[self.mesh.master_of_node] = values
