"""Implicit pressure, explicit saturation time marching.

One time step runs through the following stages, in this order:

    1. :meth:`ImpesSolver.assemble_pressure`: refresh the non-wetting upwind of all
       elements with the pressure of the previous step, assemble the global pressure
       system and apply the boundary vertices.
    2. :meth:`ImpesSolver.solve_pressure`: solve the pressure system.
    3. :meth:`ImpesSolver.assemble_saturation_source`: refresh the wetting upwind with
       the new pressure, assemble the wetting phase source of every node and add the
       boundary fluxes.
    4. :meth:`ImpesSolver.substep`: compute the saturation increment of the master
       DuplData, reducing the time step until the increment is acceptable.
    5. :meth:`ImpesSolver.commit`: apply the increment, propagate it to the slave
       DuplData, update capillary potential and mobilities, accumulate the boundary
       fluxes and advance the time.

"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import numpy as np

import fracflow as ff

__all__ = ["ImpesSolver", "preprocess"]

logger = logging.getLogger(__name__)

module_sections = ["numerics", "assembly"]


@ff.time_logger(sections=["gridding"])
def preprocess(
    mesh: ff.Mesh, j_function: ff.JFunction, dp: float, gravity: ff.Gravity
) -> ff.Mesh:
    """Sort the regions of a populated mesh and construct its static data.

    Parameters:
        mesh: Mesh with all regions, nodes and cells added.
        j_function: The capillary pressure curve, which decides region priority.
        dp: Dimensionless pressure scale.
        gravity: The gravity field.

    Returns:
        The same mesh, ready for time marching.

    """
    mesh.construct_geo_params(j_function, dp, gravity)
    return mesh


class ImpesSolver:
    """Time marching of a simulation state.

    Parameters:
        state: The simulation state. Its master saturations must hold the initial
            condition before :meth:`prepare_data` is called.

    """

    def __init__(self, state: ff.SimulationState) -> None:
        self.state = state
        self.mesh = state.mesh
        self.j_function = state.parameters.j_function

    def __repr__(self) -> str:
        return f"ImpesSolver at time {self.state.t} with dt {self.state.dt}"

    @ff.time_logger(sections=module_sections)
    def prepare_data(self) -> None:
        """Compute pore volumes, the gravity potential and all derived node data."""
        state, mesh = self.state, self.mesh
        state.vphi[:] = 0.0
        for element in mesh.elements:
            np.add.at(
                state.vphi, element.dupl_idx, element.region.phi * element.mat_volume()
            )
        state.dgh[:] = state.parameters.gravity.potential(mesh.x, mesh.y)
        self.update_nodes()

        for element in mesh.elements:
            element.find_upwind_wetting(state.p)
            element.find_upwind_nonwetting(state.p, state.pc)
        logger.info("External data initialized successfully")

    def update_slave_saturation(self) -> None:
        """Set the saturation of every slave DuplData from its master."""
        state, mesh = self.state, self.mesh
        slaves, masters = mesh.slave_dupl, mesh.master_of_slave
        if slaves.size > 0:
            state.s[slaves] = self.j_function.sopp(
                state.s[masters], mesh.pd[masters], mesh.pd[slaves]
            )

    def update_nodes(self) -> None:
        """Propagate master saturations to the slaves and update derived fields.

        Updates the slave saturation, the weighted pore volume, the mobilities and the
        capillary potential of every node.

        """
        state, mesh, j = self.state, self.mesh, self.j_function
        slaves, masters = mesh.slave_dupl, mesh.master_of_slave
        pd = mesh.pd

        self.update_slave_saturation()

        state.sphiv[:] = state.vphi[mesh.master_of_node]
        if slaves.size > 0:
            np.add.at(
                state.sphiv,
                mesh.node_of_dupl[slaves],
                state.vphi[slaves] * j.ds(state.s[masters], pd[masters], pd[slaves]),
            )

        dm = state.parameters.dm
        for region in mesh.porous_regions:
            mask = mesh.region_of_dupl == region.idx
            state.lw[mask] = region.kr.w(state.s[mask])
            state.ln[mask] = region.kr.nw(state.s[mask]) / dm
        state.pc[:] = pd * j.j(state.s) + state.dgh[mesh.node_of_dupl]

    @ff.time_logger(sections=module_sections)
    def assemble_pressure(self) -> None:
        """Assemble the global pressure system, including boundary vertices."""
        state, mesh = self.state, self.mesh
        state.A.data[:] = 0.0
        state.b[:] = 0.0

        matrices, vectors = [], []
        for element in mesh.elements:
            element.find_upwind_nonwetting(state.p, state.pc)
            matrices.append(element.lhs_pressure(state.lw, state.ln))
            vectors.append(element.rhs_pressure(state.ln, state.pc))
        mesh.assemble_matrix(state.A, matrices)
        mesh.assemble_vector(state.b, vectors)

        for bvertex in mesh.bvertices:
            bvertex.assemble_pressure(state.A, state.b)

    def solve_pressure(self) -> None:
        """Solve the pressure system. Failures of the solver are not recovered."""
        state = self.state
        state.p[:] = state.solver.solve(state.A, state.b, x0=state.p)

    @ff.time_logger(sections=module_sections)
    def assemble_saturation_source(self) -> None:
        """Assemble the wetting phase source of every node from the new pressure."""
        state, mesh = self.state, self.mesh
        state.fs[:] = 0.0
        vectors = []
        for element in mesh.elements:
            element.find_upwind_wetting(state.p)
            vectors.append(element.rhs_saturation(state.lw, state.p))
        mesh.assemble_vector(state.fs, vectors)

        for bvertex in mesh.bvertices:
            bvertex.find_flux_all(state.fs, state.p, state.lw, state.ln)
            bvertex.assemble_saturation(state.fs)

    def saturation_increment(self) -> float:
        """Compute the increment of the master saturations with the current dt.

        Returns:
            The largest absolute increment.

        """
        state = self.state
        state.ds[:] = state.fs * state.dt / state.parameters.dn / state.sphiv
        return float(np.max(np.abs(state.ds))) if state.ds.size > 0 else 0.0

    def substep(self) -> None:
        """Find an acceptable saturation increment, reducing dt when needed.

        Raises:
            NumericalInstabilityError: If the time step falls below its minimum or the
                number of sub-steps exceeds its maximum.

        """
        control = self.state.time_control
        while True:
            ds_max = self.saturation_increment()
            if control.check_increment(ds_max):
                break
            logger.debug(
                f"Rejected saturation increment {ds_max:.3e}, new dt {control.dt:.3e}"
            )
        self.state.ds_max = ds_max

    def commit(self) -> None:
        """Apply the accepted increment and advance the time."""
        state, mesh = self.state, self.mesh
        state.s[mesh.master_of_node] += state.ds
        self.update_nodes()

        scale = state.dt / state.parameters.dp
        for bvertex in mesh.bvertices:
            state.q_in += max(0.0, bvertex.gamma) * scale
            state.q_out -= min(0.0, bvertex.gamma) * scale
            state.q_w_in += max(0.0, bvertex.gamma_w) * scale
            state.q_w_out -= min(0.0, bvertex.gamma_w) * scale

        state.time_control.increase_time()

    @ff.time_logger(sections=module_sections)
    def advance_one_step(self) -> None:
        """Take one time step through all stages."""
        state = self.state
        start = time.perf_counter()
        state.time_control.start_step()

        self.assemble_pressure()
        self.solve_pressure()
        self.assemble_saturation_source()
        self.substep()
        # The dt used for the increment, before a possible growth in commit.
        dt = state.dt
        self.commit()

        state.dclock = time.perf_counter() - start
        state.clock += state.dclock
        logger.info(
            f"t_COMP: {state.t:<15.8g} t_clock: {state.clock:<15.6g} "
            f"n_it: {state.n_it:<10d} dt_comp: {dt:<15.6g} "
            f"dt_clock: {state.dclock:<12.4g} dn_it: {state.dn_it:<6d} "
            f"ds_max: {state.ds_max:<12.4g} ksp_it: {state.solver.iterations:<6d} "
            f"ksp_res: {state.solver.residual:.4g}"
        )

    def run(
        self, after_step: Optional[Callable[[ff.SimulationState], None]] = None
    ) -> None:
        """March until the final time is reached.

        At least one step is taken.

        Parameters:
            after_step: Called with the state after every committed step, e.g. to
                write output.

        """
        while True:
            self.advance_one_step()
            if after_step is not None:
                after_step(self.state)
            if self.state.time_control.final_time_reached():
                break
