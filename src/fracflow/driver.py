"""Run driver and command line entry point.

A case directory holds ``solver.cfg``, the mesh and the ``initial`` file. A simulation
writes to the subdirectories ``result`` (flow history, vtu files and the pvd
collection) and ``restart`` (restart files).

Usage::

    fracflow [-d DIR] [-s] [-v]

"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, Union

import fracflow as ff
from fracflow.io.initial_condition import INITIAL_FILE

__all__ = ["ResultWriter", "setup_case", "run_simulation", "run_set_field", "main"]

logger = logging.getLogger(__name__)

RESULT_DIR = "result"
RESTART_DIR = "restart"
RESULT_NAME = "result"
RESTART_NAME = "restart"


class ResultWriter:
    """Writes results at regular intervals of simulation time.

    Output number ``n`` is written after the first step at which
    ``t - t0 > (n - n0) * t_write``, with ``t_write = (t_end - t0) / (n_end - 1)``. The
    first step thus always writes number ``n0``.

    Parameters:
        config: The case configuration.
        state: The simulation state.

    """

    def __init__(self, config: ff.CaseConfig, state: ff.SimulationState) -> None:
        self.state = state
        self.directory = Path(config.directory)
        output = config.output
        self.n_file0 = output.n_file_begin
        self.n_file = output.n_file_begin
        self.n_file_end = output.n_file_end
        self.t0 = state.t
        t_end = state.time_control.time_final
        self.t_write = (t_end - self.t0) / max(self.n_file_end - 1, 1)

        self.flow_history = ff.FlowHistory(
            self.directory / RESULT_DIR / f"{RESULT_NAME}.flow"
        )
        self.exporter = ff.Exporter(
            state.mesh,
            RESULT_NAME,
            folder_name=self.directory / RESULT_DIR,
            visual_duplicate=output.visual_duplicate,
        )

    def __repr__(self) -> str:
        return (
            f"ResultWriter(n_file={self.n_file}, t0={self.t0}, "
            f"t_write={self.t_write})"
        )

    def write_in_time(
        self, state: Optional[ff.SimulationState] = None, force: bool = False
    ) -> bool:
        """Write the next output if its time has come.

        Returns:
            Whether output was written.

        """
        state = self.state if state is None else state
        due = state.t - self.t0 > (self.n_file - self.n_file0) * self.t_write
        if not (force or due):
            return False

        self.flow_history.append(self.n_file, state)
        restart = self.directory / RESTART_DIR / f"{RESTART_NAME}.{self.n_file}"
        restart.parent.mkdir(parents=True, exist_ok=True)
        ff.initial_condition.write_initial(restart, state, restart=True)
        self.exporter.write_vtu(state, time_step=self.n_file)
        self.exporter.write_pvd()
        logger.info(f"Output {self.n_file} written at t = {state.t}")
        self.n_file += 1
        return True


def setup_case(
    directory: Union[str, Path]
) -> tuple[ff.CaseConfig, ff.SimulationState]:
    """Read a case directory and prepare the simulation state.

    The mesh is built and constructed, and the initial condition is read.

    """
    config = ff.read_case_config(directory)
    sim = config.simulation
    description = ff.mesh_reader.read_mesh(
        config.directory, config.mesh.type, config.mesh.name
    )
    mesh = ff.mesh_reader.build_mesh(description, config.regions)
    ff.preprocess(mesh, sim.j_function, sim.dp, sim.gravity)

    state = ff.SimulationState.new(mesh, sim, solver=config.solver.new_solver())
    ff.initial_condition.read_initial(config.directory / INITIAL_FILE, state)
    return config, state


def run_simulation(
    directory: Union[str, Path], diagnostics: bool = False
) -> ff.SimulationState:
    """Run the simulation of a case directory until its final time.

    Parameters:
        directory: The case directory.
        diagnostics: Whether to dump the prepared state to ``mydata.0.log``.

    Returns:
        The final state.

    """
    config, state = setup_case(directory)
    solver = ff.ImpesSolver(state)
    solver.prepare_data()
    if diagnostics:
        ff.write_diagnostics(state, config.directory, 0)

    writer = ResultWriter(config, state)
    logger.info(repr(state.time_control))
    solver.run(after_step=writer.write_in_time)
    logger.info(f"Simulation finished at t = {state.t} after {state.n_it} sub-steps")
    return state


def run_set_field(directory: Union[str, Path]) -> ff.SimulationState:
    """Overwrite the initial condition of a case with its set-field shapes.

    The ``initial`` file is rewritten, and the new field is exported to
    ``newfield.vtu``.

    """
    config, state = setup_case(directory)
    if not config.set_field:
        raise ff.MalformedInputError(
            f"{config.directory}: no [setfield] section to apply."
        )
    ff.initial_condition.set_field(state, config.set_field)
    ff.initial_condition.write_initial(config.directory / INITIAL_FILE, state)
    ff.Exporter(
        state.mesh,
        "newfield",
        folder_name=config.directory,
        visual_duplicate=config.output.visual_duplicate,
    ).write_vtu(state)
    logger.info(
        "Field was set and saved successfully in "
        f"{config.directory / INITIAL_FILE}"
    )
    return state


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="fracflow",
        description="Two-phase flow in fractured porous media.",
    )
    parser.add_argument(
        "-d",
        "--directory",
        default=".",
        help="Case directory holding solver.cfg. Defaults to the current directory.",
    )
    parser.add_argument(
        "-s",
        "--setfield",
        action="store_true",
        help="Apply the [setfield] section to the initial condition, do not simulate.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug messages and write a diagnostic dump of the prepared state.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s"
    )

    try:
        if args.setfield:
            run_set_field(args.directory)
        else:
            run_simulation(args.directory, diagnostics=args.verbose)
    except ff.FracFlowError as err:
        logger.error(f"{type(err).__name__}: {err}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
