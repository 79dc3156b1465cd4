"""Diagnostic dump of the complete simulation state.

Writes two files to a directory:

    mydata.<num>.log: nodes with their DuplData, boundary vertices, every element with
        its local matrices, and tables of the node and DuplData fields.
    pressure.<num>.mtx: the pressure matrix in Matrix Market format.

"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import numpy as np
import scipy.io

import fracflow as ff

__all__ = ["write_diagnostics"]

logger = logging.getLogger(__name__)


def _table(columns: dict[str, np.ndarray]) -> str:
    lines = ["".join(f"{name:<15}" for name in columns)]
    for row in zip(*columns.values()):
        lines.append("".join(f"{value:<15.6f}" for value in row))
    return "\n".join(lines) + "\n"


@ff.time_logger(sections=["io"])
def write_diagnostics(
    state: ff.SimulationState, directory: Union[str, Path], num: int
) -> tuple[Path, Path]:
    """Write the diagnostic files of a state.

    Parameters:
        state: The simulation state.
        directory: Target directory, created if needed.
        num: Number used in the file names.

    Returns:
        Paths of the log file and the matrix file.

    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    mesh = state.mesh
    log_path = directory / f"mydata.{num}.log"
    matrix_path = directory / f"pressure.{num}.mtx"

    with open(log_path, "w") as f:
        f.write("XXXXXX_________Nodes__________XXXXXX\n")
        f.write(mesh.describe_nodes())
        f.write("\n")

        f.write("XXXXXX_________BOUNDARY___VERTICES__________XXXXXX\n")
        for bvertex in mesh.bvertices:
            f.write(bvertex.describe() + "\n")
        f.write("\n")

        f.write("XXXXXX________________ElEMENTS______________XXXXXX\n")
        for element in mesh.elements:
            f.write(element.describe(state.s, state.p, state.pc, state.lw, state.ln))
            f.write("\n")

        f.write(
            _table(
                {
                    "P": state.p,
                    "SPhiV": state.sphiv,
                    "Fs": state.fs,
                    "dS": state.ds,
                    "b": state.b,
                }
            )
        )
        f.write("\n")
        f.write(
            _table(
                {
                    "S": state.s,
                    "Pc": state.pc,
                    "Lw": state.lw,
                    "Ln": state.ln,
                    "VPhi": state.vphi,
                }
            )
        )

    scipy.io.mmwrite(str(matrix_path), state.A)
    logger.info(f"Diagnostics written to {log_path} and {matrix_path}")
    return log_path, matrix_path
