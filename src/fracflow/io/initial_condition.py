"""Initial condition and restart files, and the set-field operation.

The file holds the master saturation of every node::

    %initialcondition
    %mod u 0.2

for a uniform value, or::

    %initialcondition
    %mod n
    0.2
    0.25
    ...

with one value per node, in node order. Restart files use the second form, preceded
by a comment line with the time they were written at. Anything before the
``%initialcondition`` line is ignored.

"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Union

import numpy as np

import fracflow as ff

__all__ = ["INITIAL_FILE", "read_initial", "write_initial", "set_field"]

logger = logging.getLogger(__name__)

module_sections = ["io"]

INITIAL_FILE = "initial"


@ff.time_logger(sections=module_sections)
def read_initial(path: Union[str, Path], state: ff.SimulationState) -> None:
    """Read the master saturations of a state from an initial condition file.

    Raises:
        MalformedInputError: If the file cannot be read or interpreted.

    """
    path = Path(path)
    try:
        with open(path) as f:
            lines = [(i, line.split()) for i, line in enumerate(f, start=1)]
    except OSError as err:
        raise ff.MalformedInputError(f"Cannot open {path}: {err}") from err

    start = next(
        (k for k, (_, words) in enumerate(lines) if words[:1] == ["%initialcondition"]),
        None,
    )
    if start is None:
        raise ff.MalformedInputError(f"{path}: no %initialcondition line.")
    data = [(i, words) for i, words in lines[start + 1 :] if words]
    if not data or data[0][1][0] != "%mod" or len(data[0][1]) < 2:
        raise ff.MalformedInputError(f"{path}: expected a %mod line.")

    number, words = data[0]
    mode = words[1]
    num_nodes = state.mesh.num_nodes
    try:
        if mode == "u":
            values = np.full(num_nodes, float(words[2]))
        elif mode == "n":
            rows = data[1 : num_nodes + 1]
            if len(rows) < num_nodes:
                raise ff.MalformedInputError(
                    f"{path}: expected {num_nodes} values, found {len(rows)}."
                )
            values = np.array([float(w[0]) for _, w in rows])
        else:
            raise ff.MalformedInputError(
                f"In file {path} line {number} mod \"{mode}\" is invalid"
            )
    except (IndexError, ValueError) as err:
        raise ff.MalformedInputError(f"{path}: {err}") from err

    state.set_master_saturation(values)
    logger.info(f"Initial condition read successfully from {path}")


def write_initial(
    path: Union[str, Path], state: ff.SimulationState, restart: bool = False
) -> None:
    """Write the master saturations of a state as an initial condition file.

    Parameters:
        path: The file to write.
        state: The simulation state.
        restart: If True, the time of the state is noted in the first line.

    """
    header = ""
    if restart:
        header += f"#Restart file @ time = {state.t}\n"
    header += "%initialcondition\n%mod n"
    np.savetxt(
        fname=path,
        X=state.master_saturation(),
        header=header,
        comments="",
        fmt="%.12g",
    )


def set_field(
    state: ff.SimulationState,
    shapes: Iterable[tuple[Union[ff.Rectangle, ff.Circle], float]],
) -> np.ndarray:
    """Overwrite the master saturation of all nodes inside the given shapes.

    Where shapes overlap, the later one wins. The saturation of the slaves is updated
    accordingly.

    Returns:
        Boolean mask of the nodes that were changed.

    """
    mesh = state.mesh
    x, y = mesh.x, mesh.y
    s = state.master_saturation()
    changed = np.zeros(mesh.num_nodes, dtype=bool)
    for shape, value in shapes:
        inside = shape.contains(x, y)
        s[inside] = value
        changed |= inside
        logger.info(f"{shape} with value = {value}")
    state.set_master_saturation(s)
    ff.ImpesSolver(state).update_slave_saturation()
    return changed
