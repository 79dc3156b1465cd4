"""Cumulative boundary fluxes and wetting phase volume, as a text table.

Each output time appends one row to the file::

    # n t Q_in Q_out Q_w_in Q_w_out V_w

"""

from __future__ import annotations

from pathlib import Path
from typing import Union

import numpy as np

import fracflow as ff

__all__ = ["FlowHistory", "read_flow_history"]

COLUMNS = ["n", "t", "Q_in", "Q_out", "Q_w_in", "Q_w_out", "V_w"]


class FlowHistory:
    """Appending writer of a flow history file.

    Parameters:
        path: The file. Rows are appended to an existing file, and the header is
            written when the file is empty.

    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def append(self, n_file: int, state: ff.SimulationState) -> None:
        row = np.array(
            [
                n_file,
                state.t,
                state.q_in,
                state.q_out,
                state.q_w_in,
                state.q_w_out,
                state.wetting_volume,
            ]
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        is_empty = not self.path.exists() or self.path.stat().st_size == 0
        with open(self.path, "a") as f:
            np.savetxt(
                f,
                row.reshape(1, -1),
                header=" ".join(COLUMNS) if is_empty else "",
                fmt=["%5d"] + ["%15.8g"] * (len(COLUMNS) - 1),
            )


def read_flow_history(path: Union[str, Path]) -> dict[str, np.ndarray]:
    """Read a flow history file.

    Returns:
        Dictionary from column name to the values of the column.

    """
    values = np.loadtxt(fname=path, dtype=np.float64, ndmin=2)
    return {name: values[:, i] for i, name in enumerate(COLUMNS)}
