"""Plot of the flow history written during a simulation."""

from __future__ import annotations

from pathlib import Path
from typing import Union

import matplotlib.pyplot as plt

from fracflow.io.flow_history import read_flow_history

__all__ = ["plot_flow_history"]


def plot_flow_history(path: Union[str, Path], **kwargs) -> plt.Figure:
    """Plot cumulative boundary fluxes and wetting volume against time.

    The function is primarily intended for data exploration.

    Parameters:
        path: A flow history file.
        kwargs: Keyword arguments:
            fig_id: Number of the matplotlib figure.
            save: File name to store the figure in.
            plot: Whether to show the figure (default False).

    Returns:
        The figure.

    """
    data = read_flow_history(path)

    fig, (ax_flux, ax_volume) = plt.subplots(
        1, 2, num=kwargs.get("fig_id", None), figsize=(10, 4)
    )
    for name in ("Q_in", "Q_out", "Q_w_in", "Q_w_out"):
        ax_flux.plot(data["t"], data[name], "-o", markersize=3, label=name)
    ax_flux.set_xlabel("t")
    ax_flux.set_ylabel("cumulative flux")
    ax_flux.legend()

    ax_volume.plot(data["t"], data["V_w"], "-o", markersize=3, color="black")
    ax_volume.set_xlabel("t")
    ax_volume.set_ylabel("V_w")
    fig.tight_layout()

    if kwargs.get("save", None) is not None:
        fig.savefig(kwargs["save"], bbox_inches="tight")
    if kwargs.get("plot", False):
        plt.show()
    return fig
