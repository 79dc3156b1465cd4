"""
Module for exporting the simulation state to vtu format via meshio.

"""
from __future__ import annotations

import sys
from collections import namedtuple
from pathlib import Path
from typing import Iterable, Optional, Union

import meshio
import numpy as np

import fracflow as ff
from fracflow.geometry.shapes import MESHIO_NAMES

__all__ = ["Exporter", "Field", "Meshio_Geom"]

# Object type to store data to export.
Field = namedtuple("Field", ["name", "values"])

# Object for managing meshio-relevant data: points, connectivity blocks and, for every
# block, the indices of its cells among all elements.
Meshio_Geom = namedtuple("Meshio_Geom", ["pts", "connectivity", "cell_ids"])


class Exporter:
    """Class for exporting the fields of a simulation to vtu format.

    The points of the exported mesh are either the DuplData, such that discontinuous
    saturations are visible, or the nodes, with one saturation chosen per node.

    Exported point data:
        Sw_node: Wetting saturation.
        Pw: Pressure.
        bnd_region_no: Id of the boundary region of the node, -1 if none.

    Exported cell data:
        porous_region_no: Id of the region of the element.
        Sw_cell: Mean saturation of the corners.
        qw, qn, qtotal: Wetting, non-wetting and total Darcy velocity at the center.

    In general, pvd files gather data exported in separate files. For transient
    simulations with multiple time steps, a single pvd file takes care of the ordering
    of all printed vtu files.

    Parameters:
        mesh: A constructed mesh.
        file_name: Basis for file names used for storing the output.
        folder_name: Name of the folder in which files are stored.
        visual_duplicate: 0 exports every DuplData as a point. 1 and 2 export the
            nodes, with the minimum and the maximum saturation of the master and the
            last slave.
        binary: Whether data is stored in binary format.

    """

    def __init__(
        self,
        mesh: ff.Mesh,
        file_name: str,
        folder_name: Optional[Union[str, Path]] = None,
        visual_duplicate: int = 0,
        binary: bool = True,
    ) -> None:
        if visual_duplicate not in (0, 1, 2):
            raise ValueError("visual_duplicate must be 0, 1 or 2.")
        self.mesh = mesh
        self._file_name = file_name
        self._folder_name = Path(folder_name) if folder_name is not None else None
        self.visual_duplicate = visual_duplicate
        self._binary = binary

        # Time steps and times of the exported files.
        self._exported_timesteps: list[int] = []
        self._exported_times: list[float] = []

        self.meshio_geom = self._export_grid()

    def _export_grid(self) -> Meshio_Geom:
        """Points, connectivity and cell ids of the mesh in meshio format."""
        mesh = self.mesh
        if self.visual_duplicate == 0:
            node_of_point = mesh.node_of_dupl
        else:
            node_of_point = np.arange(mesh.num_nodes)
        pts = np.zeros((node_of_point.size, 3))
        pts[:, 0] = mesh.x[node_of_point]
        pts[:, 1] = mesh.y[node_of_point]

        blocks: dict[str, list] = {}
        cell_ids: dict[str, list] = {}
        for i, element in enumerate(mesh.elements):
            name = MESHIO_NAMES[element.cell_type]
            corners = (
                element.dupl_idx if self.visual_duplicate == 0 else element.node_idx
            )
            blocks.setdefault(name, []).append(corners)
            cell_ids.setdefault(name, []).append(i)

        connectivity = [
            meshio.CellBlock(name, np.array(block, dtype=int))
            for name, block in blocks.items()
        ]
        ids = [np.array(cell_ids[name], dtype=int) for name in blocks]
        return Meshio_Geom(pts, connectivity, ids)

    def point_fields(self, state: ff.SimulationState) -> list[Field]:
        mesh = self.mesh
        bnd = np.array(
            [n.bvertex.region.id if n.bvertex is not None else -1 for n in mesh.nodes]
        )
        if self.visual_duplicate == 0:
            node = mesh.node_of_dupl
            s = state.s
        else:
            node = np.arange(mesh.num_nodes)
            last = np.append(mesh.master_of_node[1:], mesh.num_dupl) - 1
            first_and_last = (state.s[mesh.master_of_node], state.s[last])
            if self.visual_duplicate == 1:
                s = np.minimum(*first_and_last)
            else:
                s = np.maximum(*first_and_last)
        return [
            Field("Sw_node", s),
            Field("Pw", state.p[node]),
            Field("bnd_region_no", bnd[node]),
        ]

    def cell_fields(self, state: ff.SimulationState) -> list[Field]:
        mesh = self.mesh
        num_cells = mesh.num_elements
        region = np.zeros(num_cells, dtype=int)
        s_cell = np.zeros(num_cells)
        qw = np.zeros((3, num_cells))
        qn = np.zeros((3, num_cells))
        dp = state.parameters.dp

        for i, element in enumerate(mesh.elements):
            region[i] = element.region.id
            s_cell[i] = np.mean(element.local_discontinuous(state.s))
            kd = element.mat_kd()
            p = element.local_continuous(state.p)
            pc = element.local_discontinuous(state.pc)
            lw = np.mean(element.local_discontinuous(state.lw))
            ln = np.mean(element.local_discontinuous(state.ln))
            qw[:2, i] = -lw * (kd @ p) / dp
            qn[:2, i] = -ln * (kd @ (p + pc)) / dp

        return [
            Field("porous_region_no", region),
            Field("Sw_cell", s_cell),
            Field("qw", qw),
            Field("qn", qn),
            Field("qtotal", qw + qn),
        ]

    def write_vtu(
        self,
        state: ff.SimulationState,
        time_step: Optional[int] = None,
        file_name: Optional[str] = None,
    ) -> Path:
        """Export the fields of a state.

        Parameters:
            state: The simulation state.
            time_step: Number of the output, appended to the file name. Exports with a
                number are collected by :meth:`write_pvd`.
            file_name: Overrides the file name given on construction.

        Returns:
            Path of the written file.

        """
        name = self._make_file_name(file_name or self._file_name, time_step)
        path = self._append_folder_name(name)
        self._write(self.point_fields(state), self.cell_fields(state), path)
        if time_step is not None and file_name is None:
            self._exported_timesteps.append(time_step)
            self._exported_times.append(state.t)
        return path

    def write_pvd(
        self,
        times: Optional[np.ndarray] = None,
        file_extension: Optional[Union[np.ndarray, list[int]]] = None,
    ) -> Path:
        """Interface function to export in PVD file the time loop information.
        The user should open only this file in ParaView.

        Parameters:
            times: Times associated with the exported files. By default, the
                simulation times at which they were written.
            file_extension: Numbers of the exported files. By default, all numbers
                used by :meth:`write_vtu`.

        """
        if times is None:
            times = np.array(self._exported_times)
        if file_extension is None:
            file_extension = self._exported_timesteps
        elif isinstance(file_extension, np.ndarray):
            file_extension = file_extension.tolist()

        if len(file_extension) != len(times):
            raise ValueError("Expected as many times as file extensions.")

        path = self._append_folder_name(self._file_name + ".pvd")
        b = "LittleEndian" if sys.byteorder == "little" else "BigEndian"
        c = ' compressor="vtkZLibDataCompressor"'
        header = (
            '<?xml version="1.0"?>\n'
            + '<VTKFile type="Collection" version="0.1" '
            + 'byte_order="%s"%s>\n' % (b, c)
            + "<Collection>\n"
        )
        fm = '\t<DataSet group="" part="" timestep="%f" file="%s"/>\n'
        with open(path, "w") as o_file:
            o_file.write(header)
            for time, fn in zip(times, file_extension):
                o_file.write(fm % (time, self._make_file_name(self._file_name, fn)))
            o_file.write("</Collection>\n" + "</VTKFile>")
        return path

    def _write(
        self,
        point_fields: Iterable[Field],
        cell_fields: Iterable[Field],
        file_name: Path,
    ) -> None:
        """Interface to meshio for exporting point and cell data.

        Raises:
            ValueError: if some data has wrong dimension.

        """
        point_data = {field.name: field.values for field in point_fields}

        cell_data: dict[str, list[np.ndarray]] = {}
        for field in cell_fields:
            cell_data[field.name] = list()
            # Split the data for each group of geometrically uniform cells
            for ids in self.meshio_geom.cell_ids:
                if field.values.ndim == 1:
                    cell_data[field.name].append(field.values[ids])
                elif field.values.ndim == 2:
                    cell_data[field.name].append(field.values[:, ids].T)
                else:
                    raise ValueError("Data values have wrong dimension")

        meshio_grid_to_export = meshio.Mesh(
            self.meshio_geom.pts,
            self.meshio_geom.connectivity,
            point_data=point_data,
            cell_data=cell_data,
        )
        meshio.write(str(file_name), meshio_grid_to_export, binary=self._binary)

    def _append_folder_name(self, name: str) -> Path:
        """Path of a file in the output folder, creating the folder if needed."""
        if self._folder_name is None:
            return Path(name)
        self._folder_name.mkdir(parents=True, exist_ok=True)
        return self._folder_name / name

    def _make_file_name(
        self, file_name: str, time_step: Optional[int] = None, extension: str = ".vtu"
    ) -> str:
        time_extension = "" if time_step is None else "." + str(time_step)
        return file_name + time_extension + extension
