"""Reading of the case configuration file ``solver.cfg``.

A case directory holds the mesh, the initial condition and an INI file
``solver.cfg`` describing the simulation. Example::

    [simulation]
    dm = 1
    dn = 1
    dp = 1
    dgw = 0
    dgn = 0
    gorigin = 0 0
    gradz = 0 1
    starttime = 0
    stoptime = 1
    timestep = 0.01
    maxtimestep = 0.1
    mintimestep = 1e-8
    maxdeltas = 0.05
    mindeltas = 0.01
    beta = 1.5
    maxtimeiteration = 50
    jmodel = firooz

    [mesh]
    type = gmsh
    name = mesh

    [output]
    nfilebegin = 0
    nfileend = 10
    visualtype = vtk
    visualduplicate = 0

    [solver]
    method = direct

    [region matrix]
    type = mat
    id = 1
    phi = 0.2
    pd = 1
    kr = firooz 2 2 1 1
    k = 1 0; 0 1

    [region inlet]
    type = bnd
    id = 10
    stype = sconst
    ptype = qconst
    value = 1

    [setfield]
    a = rectangle 0 0 0.5 1 1

Every problem with the file is reported as a
:class:`~fracflow.utils.errors.MalformedInputError` naming the file, the section and
the key.

"""

from __future__ import annotations

import configparser
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

import fracflow as ff

__all__ = [
    "SimulationParameters",
    "OutputParameters",
    "SolverParameters",
    "MeshParameters",
    "CaseConfig",
    "read_case_config",
    "CONFIG_FILE",
]

logger = logging.getLogger(__name__)

CONFIG_FILE = "solver.cfg"

MAX_SET_FIELD_SHAPES = 10


@dataclass(frozen=True, kw_only=True)
class SimulationParameters:
    """Physical and time marching parameters of a simulation."""

    dm: float
    """Viscosity ratio, non-wetting over wetting."""

    dn: float
    """Dimensionless number scaling the saturation equation."""

    dp: float
    """Dimensionless pressure scale."""

    gravity: ff.Gravity = field(default_factory=ff.Gravity)
    start_time: float
    stop_time: float
    time_step: float
    max_time_step: float
    min_time_step: float
    max_delta_s: float
    min_delta_s: float
    beta: float
    max_time_iteration: int
    j_function: ff.JFunction = field(default_factory=ff.JFunctionZero)

    def new_time_control(
        self, time_init: Optional[float] = None
    ) -> ff.TimeStepControl:
        """A time step control object for these parameters."""
        return ff.TimeStepControl(
            time_init=self.start_time if time_init is None else time_init,
            time_final=self.stop_time,
            dt_init=self.time_step,
            dt_min_max=(self.min_time_step, self.max_time_step),
            ds_min_max=(self.min_delta_s, self.max_delta_s),
            beta=self.beta,
            iter_max=self.max_time_iteration,
        )


@dataclass(frozen=True, kw_only=True)
class OutputParameters:
    """Numbering and format of the output files."""

    n_file_begin: int = 0
    n_file_end: int = 10
    visual_type: str = "vtk"
    visual_duplicate: int = 0
    """0 writes every DuplData, 1 the minimum and 2 the maximum saturation per node."""


@dataclass(frozen=True, kw_only=True)
class SolverParameters:
    method: str = "direct"
    rtol: float = 1e-10
    maxiter: int = 1000

    def new_solver(self) -> ff.LinearSolver:
        return ff.LinearSolver(method=self.method, rtol=self.rtol, maxiter=self.maxiter)


@dataclass(frozen=True, kw_only=True)
class MeshParameters:
    type: str = "gmsh"
    """Mesh format, ``gmsh`` or ``triangle``."""

    name: str = "mesh"
    """File name of the mesh without extension."""


@dataclass(frozen=True, kw_only=True)
class CaseConfig:
    """Everything read from the configuration file of a case directory."""

    directory: Path
    simulation: SimulationParameters
    output: OutputParameters = field(default_factory=OutputParameters)
    solver: SolverParameters = field(default_factory=SolverParameters)
    mesh: MeshParameters = field(default_factory=MeshParameters)
    regions: list[ff.Region] = field(default_factory=list)
    set_field: list[tuple[Union[ff.Rectangle, ff.Circle], float]] = field(
        default_factory=list
    )


class _Reader:
    """Typed access to the sections of a parsed configuration file."""

    def __init__(self, path: Path, parser: configparser.ConfigParser) -> None:
        self.path = path
        self.parser = parser

    def error(self, section: str, key: Optional[str], message: str):
        where = f"[{section}]" + (f" {key}" if key else "")
        return ff.MalformedInputError(f"{self.path}: {where}: {message}")

    def raw(self, section: str, key: str, default: Optional[str] = None) -> str:
        if not self.parser.has_section(section):
            if default is not None:
                return default
            raise self.error(section, None, "missing section")
        value = self.parser.get(section, key, fallback=default)
        if value is None:
            raise self.error(section, key, "missing key")
        return value.strip()

    def convert(self, section: str, key: str, func: Callable, default=None):
        text = self.raw(section, key, None if default is None else str(default))
        try:
            return func(text)
        except ValueError as err:
            raise self.error(section, key, f"cannot read {text!r}: {err}") from err

    def get_float(
        self, section: str, key: str, default: Optional[float] = None
    ) -> float:
        return self.convert(section, key, float, default)

    def get_int(self, section: str, key: str, default: Optional[int] = None) -> int:
        return self.convert(section, key, int, default)

    def get_floats(
        self, section: str, key: str, n: int, default=None
    ) -> list[float]:
        def parse(text: str) -> list[float]:
            values = [float(v) for v in text.replace(",", " ").split()]
            if len(values) != n:
                raise ValueError(f"expected {n} numbers")
            return values

        if default is not None:
            default = " ".join(str(v) for v in default)
        return self.convert(section, key, parse, default)


def _new_j_function(reader: _Reader) -> ff.JFunction:
    name = reader.raw("simulation", "jmodel", "zero").lower()
    if name == "zero":
        return ff.JFunctionZero()
    if name == "firooz":
        return ff.JFunctionFirooz()
    if name == "linear":
        return ff.JFunctionLinear()
    params = reader.raw("simulation", "jparams", "")
    try:
        values = [float(v) for v in params.split()]
        if name == "vang":
            return ff.JFunctionVanGenuchten(*values)
        if name == "brooks":
            return ff.JFunctionBrooksCorey(*values)
    except (TypeError, ValueError) as err:
        raise reader.error("simulation", "jparams", str(err)) from err
    raise reader.error("simulation", "jmodel", f"unknown J-function {name!r}")


def _new_k_function(reader: _Reader, section: str) -> ff.KFunction:
    words = reader.raw(section, "kr").split()
    if not words:
        raise reader.error(section, "kr", "empty relative permeability")
    name = words[0].lower()
    try:
        values = [float(v) for v in words[1:]]
        if name == "firooz":
            return ff.KFunctionFirooz(*values)
        if name == "vang":
            return ff.KFunctionVanGenuchten(*values)
        if name == "brooks":
            return ff.KFunctionBrooksCorey(*values)
    except (TypeError, ValueError) as err:
        raise reader.error(section, "kr", str(err)) from err
    raise reader.error(section, "kr", f"unknown relative permeability {name!r}")


def _read_region(reader: _Reader, section: str) -> ff.Region:
    kind = reader.raw(section, "type").lower()
    region_id = reader.get_int(section, "id")
    try:
        if kind == "bnd":
            stype = reader.convert(section, "stype", ff.SaturationCondition)
            ptype = reader.convert(section, "ptype", ff.PressureCondition)
            return ff.BoundaryRegion(
                id=region_id,
                stype=stype,
                ptype=ptype,
                value=reader.get_float(section, "value"),
            )
        common = dict(
            id=region_id,
            phi=reader.get_float(section, "phi"),
            pd=reader.get_float(section, "pd"),
            kr=_new_k_function(reader, section),
        )
        if kind == "mat":
            try:
                k = ff.SecondOrderTensor.from_string(reader.raw(section, "k"))
            except ff.MalformedInputError as err:
                raise reader.error(section, "k", str(err)) from err
            return ff.MatrixRegion(k=k, **common)
        if kind == "frac":
            return ff.FractureRegion(
                k=reader.get_float(section, "k"),
                e=reader.get_float(section, "e"),
                **common,
            )
    except ValueError as err:
        raise reader.error(section, None, str(err)) from err
    raise reader.error(section, "type", f"unknown region type {kind!r}")


def _read_set_field(
    reader: _Reader,
) -> list[tuple[Union[ff.Rectangle, ff.Circle], float]]:
    section = "setfield"
    if not reader.parser.has_section(section):
        return []
    shapes = []
    for key in sorted(reader.parser.options(section)):
        words = reader.raw(section, key).split()
        try:
            name, values = words[0].lower(), [float(v) for v in words[1:]]
            if name == "rectangle" and len(values) == 5:
                shapes.append((ff.Rectangle(*values[:4]), values[4]))
            elif name == "circle" and len(values) == 4:
                shapes.append((ff.Circle(*values[:3]), values[3]))
            else:
                raise ValueError(f"cannot interpret shape {' '.join(words)!r}")
        except (IndexError, ValueError) as err:
            raise reader.error(section, key, str(err)) from err
    if len(shapes) > MAX_SET_FIELD_SHAPES:
        raise reader.error(
            section, None, f"at most {MAX_SET_FIELD_SHAPES} shapes are supported"
        )
    return shapes


def read_case_config(directory: Union[str, Path]) -> CaseConfig:
    """Read ``solver.cfg`` of a case directory.

    Parameters:
        directory: The case directory.

    Returns:
        The parsed configuration, with regions in file order.

    Raises:
        MalformedInputError: If the file is missing or cannot be interpreted.

    """
    directory = Path(directory)
    path = directory / CONFIG_FILE
    parser = configparser.ConfigParser(
        interpolation=None, inline_comment_prefixes=("#",)
    )
    try:
        with open(path) as f:
            parser.read_file(f)
    except OSError as err:
        raise ff.MalformedInputError(f"Cannot open {path}: {err}") from err
    except configparser.Error as err:
        raise ff.MalformedInputError(f"Cannot parse {path}: {err}") from err

    reader = _Reader(path, parser)
    sim = "simulation"

    x0, y0 = reader.get_floats(sim, "gorigin", 2, (0.0, 0.0))
    xdir, ydir = reader.get_floats(sim, "gradz", 2, (0.0, 1.0))
    try:
        gravity = ff.Gravity(
            gw=reader.get_float(sim, "dgw", 0.0),
            gn=reader.get_float(sim, "dgn", 0.0),
            x0=x0,
            y0=y0,
            xdir=xdir,
            ydir=ydir,
        )
    except ValueError as err:
        raise reader.error(sim, "gradz", str(err)) from err

    simulation = SimulationParameters(
        dm=reader.get_float(sim, "dm"),
        dn=reader.get_float(sim, "dn"),
        dp=reader.get_float(sim, "dp"),
        gravity=gravity,
        start_time=reader.get_float(sim, "starttime", 0.0),
        stop_time=reader.get_float(sim, "stoptime"),
        time_step=reader.get_float(sim, "timestep"),
        max_time_step=reader.get_float(sim, "maxtimestep"),
        min_time_step=reader.get_float(sim, "mintimestep"),
        max_delta_s=reader.get_float(sim, "maxdeltas"),
        min_delta_s=reader.get_float(sim, "mindeltas"),
        beta=reader.get_float(sim, "beta"),
        max_time_iteration=reader.get_int(sim, "maxtimeiteration"),
        j_function=_new_j_function(reader),
    )

    output = OutputParameters(
        n_file_begin=reader.get_int("output", "nfilebegin", 0),
        n_file_end=reader.get_int("output", "nfileend", 10),
        visual_type=reader.raw("output", "visualtype", "vtk").lower(),
        visual_duplicate=reader.get_int("output", "visualduplicate", 0),
    )
    if output.visual_type != "vtk":
        raise reader.error(
            "output", "visualtype", f"unsupported format {output.visual_type!r}"
        )
    if output.visual_duplicate not in (0, 1, 2):
        raise reader.error("output", "visualduplicate", "expected 0, 1 or 2")
    if output.n_file_end <= output.n_file_begin:
        raise reader.error("output", "nfileend", "must exceed nfilebegin")

    solver = SolverParameters(
        method=reader.raw("solver", "method", "direct").lower(),
        rtol=reader.get_float("solver", "rtol", 1e-10),
        maxiter=reader.get_int("solver", "maxiter", 1000),
    )
    if solver.method not in ff.LinearSolver.methods:
        raise reader.error("solver", "method", f"unknown method {solver.method!r}")

    mesh = MeshParameters(
        type=reader.raw("mesh", "type", "gmsh").lower(),
        name=reader.raw("mesh", "name", "mesh"),
    )
    if mesh.type not in ("gmsh", "triangle"):
        raise reader.error("mesh", "type", f"unknown mesh type {mesh.type!r}")

    regions = [
        _read_region(reader, section)
        for section in parser.sections()
        if section.lower().startswith("region")
    ]
    if not any(not r.is_boundary for r in regions):
        raise ff.MalformedInputError(f"{path}: no porous region is defined.")
    logger.info(f"Read {len(regions)} regions from {path}")

    return CaseConfig(
        directory=directory,
        simulation=simulation,
        output=output,
        solver=solver,
        mesh=mesh,
        regions=regions,
        set_field=_read_set_field(reader),
    )
