"""   fracflow.

Root directory for the fracflow package, a control volume finite element simulator
for two-phase flow in porous media cut by discrete fractures. Contains the following
sub-packages:

geometry: Reference cell tables, planar formulas and set-field shapes.

params: Capillary and relative permeability curves, permeability, regions, gravity.

grids: Nodes with duplicated data, boundary vertices and the mesh.

discretization: Triangle, quadrilateral and fracture elements.

numerics: Simulation state, linear solvers, time step control and the IMPES engine.

io: Case configuration, mesh readers, initial conditions and result tables.

viz: Visualization; vtu export via meshio, matplotlib plots.

utils: Errors and logging.


isort:skip_file

"""

import configparser
import os
from pathlib import Path


__version__ = "0.3.0"

# Try to read the config file from the directory where python process was launched
try:
    cwd = Path(os.getcwd())
    pth = cwd / Path("fracflow.cfg")
    cfg = configparser.ConfigParser()
    cfg.read(pth)
    config = {key: dict(section) for key, section in cfg.items()}
except (OSError, configparser.Error):
    # the assumption is that no configurations are given
    config = {}

# ------------------------------------
# Simplified namespaces. Classes and modules that a user is exposed to have a
# shortcut here.

from fracflow.utils.errors import (
    FracFlowError,
    MalformedInputError,
    NumericalInstabilityError,
    ExternalSolverError,
    InvariantViolationError,
)
from fracflow.utils.logging import time_logger

# Geometry
from fracflow.geometry.shapes import CellType, ReferenceCell, reference_cell
from fracflow.geometry import formulas
from fracflow.geometry.polygons import Rectangle, Circle

# Parameters
from fracflow.params.gravity import Gravity
from fracflow.params.tensor import SecondOrderTensor
from fracflow.params.curves import (
    JFunction,
    JFunctionFirooz,
    JFunctionZero,
    JFunctionLinear,
    JFunctionVanGenuchten,
    JFunctionBrooksCorey,
    KFunction,
    KFunctionFirooz,
    KFunctionVanGenuchten,
    KFunctionBrooksCorey,
)
from fracflow.params.regions import (
    Region,
    PorousRegion,
    MatrixRegion,
    FractureRegion,
    BoundaryRegion,
    SaturationCondition,
    PressureCondition,
    sort_regions,
)

# Grids
from fracflow.grids.node import Node, DuplData
from fracflow.grids.bvertex import (
    ConstantFluxVertex,
    ConstantPressureVertex,
    new_boundary_vertex,
)
from fracflow.grids.mesh import Mesh

# Discretization
from fracflow.discretization.elements import (
    Element,
    PolygonElement,
    FractureElement,
    new_element,
)

# Numerics
from fracflow.numerics.state import SimulationState
from fracflow.numerics.linear_solvers import LinearSolver
from fracflow.numerics.time_step_control import TimeStepControl
from fracflow.numerics.impes import ImpesSolver, preprocess

# Input and output
from fracflow.io.config import CaseConfig, read_case_config
from fracflow.io import mesh_reader, initial_condition
from fracflow.io.flow_history import FlowHistory
from fracflow.io.diagnostics import write_diagnostics

# Visualization
from fracflow.viz.exporter import Exporter
from fracflow.viz.plot_flow import plot_flow_history
