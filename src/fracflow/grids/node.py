"""Mesh nodes, and the duplicated data that makes discontinuous fields possible.

Pressure is continuous and stored once per node. Saturation, mobilities and capillary
potential may jump where porous regions meet, so every node keeps one
:class:`DuplData` per porous region touching it. The DuplData of a node are kept
sorted by the priority index of their region; the first one belongs to the master
region.

"""

from __future__ import annotations

import bisect
from typing import TYPE_CHECKING, Optional

import fracflow as ff

if TYPE_CHECKING:
    from fracflow.grids.bvertex import ConstantFluxVertex

__all__ = ["DuplData", "Node"]


class DuplData:
    """Private copy of the discontinuous fields of one (node, region) pair.

    Parameters:
        region: The porous region.

    """

    __slots__ = ("region", "idx")

    def __init__(self, region: ff.PorousRegion) -> None:
        self.region = region
        # Storage index in the discontinuous field arrays. Assigned by the mesh once
        # all DuplData are known.
        self.idx: int = -1

    def __repr__(self) -> str:
        return f"DuplData(region={self.region.id}, idx={self.idx})"


class Node:
    """A mesh vertex.

    Parameters:
        idx: Identity of the node, also its index in the pressure array.
        x: x coordinate.
        y: y coordinate.

    """

    def __init__(self, idx: int, x: float, y: float) -> None:
        self.idx = idx
        self.x = x
        self.y = y
        self.dd: list[DuplData] = []
        # Boundary vertex attached to the node, if any.
        self.bvertex: Optional[ConstantFluxVertex] = None

    def add_region(self, region: ff.PorousRegion) -> DuplData:
        """Find or create the DuplData of a region.

        The list of DuplData stays sorted by the priority index of the regions. The
        regions must have been sorted before this is called.

        Parameters:
            region: A porous region with an assigned priority index.

        Returns:
            The DuplData of the region at this node.

        Raises:
            InvariantViolationError: If the region has no priority index.

        """
        if region.idx < 0:
            raise ff.InvariantViolationError(
                f"Region {region.id} has no priority index. Sort the regions first."
            )
        keys = [d.region.idx for d in self.dd]
        pos = bisect.bisect_left(keys, region.idx)
        if pos == len(self.dd) or self.dd[pos].region.idx != region.idx:
            self.dd.insert(pos, DuplData(region))
        return self.dd[pos]

    @property
    def master(self) -> DuplData:
        """The DuplData of the region with the highest priority."""
        return self.dd[0]

    @property
    def slaves(self) -> list[DuplData]:
        return self.dd[1:]

    @property
    def num_dupl(self) -> int:
        return len(self.dd)

    def __repr__(self) -> str:
        return f"Node({self.idx}, x={self.x}, y={self.y}, dd={self.dd})"
