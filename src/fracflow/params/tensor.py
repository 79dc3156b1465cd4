"""
The tensor module contains the permeability tensor of matrix regions.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

import fracflow as ff

__all__ = ["SecondOrderTensor"]


class SecondOrderTensor:
    """Constant 2 x 2 permeability of a matrix region.

    The tensor need not be symmetric; only its symmetric part is required to be
    positive definite.
    """

    def __init__(
        self,
        kxx: float,
        kyy: Optional[float] = None,
        kxy: Optional[float] = None,
        kyx: Optional[float] = None,
    ):
        """Initialize permeability

        Parameters:
            kxx: Value of kxx permeability.
            kyy: Value of kyy. Default equal to kxx.
            kxy: Value of kxy. Defaults to zero.
            kyx: Value of kyx. Defaults to kxy.

        Raises:
            ValueError if the permeability is not positive definite.

        """
        if kxx <= 0:
            raise ValueError(
                "Tensor is not positive definite because of components in x-direction"
            )
        if kyy is None:
            kyy = kxx
        if kxy is None:
            kxy = 0.0
        if kyx is None:
            kyx = kxy
        # Onsager's principle - the symmetric part should be positive definite
        sym = 0.5 * (kxy + kyx)
        if kxx * kyy - sym * sym <= 0:
            raise ValueError(
                "Tensor is not positive definite because of components in y-direction"
            )

        self.values = np.array([[kxx, kxy], [kyx, kyy]], dtype=float)

    @classmethod
    def from_string(cls, text: str) -> SecondOrderTensor:
        """Create a tensor from its text form.

        Parameters:
            text: Either a single value for an isotropic tensor, or two rows
                separated by a semicolon, ``"kxx kxy; kyx kyy"``. Commas are accepted
                as separators within a row.

        Raises:
            MalformedInputError: If the text cannot be interpreted.

        """
        rows = [r.replace(",", " ").split() for r in text.strip().split(";")]
        try:
            values = [[float(v) for v in row] for row in rows]
        except ValueError as err:
            raise ff.MalformedInputError(f"Invalid permeability '{text}'.") from err
        if len(values) == 1 and len(values[0]) == 1:
            return cls(values[0][0])
        if len(values) != 2 or any(len(row) != 2 for row in values):
            raise ff.MalformedInputError(
                f"Permeability '{text}' is neither a scalar nor a 2 x 2 matrix."
            )
        return cls(values[0][0], kyy=values[1][1], kxy=values[0][1], kyx=values[1][0])

    def __str__(self) -> str:
        v = self.values
        return f"{v[0, 0]},{v[1, 0]},{v[0, 1]},{v[1, 1]}"

    def __repr__(self) -> str:
        return f"SecondOrderTensor({self.__str__()})"
