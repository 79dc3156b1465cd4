"""
This module contains the time step control of the explicit saturation update.

Algorithm Overview:

    Every time step starts with the time step size left by the previous one. The
    saturation increment of all master DuplData is computed with the current time
    step. If the largest absolute increment exceeds the upper bound ``ds_max``, the
    time step is divided by ``beta`` and the increment is recomputed. The retries are
    bounded: if the time step falls below ``dt_min``, or more than ``iter_max``
    sub-steps were attempted, the run fails. Once an increment is accepted, the time
    step may grow by a factor ``beta`` for the next step, capped by ``dt_max``, if the
    accepted increment was below the lower bound ``ds_min``.

Algorithm Workflow in Pseudocode:

    INPUT
        time_control // time step control object properly initialized
        ds // largest absolute saturation increment for the current dt

    INCREASE sub-step counter
    IF ds > ds_max THEN
        DECREASE dt // divide by beta
        IF dt < dt_min OR sub-step counter > iter_max THEN
            RAISE Error
        ENDIF
        RETURN rejected
    ENDIF
    IF ds < ds_min THEN
        FLAG growth
    ENDIF
    RETURN accepted

    After the step is committed:
    INCREASE time by dt
    IF growth flagged THEN
        SET dt = min(dt_max, dt * beta)
    ENDIF

"""

from __future__ import annotations

from typing import Union

import fracflow as ff

__all__ = ["TimeStepControl"]


class TimeStepControl:
    """Saturation-increment based time-stepping control.

    Parameters:
        time_init: Initial simulation time.
        time_final: Final simulation time. Time steps are taken until it is reached or
            exceeded.
        dt_init: Initial time step.
        dt_min_max: Minimum and maximum permissible time steps.
        ds_min_max: Saturation increments below the first element let the time step
            grow, increments above the second element are rejected.
        beta: Factor by which the time step shrinks or grows. Must exceed one.
        iter_max: Maximum number of sub-steps within one time step.

    Example:
        # The following is an example on how to initialize a time-stepping object
        time_control = ff.TimeStepControl(
            time_init=0,
            time_final=10,
            dt_init=0.1,
            dt_min_max=(1e-6, 1),
            ds_min_max=(0.01, 0.05),
            beta=1.5,
            iter_max=20,
        )

    Attributes:
        time (float): Current time.
        dt (float): Current time step.
        time_index (int): Number of committed time steps.
        substeps (int): Number of sub-steps attempted in the current time step.
        total_substeps (int): Number of sub-steps attempted in all committed steps.

    """

    def __init__(
        self,
        time_init: float,
        time_final: float,
        dt_init: float,
        dt_min_max: tuple[float, float],
        ds_min_max: tuple[float, float],
        beta: float,
        iter_max: int,
    ) -> None:
        # Sanity checks
        if time_final < time_init:
            raise ValueError("Final time cannot be smaller than initial time.")
        if dt_init <= 0:
            raise ValueError("Initial time step must be positive.")
        if dt_min_max[0] <= 0 or dt_min_max[0] > dt_min_max[1]:
            raise ValueError(
                f"Expected 0 < dt_min <= dt_max, got {dt_min_max[0]} and "
                f"{dt_min_max[1]}."
            )
        if ds_min_max[0] < 0 or ds_min_max[0] > ds_min_max[1]:
            raise ValueError(
                f"Expected 0 <= ds_min <= ds_max, got {ds_min_max[0]} and "
                f"{ds_min_max[1]}."
            )
        if beta <= 1:
            raise ValueError("Expected time step factor beta > 1.")
        if iter_max <= 0:
            raise ValueError("Maximum number of sub-steps must be positive.")

        self.time_init = time_init
        self.time_final = time_final
        self.dt_init = dt_init
        self.dt_min_max = dt_min_max
        self.ds_min_max = ds_min_max
        self.beta = beta
        self.iter_max = iter_max

        self.time: Union[int, float] = time_init
        self.dt: Union[int, float] = dt_init
        self.time_index: int = 0
        self.substeps: int = 0
        self.total_substeps: int = 0

        # Whether the time step may grow after the current step
        self._grow: bool = False

    def __repr__(self) -> str:
        s = "Time step control object with attributes:\n"
        s += f"Initial and final simulation time = ({self.time_init}, "
        s += f"{self.time_final})\n"
        s += f"Initial time step = {self.dt_init}\n"
        s += f"Minimum and maximum time steps = {self.dt_min_max}\n"
        s += f"Minimum and maximum saturation increments = {self.ds_min_max}\n"
        s += f"Time step factor = {self.beta}\n"
        s += f"Maximum sub-steps = {self.iter_max}\n"
        s += f"Current time step and time are {self.dt} and {self.time}."
        return s

    def final_time_reached(self) -> bool:
        """Whether the final time has been reached or overstepped."""
        return self.time >= self.time_final

    def start_step(self) -> None:
        """Reset the sub-step bookkeeping before a new time step."""
        self.substeps = 0
        self._grow = False

    def check_increment(self, ds: float) -> bool:
        """Accept or reject a saturation increment computed with the current dt.

        Parameters:
            ds: Largest absolute saturation increment.

        Returns:
            True if the increment is accepted. Otherwise the time step has been
            reduced and the increment must be recomputed.

        Raises:
            NumericalInstabilityError: If the time step falls below the minimum, or
                the number of sub-steps exceeds the maximum.

        """
        self.substeps += 1
        if ds > self.ds_min_max[1]:
            self.dt /= self.beta
            if self.dt < self.dt_min_max[0] or self.substeps > self.iter_max:
                raise ff.NumericalInstabilityError(
                    "either min_dt or max_s_iter error. "
                    f"dt: {self.dt} dtm: {self.dt_min_max[0]} dn_it: "
                    f"{self.substeps} dn_max: {self.iter_max}"
                )
            return False
        if ds < self.ds_min_max[0]:
            self._grow = True
        return True

    @property
    def grow_flagged(self) -> bool:
        return self._grow

    def increase_time(self) -> None:
        """Advance time by the accepted time step, and grow the time step if allowed."""
        self.time += self.dt
        self.time_index += 1
        self.total_substeps += self.substeps
        if self._grow:
            self.dt = min(self.dt_min_max[1], self.dt * self.beta)
