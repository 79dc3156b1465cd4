""" Logging functionality for fracflow.

Timing of functions is controlled by the configuration file fracflow.cfg, which
should be placed in the current working directory (where the python script is
initiated). All timing-related information is located in a section with heading
logging; see sample file below.

By default, timing is switched off. It can be turned on by setting the keyword
'active' to True.

To log only parts of the code, functions are classified as relevant for the following
(overlapping) categories

    all: Used to log all methods.
    assembly: Assembly of the pressure and saturation equations.
    discretization: Element level computations.
    gridding: Mesh construction, reading and pre-processing.
    numerics: Time marching and linear solvers.
    io: Reading and writing of files.
    visualization: Export of results.

Example logging section of fracflow.cfg:

    [logging]
    # Activate logging. Without this, the rest of the section has no effect
    active: True
    # To only log specific sections, use e.g.
    sections: gridding
    # multiple sections are separated by commas:
    sections: numerics, assembly

Messages from ordinary module loggers (``logging.getLogger(__name__)``) are not
affected by this file; their level is set by the application, see
:func:`fracflow.driver.main`.

"""
import functools
import logging
import time
from typing import Dict

import fracflow as ff

__all__ = ["time_logger"]


# Try to access configuration information, as activated by the import of fracflow
try:
    config: Dict = ff.config["logging"]  # type: ignore
    raw_sections = config.get("sections", "all")
    active_sections = [s.strip().lower() for s in raw_sections.split(",")]
    logger_is_active = config["active"].strip().lower() == "true"
    always_log = "all" in active_sections

except KeyError:
    config = {}
    active_sections = ["all"]
    logger_is_active = False
    always_log = True

t_logger = logging.getLogger("Timer")
t_logger.setLevel(logging.INFO)


if logger_is_active and not t_logger.hasHandlers():
    # Add handler to write to file.
    time_handler = logging.FileHandler(config.get("file", "FracFlowTimings.log"))
    time_handler.setLevel(logging.INFO)
    time_formatter = logging.Formatter("%(message)s")
    time_handler.setFormatter(time_formatter)
    t_logger.addHandler(time_handler)


def time_logger(sections):
    """A decorator that measures ellapsed time for a function."""

    # The double nested function is needed to allow decorators with arguments
    def inner_func(func):
        @functools.wraps(func)
        def log_time(*args, **kwargs):
            if not logger_is_active:
                # Shortcut if logging is not activated.
                return func(*args, **kwargs)
            elif always_log or any([s in active_sections for s in sections]):
                name = f"{func.__qualname__} in module {func.__module__}."

                t_logger.log(level=logging.INFO, msg=f"Calling {name}")
                start_time = time.perf_counter()
                # Run the function
                result = func(*args, **kwargs)

                # Timing
                elapsed = time.perf_counter() - start_time
                t_logger.log(
                    level=logging.INFO,
                    msg=f"Finished {name} Elapsed time: {elapsed:.4e} seconds",
                )
                return result
            else:
                return func(*args, **kwargs)

        return log_time

    return inner_func
