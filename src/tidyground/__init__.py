"""tidyground

A small tabular data engine built from scratch for learning and teaching purposes.

tidyground implements the operations an introductory data analysis
course teaches to perform on tables of data: filtering rows,
selecting and computing columns, grouping and summarising,
and joining tables together. Each component is isolated within
its own package and documented in literate programming style,
so that it's possible to read how each operation actually works.

The primary components are:

* The Compute Engine, the :class:`tidyground.compute.Table` and the operations on it.
* The Dataframe API, which provides an high level, chainable, API for the compute engine.

For the user guide and code documentation of each component, refer to the
component itself.
"""

import logging

from . import compute, dataframe
from .config import settings
from .errors import (
    EmptyReductionInput,
    IncompatibleKind,
    InvalidSpec,
    TidygroundError,
    UnknownColumn,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = (
    "compute",
    "dataframe",
    "settings",
    "TidygroundError",
    "UnknownColumn",
    "IncompatibleKind",
    "EmptyReductionInput",
    "InvalidSpec",
)
