"""Errors raised by the tidyground engine.

All operations validate their inputs before producing any output,
so when one of these errors is raised no partially computed
table is ever returned.

Each error also inherits from the builtin exception that better
describes it, so that ``except KeyError`` keeps working for code
that doesn't know about tidyground.
"""


class TidygroundError(Exception):
    """Base exception for all tidyground errors."""


class UnknownColumn(TidygroundError, KeyError):
    """Raised when an operation references a column the table doesn't have."""

    def __init__(self, name: str, available: list[str], context: str = "table") -> None:
        self.name = name
        self.available = list(available)
        super().__init__(
            f"Column {name!r} not found in {context}, available columns: {self.available}"
        )

    def __str__(self) -> str:
        # KeyError would otherwise quote the whole message.
        return self.args[0]


class IncompatibleKind(TidygroundError, TypeError):
    """Raised when a column kind can't be used by the requested operation."""


class EmptyReductionInput(TidygroundError, ValueError):
    """Raised by a reduction that received no values to reduce.

    The aggregator resolves it to a missing value,
    so it only surfaces when reductions are invoked directly.
    """


class InvalidSpec(TidygroundError, ValueError):
    """Raised for malformed tables, aggregations or join specifications."""
