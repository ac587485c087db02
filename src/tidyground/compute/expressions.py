"""Expressions executed by compute engine nodes.

The Compute Engine will sometimes need to filter data
or emit new data. This will be performed by nodes that
need to know how the data must be filtered or emitted.

Filters will need a ``predicate``, so an expression that
returns ``true`` or ``false`` for each row that has to be
filtered.

Projections will need an expression that computes the rows
for the projection, for example ``A + B``.

Aggregations can reduce an expression instead of a column,
counting how many values are missing is done summing
the result of ``is_missing(col("x"))``.

Comparisons and arithmetic involving a missing value
return a missing value, as ``pyarrow.compute`` functions do.
"""

from typing import Any, Callable

import pyarrow as pa
import pyarrow.compute as pc

from ..utils.inspect import describe_callable
from .base import Expression

__all__ = ("FunctionCallExpression", "is_missing", "apply_expression_if_needed")


def apply_expression_if_needed(batch: pa.RecordBatch | pa.Table, o: Any) -> Any:
    """Invoke Apply on expressions when needed

    If the provided object is an Expression,
    it will be applied to the target batch.

    Otherwise it will treat it as if it's
    already the result of an expression
    or a literal value.

    This allows us to apply all arguments
    we receive without having to care if
    they are the data we need or if they
    are the expression resulting in that data.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


class FunctionCallExpression(Expression):
    """Call a compute function on its arguments.

    Given a compute function, and a set of arguments
    (other expressions, literals or data), execute
    the function on the provided arguments and return
    the resulting data.

    For example to sum two columns this would be used as::

        FunctionCallExpression(pyarrow.compute.add, ColumnRef("A"), ColumnRef("B"))
    """

    def __init__(self, func: Callable[..., Any], *args: Any) -> None:
        """
        :param func: The function accepting the arguments.
        :param *args: The arguments for the function.
        """
        self.func = func
        self.args = args

    def __str__(self) -> str:
        return f"{describe_callable(self.func)}({','.join(map(str, self.args))})"

    def columns(self) -> list[str]:
        names: dict[str, None] = {}
        for arg in self.args:
            if isinstance(arg, Expression):
                names.update(dict.fromkeys(arg.columns()))
        return list(names)

    def apply(self, batch: pa.RecordBatch | pa.Table) -> Any:
        """Invoke the function resolving all arguments on the recordbatch.

        When the function arguments are expressions themselves,
        this will apply the expressions on the provided recordbatch
        and the resulting data will be used as the arguments for the
        function.
        """
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        return self.func(*args)


def is_missing(expression: Expression) -> FunctionCallExpression:
    """Predicate that is true where the expression is missing.

    Never missing itself, so it can be safely summed to count
    missing values or averaged to get the proportion of them.

    >>> from tidyground.compute import col
    >>> data = pa.record_batch({"x": [1, None, 3]})
    >>> is_missing(col("x")).apply(data).to_pylist()
    [False, True, False]
    """
    return FunctionCallExpression(pc.is_null, expression)
