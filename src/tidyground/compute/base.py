"""Base classes and interfaces for the Compute Engine

This module defines the base components that are
necessary to represent a pipeline of operations and execute it.
"""

import abc
from typing import Any, Iterator

import pyarrow as pa


class QueryPlanNode(abc.ABC):
    """A node of a query execution plan.

    The Query plan is represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the
    last one.

    For example a pipeline that filters some data
    and then summarises it by group is a plan like::

        TableDataSource -> FilterNode(filter) -> AggregateNode(keys, aggregations)

    That would be a plan where the last step
    is the aggregation, the FilterNode is a child
    of the aggregation node and the TableDataSource
    is a child of the filter node.

    The number of children can be variable, some
    nodes like for example Joins, will accept two
    child nodes that have to be joined together.

    Each Node accepts :class:`pyarrow.RecordBatch`
    data as its input and emits new
    :class:`pyarrow.RecordBatch` as its output.
    A node always emits at least one batch, even when
    it's empty, so that the next node can know the
    columns of the data it receives.

    For example a simple node that takes data
    and just forwards it as is after printing
    its content can be implemented as::

        class DebugDataNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for b in self.child.batches():
                    print(b)
                    yield b

            def __str__(self):
                return f"DebugDataNode()"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Emits the batches for the next node.

        Each QueryPlan node is expected to be able to
        generate data that has to be provided to the next
        node in the plan.

        Usually this happens by consuming data from its
        child nodes, transforming it somehow, and yielding
        it back to the next consumer.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...


class Expression(abc.ABC):
    """Expression to apply to a RecordBatch.

    Expressions are some form of operation that
    has to be applied to the data of a :class:`pyarrow.RecordBatch`
    to create new data.

    Typical example of expressions are: ``x > 5`` or ``is.na(x)``
    which are expected to compute a new true/false value
    for every row of the data.

    As our engine is Column Major, applying an expression
    always results in a new column, thus in a
    :class:`pyarrow.Array` that contains the data
    for that column.

    Expressions can be applied to a :class:`pyarrow.Table`
    too, in such case the result is a :class:`pyarrow.ChunkedArray`.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch | pa.Table) -> Any:
        """Apply the expression to a RecordBatch.

        Expression classes must implement this method
        to dictate what will happen when an expression
        is applied.

        Suppose want to implement a ``SumExpression`` class
        that might look like::

            class SumExpression(Expression):
                def __init__(self, lcol, rcol):
                    self.lcol = lcol  # left column name
                    self.rcol = rcol  # right column name

                def apply(self, batch):
                    return pyarrow.compute.add(
                        batch[self.lcol],
                        batch[self.rcol]
                    )

                def columns(self):
                    return [self.lcol, self.rcol]
        """
        ...

    def columns(self) -> list[str]:
        """Names of the columns the expression reads.

        Used to verify that all the columns exist
        before the expression is applied to any data.
        """
        return []

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...

    def __repr__(self) -> str:
        return str(self)


class ColumnRef(Expression):
    """References a column in a record batch.

    When another expression or the engine need
    to operate on a specific column, we will
    need a way to reference that column and its data.

    This expression is aware of the column and when
    applied to a record batch returns the data for
    that column.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column being referenced.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch | pa.Table) -> pa.Array | pa.ChunkedArray:
        """Get the data for the column."""
        return batch.column(self.name)

    def columns(self) -> list[str]:
        return [self.name]

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value.

    Applying a literal to a record batch gives back
    the value itself as a :class:`pyarrow.Scalar`, compute
    functions will broadcast it to all the rows.
    """

    def __init__(self, value: Any) -> None:
        """
        :param value: The constant value.
        """
        self.value = value

    def apply(self, batch: pa.RecordBatch | pa.Table) -> pa.Scalar:
        return pa.scalar(self.value)

    def __str__(self) -> str:
        return f"Literal({self.value!r})"


col = ColumnRef
lit = Literal
