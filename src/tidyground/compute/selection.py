"""Query plan nodes that implement selection of columns and rows.

A common request in analyses is to select specific columns,
compute new columns based on expressions, or keep only the
distinct rows of a dataset.

This module implements the basic selection capabilities.
"""

from typing import Sequence

import pyarrow as pa

from ..errors import InvalidSpec, UnknownColumn
from .base import Expression, QueryPlanNode
from .grouping import first_occurrences
from .table import Table

__all__ = ("DistinctNode", "ProjectNode", "distinct")


class ProjectNode(QueryPlanNode):
    """Project data by selecting specific columns and computing expressions.

    The projection expects a list of column names to select and a dictionary
    of column names and expressions to project new columns.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidyground.compute import col, lit, FunctionCallExpression, TableDataSource
    >>> data = pa.record_batch({"a": [1, 2, 3], "b": [4, 5, 6]})
    >>> next(ProjectNode(["a"], {"ab_sum": FunctionCallExpression(pc.add, col("a"), col("b"))},
    ...                  TableDataSource(data)).batches()).to_pydict()
    {'a': [1, 2, 3], 'ab_sum': [5, 7, 9]}
    """

    def __init__(
        self,
        select: list[str] | None,
        project: dict[str, Expression] | None,
        child: QueryPlanNode,
    ) -> None:
        """
        :param select: The list of column names to select.
                       ``None`` means select all columns.
                       ``[]`` means select only the projected columns.
        :param project: The dict {name: Expression} to project new columns.
                        Projecting an existing column replaces it.
        :param child: The node emitting the data to be projected.
        """
        self.select = select
        self.project = project or {}
        self.child = child

        if self.select is None:
            # No selection was provided, we will select all columns
            self.restrict_columns = None
        else:
            # This is the list of columns we want to keep,
            # in case select=[] it will only provide the project columns.
            self.restrict_columns = list(
                dict.fromkeys(self.select + list(self.project.keys()))
            )

    def __str__(self) -> str:
        return f"ProjectNode(select={self.select}, project={self.project}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the projection to the child node.

        For each recordbatch yielded by the child node,
        sequentially apply the expressions to project new columns
        and then select the requested columns.

        Expressions are applied in order, so each
        expression can refer to the columns projected
        by the previous ones.
        """
        for batch in self.child.batches():
            for name, expr in self.project.items():
                for ref in expr.columns():
                    if ref not in batch.schema.names:
                        raise UnknownColumn(ref, batch.schema.names, f"projection {name!r}")
                values = expr.apply(batch)
                if isinstance(values, pa.Scalar):
                    values = pa.array([values.as_py()] * batch.num_rows, type=values.type)
                if name in batch.schema.names:
                    batch = batch.set_column(batch.schema.get_field_index(name), name, values)
                else:
                    batch = batch.append_column(name, values)

            if self.restrict_columns is not None:
                for name in self.restrict_columns:
                    if name not in batch.schema.names:
                        raise UnknownColumn(name, batch.schema.names, "selection")
                batch = batch.select(self.restrict_columns)

            yield batch


def distinct(
    table: Table, columns: Sequence[str] | None = None, keep_all: bool = False
) -> Table:
    """Keep only the first row of each distinct combination of values.

    Rows keep the order in which they first appear.
    Applying ``distinct`` to its own result gives back the same result.

    >>> t = Table.from_pydict({"name": ["John", "Paul", "John"], "year": [1940, 1942, 1940]})
    >>> distinct(t, ["name"]).to_pydict()
    {'name': ['John', 'Paul']}

    :param table: The table to deduplicate.
    :param columns: The columns whose values have to be distinct,
                    all the columns when ``None``.
    :param keep_all: Keep all the columns of the table instead of only ``columns``.
    """
    if columns is None:
        columns = table.column_names
    columns = list(columns)
    if len(set(columns)) != len(columns):
        raise InvalidSpec(f"Distinct columns must be unique, got {columns}")
    table.require_columns(columns, "distinct")

    if columns:
        rows = first_occurrences(table, columns)
    else:
        # No columns means every row is the same row.
        rows = [0] if table.num_rows else []
    result = table.take(rows)
    if keep_all:
        return result
    return result.select(columns)


class DistinctNode(QueryPlanNode):
    """Emit only the distinct rows of the received data.

    The first row of every combination of values
    is preserved, so all the data of the child node
    has to be seen before emitting anything.
    """

    def __init__(
        self,
        columns: Sequence[str] | None,
        child: QueryPlanNode,
        keep_all: bool = False,
    ) -> None:
        """
        :param columns: The columns whose values have to be distinct,
                        all the columns when ``None``.
        :param child: The node emitting the data to deduplicate.
        :param keep_all: Keep all the columns instead of only ``columns``.
        """
        self.columns = list(columns) if columns is not None else None
        self.keep_all = keep_all
        self.child = child

    def __str__(self) -> str:
        return f"DistinctNode(columns={self.columns}, keep_all={self.keep_all}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        table = Table.from_batches(self.child.batches())
        yield from distinct(table, self.columns, keep_all=self.keep_all).to_batches()
