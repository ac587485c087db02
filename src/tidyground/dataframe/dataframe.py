"""The Dataframe object itself."""

from typing import Any, Mapping, Self, Sequence

import pyarrow as pa

from ..compute import (
    AggregateNode,
    CountAggregation,
    DistinctNode,
    FilterNode,
    JoinNode,
    JoinSpec,
    PaginateNode,
    ProjectNode,
    SortNode,
    Table,
    TableDataSource,
)
from ..compute.base import Expression, QueryPlanNode


class Dataframe:
    """Data structure that handles data in rows and columns.

    The Dataframe object allows to represent in-memory data
    and perform transformations over it.

    The tidyground dataframe object is lazy, which means that
    any transformation or analysis will be applied only when the
    ``.collect()`` method will be invoked and no data is kept
    in memory until that moment (unless it already was).

    Every transformation returns a new Dataframe,
    the original one is never modified.

    >>> from tidyground.compute import MeanAggregation
    >>> df = Dataframe.from_pydict({"ER_status": ["pos", "neg"], "ESR1": [10.6, 6.21]})
    >>> df.group_by("ER_status").summarise(ESR1=MeanAggregation("ESR1")).to_table().to_pydict()
    {'ER_status': ['pos', 'neg'], 'ESR1': [10.6, 6.21]}
    """

    def __init__(self, node_or_table: QueryPlanNode | Table | pa.Table | pa.RecordBatch) -> None:
        """
        :param node_or_table: A compute engine node expected to emit
                              the data for the dataframe or a table.
        """
        if isinstance(node_or_table, (Table, pa.Table, pa.RecordBatch)):
            node_or_table = TableDataSource(node_or_table)

        if not isinstance(node_or_table, QueryPlanNode):
            raise ValueError("Invalid input, expected a QueryPlanNode or a Table")

        self.node = node_or_table

    @classmethod
    def from_pydict(cls, data: Mapping[str, Sequence[Any]], **options: Any) -> Self:
        """Create a Dataframe from a column oriented mapping.

        Accepts the same options as :meth:`Table.from_pydict`.
        """
        return cls(Table.from_pydict(data, **options))

    @classmethod
    def from_rows(cls, rows: Sequence[Mapping[str, Any]], **options: Any) -> Self:
        """Create a Dataframe from a sequence of rows."""
        return cls(Table.from_rows(rows, **options))

    def filter(self, expression: Expression) -> Self:
        """Apply a filter to the data and return a new Dataframe.

        The returned dataframe will only contain the data that
        matches the filter predicate.

        :param expression: The expression representing the predicate.
                           for example `A > B`.
        """
        return self.__class__(FilterNode(expression, self.node))

    def select(self, *columns: str) -> Self:
        """Keep only the given columns, in the given order."""
        return self.__class__(ProjectNode(list(columns), None, self.node))

    def mutate(self, **expressions: Expression) -> Self:
        """Add new columns, or replace existing ones, computed by expressions.

        Expressions are computed in order, so they can
        refer to the columns added by the previous ones.
        """
        return self.__class__(ProjectNode(None, expressions, self.node))

    def arrange(self, *columns: str, descending: bool | Sequence[bool] = False) -> Self:
        """Sort the rows by the given columns.

        :param descending: Sort all the columns in descending order,
                           or a list with the order of each column.
        """
        if isinstance(descending, bool):
            descending = [descending] * len(columns)
        return self.__class__(SortNode(list(columns), list(descending), self.node))

    def head(self, n: int = 6) -> Self:
        """Keep only the first ``n`` rows."""
        return self.__class__(PaginateNode(0, n, self.node))

    def distinct(self, *columns: str, keep_all: bool = False) -> Self:
        """Keep only the first row of each distinct combination of values.

        When no columns are provided, whole rows are compared.
        """
        return self.__class__(DistinctNode(list(columns) or None, self.node, keep_all=keep_all))

    def group_by(self, *columns: str, sort: bool | None = None) -> "GroupedDataframe":
        """Group the rows by the given columns, to summarise each group."""
        return GroupedDataframe(self, list(columns), sort=sort)

    def summarise(self, aggregations: Mapping[str, Any] | None = None, **named: Any) -> Self:
        """Reduce the whole data to a single row of summaries.

        Reductions can be provided as a mapping or as keyword arguments
        in the form ``name=Aggregation``.
        """
        return self.__class__(AggregateNode([], {**(aggregations or {}), **named}, self.node))

    summarize = summarise

    def count(self, *columns: str, name: str = "n", sort: bool | None = None) -> Self:
        """Count the rows for each combination of values of the columns."""
        if not columns:
            return self.summarise({name: CountAggregation()})
        return self.group_by(*columns, sort=sort).count(name=name)

    def join(
        self,
        other: "Dataframe | Table",
        by: Any,
        how: str = "inner",
        **options: Any,
    ) -> Self:
        """Join with another dataframe.

        :param other: The dataframe or table to join with.
        :param by: The join keys, as accepted by :class:`JoinSpec`.
        :param how: The join policy: inner, left, right, full, semi or anti.
        :param options: ``suffixes`` and ``na_matches`` for the :class:`JoinSpec`.
        """
        if not isinstance(other, Dataframe):
            other = Dataframe(other)
        spec = JoinSpec(by, how, **options)
        return self.__class__(JoinNode(spec, self.node, other.node))

    def inner_join(self, other: "Dataframe | Table", by: Any, **options: Any) -> Self:
        return self.join(other, by, "inner", **options)

    def left_join(self, other: "Dataframe | Table", by: Any, **options: Any) -> Self:
        return self.join(other, by, "left", **options)

    def right_join(self, other: "Dataframe | Table", by: Any, **options: Any) -> Self:
        return self.join(other, by, "right", **options)

    def full_join(self, other: "Dataframe | Table", by: Any, **options: Any) -> Self:
        return self.join(other, by, "full", **options)

    def semi_join(self, other: "Dataframe | Table", by: Any, **options: Any) -> Self:
        return self.join(other, by, "semi", **options)

    def anti_join(self, other: "Dataframe | Table", by: Any, **options: Any) -> Self:
        return self.join(other, by, "anti", **options)

    def collect(self) -> Self:
        """Collect all data of the dataframe in memory.

        Returns a new Dataframe that has all data from the
        previous dataframe eagerly loaded in memory.
        """
        return self.__class__(self.to_table())

    def to_table(self) -> Table:
        """Collect all the data and return a Table."""
        return Table.from_batches(self.node.batches())

    def to_arrow(self) -> pa.Table:
        """Collect all the data and return a pyarrow.Table"""
        return self.to_table().to_arrow()

    def __repr__(self) -> str:
        return f"Dataframe({self.node})"

    def __str__(self) -> str:
        return str(self.to_table())


class GroupedDataframe:
    """A Dataframe whose rows are grouped by the values of some columns.

    Only provides the operations that make sense on groups,
    which always give back a regular :class:`Dataframe`
    with one row per group.
    """

    def __init__(self, dataframe: Dataframe, keys: list[str], sort: bool | None = None) -> None:
        """
        :param dataframe: The dataframe whose rows are grouped.
        :param keys: The columns to group by.
        :param sort: Sort the groups by key instead of keeping the order
                     in which they first appear.
        """
        self.dataframe = dataframe
        self.keys = keys
        self.sort = sort

    def __repr__(self) -> str:
        return f"GroupedDataframe(keys={self.keys}, {self.dataframe.node})"

    def summarise(self, aggregations: Mapping[str, Any] | None = None, **named: Any) -> Dataframe:
        """Compute the reductions for each group."""
        return self.dataframe.__class__(
            AggregateNode(
                self.keys,
                {**(aggregations or {}), **named},
                self.dataframe.node,
                sort=self.sort,
            )
        )

    summarize = summarise

    def count(self, name: str = "n") -> Dataframe:
        """Number of rows in each group."""
        return self.summarise({name: CountAggregation()})
