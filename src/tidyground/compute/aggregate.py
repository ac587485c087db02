"""Reductions and the aggregations built on them.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the data stored in datasets.

The aggregator is in charge of computing those statistics
for each group of rows and projecting them as new
columns of a result table with one row per group.

For example, given the following data::

    city, shop, n_employees
    New York, Shop A, 10
    New York, Shop B, 15
    Los Angeles, Shop C, 8
    Los Angeles, Shop D, 12
    New York, Shop E, 20

We could group by city and compute the sum of the employees
to get::

    city, total_employees
    New York, 45
    Los Angeles, 20

Missing values
==============

The numeric summaries (``sum``, ``mean``, ``min``, ``max``, ``median``, ``sd``)
give back a missing value as soon as any of the values they reduce is missing,
unless they are created with ``na_rm=True``, in which case missing values are
discarded before reducing. If nothing is left to reduce, the result is missing.

``count`` always reports the number of rows in the group,
independently from missing values.

Reducing predicates
===================

Reductions accept an expression in place of a column name.
The expression is evaluated on every row before grouping,
and true/false values are reduced as 1/0, so summing
``is_missing(col("x"))`` counts the missing values of ``x``
while averaging it gives the proportion of missing values.
"""

import abc
import logging
from typing import Any, Iterable, Mapping, Sequence

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import EmptyReductionInput, IncompatibleKind, InvalidSpec
from .base import Expression, QueryPlanNode
from .grouping import Group, Grouping, group
from .table import ColumnKind, Table

__all__ = (
    "AGGREGATIONS",
    "AggregateNode",
    "Aggregation",
    "CountAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MedianAggregation",
    "MinAggregation",
    "NDistinctAggregation",
    "StdDevAggregation",
    "SumAggregation",
    "aggregate",
    "make_aggregation",
)

logger = logging.getLogger(__name__)

Source = str | Expression


class Aggregation(abc.ABC):
    """Base class for reductions.

    A reduction maps the values of a group to a single summary value.

    Every reduction reads its data from one or more sources,
    which are column names or expressions. The sources are evaluated
    once on the whole table by :meth:`evaluate`, and then
    the values of each group are handed to :meth:`reduce`.
    """

    #: The kinds of values the reduction can work on.
    kinds: frozenset[ColumnKind] = frozenset(ColumnKind)

    def __init__(self, *sources: Source, na_rm: bool = False) -> None:
        """
        :param sources: The columns or expressions to reduce.
        :param na_rm: Discard missing values before reducing.
        """
        self.sources = sources
        self.na_rm = na_rm

    def __str__(self) -> str:
        args = [str(source) for source in self.sources]
        if self.na_rm:
            args.append("na_rm=True")
        return f"{self.__class__.__name__}({', '.join(args)})"

    __repr__ = __str__

    def columns(self) -> list[str]:
        """Names of the columns read by the reduction."""
        names: dict[str, None] = {}
        for source in self.sources:
            if isinstance(source, Expression):
                names.update(dict.fromkeys(source.columns()))
            else:
                names[source] = None
        return list(names)

    def evaluate(self, data: pa.Table) -> list[pa.ChunkedArray]:
        """Compute the values of every source for all the rows of the table.

        Fails with :class:`IncompatibleKind` if the values are of a kind
        the reduction can't work on, and with :class:`InvalidSpec` if an
        expression fails on the data, like an integer division by zero.
        """
        inputs = []
        for source in self.sources:
            if isinstance(source, Expression):
                try:
                    values = source.apply(data)
                except (pa.ArrowNotImplementedError, pa.ArrowTypeError) as e:
                    raise IncompatibleKind(f"Unable to evaluate {source} for {self}: {e}")
                except pa.ArrowInvalid as e:
                    raise InvalidSpec(f"Unable to evaluate {source} for {self}: {e}")
            else:
                values = data.column(source)
            if isinstance(values, pa.Array):
                values = pa.chunked_array([values])
            if not isinstance(values, pa.ChunkedArray):
                raise InvalidSpec(f"{source} doesn't provide a value for each row")

            kind = ColumnKind.from_arrow_type(values.type)
            if kind not in self.kinds:
                raise IncompatibleKind(
                    f"{self} can't reduce {kind.value} values of {source}"
                )
            inputs.append(self.prepare(values))
        return inputs

    def prepare(self, values: pa.ChunkedArray) -> pa.ChunkedArray:
        """Convert the values of a source before they are reduced."""
        return values

    @abc.abstractmethod
    def output_type(self, input_types: list[pa.DataType]) -> pa.DataType:
        """The type of the values the reduction produces."""
        ...

    @abc.abstractmethod
    def reduce(self, values: list[pa.ChunkedArray], size: int) -> Any:
        """Reduce the values of a group to a single value.

        :param values: The values of each source restricted to the group.
        :param size: The number of rows of the group.
        """
        ...


class CountAggregation(Aggregation):
    """Number of rows in each group.

    Missing values don't influence the count, when a column
    is provided it's only verified that it exists.
    """

    def output_type(self, input_types: list[pa.DataType]) -> pa.DataType:
        return pa.int64()

    def reduce(self, values: list[pa.ChunkedArray], size: int) -> Any:
        return size


class NDistinctAggregation(Aggregation):
    """Number of distinct combinations of values in each group.

    A missing value counts as a value of its own,
    unless ``na_rm=True``, in which case rows with any
    missing value are ignored.
    """

    def __init__(self, *sources: Source, na_rm: bool = False) -> None:
        if not sources:
            raise InvalidSpec("n_distinct requires at least one column")
        super().__init__(*sources, na_rm=na_rm)

    def output_type(self, input_types: list[pa.DataType]) -> pa.DataType:
        return pa.int64()

    def reduce(self, values: list[pa.ChunkedArray], size: int) -> Any:
        rows = zip(*(v.to_pylist() for v in values))
        if self.na_rm:
            rows = (row for row in rows if None not in row)
        return len(set(rows))


class SummaryAggregation(Aggregation):
    """Base implementation for the numeric summaries like min, max, sum.

    Takes care of the missing values policy, so that subclasses
    only have to implement :meth:`_aggregate` for a set of values
    that doesn't contain any missing value.
    """

    kinds = frozenset({ColumnKind.NUMERIC, ColumnKind.BOOLEAN})

    def __init__(self, source: Source, *, na_rm: bool = False) -> None:
        super().__init__(source, na_rm=na_rm)

    def reduce(self, values: list[pa.ChunkedArray], size: int) -> Any:
        data = values[0]
        if data.null_count and not self.na_rm:
            return None
        data = data.drop_null()
        if len(data) == 0:
            raise EmptyReductionInput(f"{self} received no values to reduce")
        return self._aggregate(data)

    @abc.abstractmethod
    def _aggregate(self, data: pa.ChunkedArray) -> Any: ...


class ArithmeticAggregation(SummaryAggregation):
    """Summaries that reduce true/false values as 1/0."""

    def prepare(self, values: pa.ChunkedArray) -> pa.ChunkedArray:
        if pa.types.is_boolean(values.type):
            return values.cast(pa.int64())
        return values

    def output_type(self, input_types: list[pa.DataType]) -> pa.DataType:
        return pa.float64()


class SumAggregation(ArithmeticAggregation):
    """Compute the sum of an aggregated column."""

    def output_type(self, input_types: list[pa.DataType]) -> pa.DataType:
        if pa.types.is_integer(input_types[0]):
            return pa.int64()
        return pa.float64()

    def _aggregate(self, data: pa.ChunkedArray) -> Any:
        return pc.sum(data).as_py()


class MeanAggregation(ArithmeticAggregation):
    """Compute the mean of an aggregated column."""

    def _aggregate(self, data: pa.ChunkedArray) -> Any:
        return pc.mean(data).as_py()


class MedianAggregation(ArithmeticAggregation):
    """Compute the exact median of an aggregated column."""

    def _aggregate(self, data: pa.ChunkedArray) -> Any:
        return pc.quantile(data, q=0.5).to_pylist()[0]


class StdDevAggregation(ArithmeticAggregation):
    """Compute the sample standard deviation of an aggregated column.

    Groups with less than two values have no standard deviation.
    """

    def _aggregate(self, data: pa.ChunkedArray) -> Any:
        return pc.stddev(data, ddof=1).as_py()


class MinAggregation(SummaryAggregation):
    """Compute the min of an aggregated column."""

    kinds = frozenset({ColumnKind.NUMERIC, ColumnKind.BOOLEAN, ColumnKind.TEXT})

    def output_type(self, input_types: list[pa.DataType]) -> pa.DataType:
        return input_types[0]

    def _aggregate(self, data: pa.ChunkedArray) -> Any:
        return pc.min(data).as_py()


class MaxAggregation(MinAggregation):
    """Compute the max of an aggregated column."""

    def _aggregate(self, data: pa.ChunkedArray) -> Any:
        return pc.max(data).as_py()


AGGREGATIONS: dict[str, type[Aggregation]] = {
    "count": CountAggregation,
    "n": CountAggregation,
    "n_distinct": NDistinctAggregation,
    "sum": SumAggregation,
    "mean": MeanAggregation,
    "median": MedianAggregation,
    "sd": StdDevAggregation,
    "min": MinAggregation,
    "max": MaxAggregation,
}
"""Reductions that can be referenced by name."""


def make_aggregation(name: str, *sources: Source, **options: Any) -> Aggregation:
    """Create a reduction from its name.

    >>> make_aggregation("mean", "ESR1", na_rm=True)
    MeanAggregation(ESR1, na_rm=True)
    """
    try:
        aggregation_class = AGGREGATIONS[name]
    except KeyError:
        raise InvalidSpec(
            f"Unknown reduction {name!r}, available reductions: {sorted(AGGREGATIONS)}"
        ) from None
    try:
        return aggregation_class(*sources, **options)
    except TypeError as e:
        raise InvalidSpec(f"Invalid arguments for reduction {name!r}: {e}") from None


def _as_aggregation(output: str, value: Any) -> Aggregation:
    if isinstance(value, Aggregation):
        return value
    if isinstance(value, str):
        return make_aggregation(value)
    if isinstance(value, tuple) and value and isinstance(value[0], str):
        name, *sources = value
        options = {}
        if sources and isinstance(sources[-1], Mapping):
            options = dict(sources.pop())
        return make_aggregation(name, *sources, **options)
    raise InvalidSpec(f"Invalid reduction for {output!r}: {value!r}")


def normalize_aggregations(
    spec: Mapping[str, Any] | Iterable[tuple[str, Any]],
) -> list[tuple[str, Aggregation]]:
    """Validate an aggregation spec and resolve it to a list of reductions.

    An aggregation spec maps output column names to reductions, which can be
    :class:`Aggregation` instances, a reduction name like ``"n"``,
    or a tuple ``(name, *sources[, options])`` like
    ``("mean", "ESR1", {"na_rm": True})``.
    """
    items = spec.items() if isinstance(spec, Mapping) else spec
    aggregations = []
    seen = set()
    for item in items:
        try:
            output, value = item
        except (TypeError, ValueError):
            raise InvalidSpec(f"Invalid aggregation entry: {item!r}") from None
        if not isinstance(output, str) or not output:
            raise InvalidSpec(f"Invalid output column name: {output!r}")
        if output in seen:
            raise InvalidSpec(f"Duplicate output column name: {output!r}")
        seen.add(output)
        aggregations.append((output, _as_aggregation(output, value)))
    return aggregations


def aggregate(
    table: Table,
    groups: Grouping | None,
    spec: Mapping[str, Any] | Iterable[tuple[str, Any]],
) -> Table:
    """Compute the reductions of ``spec`` for every group of the table.

    The result has the grouping columns first, followed by one column
    for each reduction in ``spec``, and one row per group.
    When ``groups`` is ``None``, the whole table is reduced as a single group.

    Everything is validated before the first group is reduced,
    so errors never leave a partial result behind.

    >>> t = Table.from_pydict({"ER_status": ["pos", "neg"], "ESR1": [10.6, 6.21]})
    >>> aggregate(t, group(t, ["ER_status"]), {"ESR1": ("mean", "ESR1")}).to_pydict()
    {'ER_status': ['pos', 'neg'], 'ESR1': [10.6, 6.21]}
    """
    aggregations = normalize_aggregations(spec)

    if groups is None:
        keys: list[str] = []
        group_list = [Group((), pa.array(range(table.num_rows), type=pa.int64()))]
    else:
        keys = groups.keys
        group_list = list(groups)
        if groups.num_rows != table.num_rows:
            raise InvalidSpec(
                f"Groups were computed on {groups.num_rows} rows, "
                f"but the table has {table.num_rows} rows"
            )
    table.require_columns(keys, "grouping")
    clashing = [output for output, _ in aggregations if output in keys]
    if clashing:
        raise InvalidSpec(f"Aggregations can't replace grouping columns: {clashing}")

    data = table.to_arrow()
    prepared = []
    for output, aggregation in aggregations:
        table.require_columns(aggregation.columns(), f"aggregation {output!r}")
        inputs = aggregation.evaluate(data)
        output_type = aggregation.output_type([values.type for values in inputs])
        prepared.append((output, aggregation, inputs, output_type))

    results: dict[str, list[Any]] = {output: [] for output, *_ in prepared}
    for current in group_list:
        for output, aggregation, inputs, _ in prepared:
            slices = [values.take(current.indices) for values in inputs]
            try:
                value = aggregation.reduce(slices, len(current.indices))
            except EmptyReductionInput:
                value = None
            results[output].append(value)

    # The key values of each group are those of its first row.
    first_rows = [current.indices[0].as_py() for current in group_list if keys]
    key_data = data.select(keys).take(pa.array(first_rows, type=pa.int64()))

    names = keys + [output for output, *_ in prepared]
    arrays = [key_data.column(key) for key in keys] + [
        pa.array(results[output], type=output_type)
        for output, _, _, output_type in prepared
    ]
    logger.debug(
        "Aggregated %d rows into %d groups by %s", table.num_rows, len(group_list), keys
    )
    return Table(pa.Table.from_arrays(arrays, names=names))


class AggregateNode(QueryPlanNode):
    """Group data and compute aggregations.

    >>> from tidyground.compute import TableDataSource
    >>> data = Table.from_pydict({
    ...    'city': ['New York', 'New York', 'Los Angeles', 'Los Angeles', 'New York'],
    ...    'shop': ['Shop A', 'Shop B', 'Shop C', 'Shop D', 'Shop E'],
    ...    'n_employees': [10, 15, 8, 12, 20]
    ... })
    >>> aggregate = AggregateNode(["city"], {"total_employees": SumAggregation("n_employees")}, TableDataSource(data))
    >>> next(aggregate.batches()).to_pydict()
    {'city': ['New York', 'Los Angeles'], 'total_employees': [45, 20]}
    """

    def __init__(
        self,
        keys: Sequence[str],
        aggregations: Mapping[str, Any],
        child: QueryPlanNode,
        sort: bool | None = None,
    ) -> None:
        """
        :param keys: The columns to group by, no columns means the whole data is one group.
        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
        :param child: The child node that will provide the data to aggregate.
        :param sort: If the groups should be sorted by key.
        """
        self.keys = list(keys)
        self.aggregations = aggregations
        self.child = child
        self.sort = sort

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Group the data of the child node and compute the aggregations.

        Aggregations need to see all the rows of a group
        before they can be computed, so all the data of the
        child node is accumulated in memory.
        """
        table = Table.from_batches(self.child.batches())
        groups = group(table, self.keys, sort=self.sort) if self.keys else None
        yield from aggregate(table, groups, self.aggregations).to_batches()
