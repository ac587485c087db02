"""The tidyground Compute Engine

The compute engine provides the :class:`Table`, the immutable
dataset every operation works on, and the operations themselves:
grouping, aggregating, joining, filtering, sorting and selecting.

The core operations are plain functions, each one takes
tables and returns a new table:

>>> from tidyground.compute import Table, group, aggregate, MeanAggregation
>>> data = Table.from_pydict({
...    "ER_status": ["pos", "neg", "pos"],
...    "ESR1": [10.5, 6.25, 9.5],
... })
>>> aggregate(data, group(data, ["ER_status"]), {"mean_ESR1": MeanAggregation("ESR1")}).to_pydict()
{'ER_status': ['pos', 'neg'], 'mean_ESR1': [10.0, 6.25]}

The same operations are available as query plan nodes,
so that they can be chained in a pipeline.
The engine is tightly bound to Apache Arrow,
thus each node will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution.

This allows to easily build compute pipelines like::

    (RecordBatch)-->Node1--(RecordBatch)-->Node2--(RecordBatch)-->...

The query plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a query plan requires to combine the nodes that we want
to be executed starting with one or more ``DataSource`` nodes as the
leaf nodes of a query:

>>> import pyarrow.compute as pc
>>> from tidyground.compute import col, TableDataSource
>>> from tidyground.compute import FilterNode, FunctionCallExpression
>>> data = Table.from_pydict({
...    "animals": ["Flamingo", "Horse", "Brittle stars", "Centipede"],
...    "n_legs": [2, 4, 5, 100]
... })
>>> query = FilterNode(
...     FunctionCallExpression(pc.greater_equal, col("n_legs"), 5),
...     child=TableDataSource(data)
... )
>>> for batch in query.batches():
...     print(batch.to_pydict())
{'animals': ['Brittle stars', 'Centipede'], 'n_legs': [5, 100]}
"""

from .aggregate import (
    AGGREGATIONS,
    AggregateNode,
    Aggregation,
    CountAggregation,
    MaxAggregation,
    MeanAggregation,
    MedianAggregation,
    MinAggregation,
    NDistinctAggregation,
    StdDevAggregation,
    SumAggregation,
    aggregate,
    make_aggregation,
)
from .base import ColumnRef, Expression, Literal, QueryPlanNode, col, lit
from .datasources import TableDataSource
from .expressions import FunctionCallExpression, is_missing
from .filtering import FilterNode
from .grouping import Group, Grouping, group
from .join import JoinNode, JoinPolicy, JoinSpec, join
from .pagination import PaginateNode
from .selection import DistinctNode, ProjectNode, distinct
from .sorting import SortNode
from .table import Column, ColumnKind, Table

__all__ = (
    "Table",
    "Column",
    "ColumnKind",
    "TableDataSource",
    "QueryPlanNode",
    "Expression",
    "FilterNode",
    "FunctionCallExpression",
    "is_missing",
    "col",
    "lit",
    "ColumnRef",
    "Literal",
    "PaginateNode",
    "SortNode",
    "ProjectNode",
    "DistinctNode",
    "distinct",
    "Group",
    "Grouping",
    "group",
    "AGGREGATIONS",
    "AggregateNode",
    "Aggregation",
    "aggregate",
    "make_aggregation",
    "CountAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MedianAggregation",
    "MinAggregation",
    "NDistinctAggregation",
    "StdDevAggregation",
    "SumAggregation",
    "JoinNode",
    "JoinPolicy",
    "JoinSpec",
    "join",
)
