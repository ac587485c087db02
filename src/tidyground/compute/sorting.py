"""Query plan nodes that perform sorting of data.

When computing ranks or looking for most significant
values, it's often necessary to sort the data based
on one or more columns.

This module implements the sorting capabilities.
"""

from typing import Sequence

import pyarrow.compute as pc

from ..errors import InvalidSpec
from .base import QueryPlanNode
from .table import Table


class SortNode(QueryPlanNode):
    """Sort data in-memory based on one or more columns.

    The node expects a list of columns and a list of
    sort directions. The data will be sorted based on
    the columns in the order they are provided.

    The sort directions are used to specify if the
    sorting should be ascending or descending.
    Missing values always end up last.

    >>> import pyarrow as pa
    >>> from tidyground.compute import TableDataSource
    >>> data = pa.record_batch({"values": [1, None, 3, 4, 5]})
    >>> # Sort the data in descending order
    >>> sort = SortNode(["values"], [True], TableDataSource(data))
    >>> next(sort.batches()).to_pydict()
    {'values': [5, 4, 3, 1, None]}
    """

    def __init__(
        self, keys: Sequence[str], descending: Sequence[bool], child: QueryPlanNode
    ) -> None:
        """
        :param keys: The columns to sort by in the order they should be sorted.
        :param descending: If each columns should be sorted in a descending order.
        :param child: The node emitting the data to be sorted.
        """
        if len(keys) != len(descending):
            raise InvalidSpec("Keys and descending must have the same length")
        if not keys:
            raise InvalidSpec("At least one column is required to sort")

        self.sorting = list(
            zip(keys, ("descending" if desc else "ascending" for desc in descending))
        )
        self.child = child

    def __str__(self) -> str:
        return f"SortNode(sorting={self.sorting}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Sort the data of the child node.

        Batches provided by child node are accumulated
        until they are all loaded in memory, then they
        are merged and sorted as an unique table.

        The sorting is stable, rows with the same
        keys keep their original order.
        """
        table = Table.from_batches(self.child.batches())
        table.require_columns([key for key, _ in self.sorting], "sorting")
        indices = pc.sort_indices(
            table.to_arrow(),
            sort_keys=[(key, order, "at_end") for key, order in self.sorting],
        )
        yield from table.take(indices).to_batches()
