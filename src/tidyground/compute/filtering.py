"""Query plan nodes that implement filtering of rows.

A common request in analyses is to filter the data to
pick only the rows that respect a specific condition,
like picking only the patients with a positive
estrogen receptor status.

This module implements the basic filtering capabilities.
"""

from ..errors import UnknownColumn
from .base import Expression, QueryPlanNode


class FilterNode(QueryPlanNode):
    """Filter data based on a predicate expression.

    The filter expects an expression that when applied
    to the batch of data being filtered returns ``true``
    or ``false`` for each row in the data to mark which
    rows have to be preserved and which rows have to be discarded.

    Rows for which the predicate is missing are discarded too,
    as it's unknown if they respect the condition.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidyground.compute import col, lit, FunctionCallExpression, TableDataSource
    >>> data = pa.record_batch({"values": [1, 2, None, 4, 5]})
    >>> # predicate is a function that returns true for values greater than 3
    >>> predicate = FunctionCallExpression(pc.greater, col("values"), lit(3))
    >>> predicate.apply(data).to_pylist()
    [False, False, None, True, True]
    >>> next(FilterNode(predicate, TableDataSource(data)).batches()).to_pydict()
    {'values': [4, 5]}
    """

    def __init__(self, expression: Expression, child: QueryPlanNode) -> None:
        """
        :param expression: The predicate expression to filter with.
        :param child: The node emitting the data to be filtered.
        """
        self.expression = expression
        self.child = child

    def __str__(self) -> str:
        return f"FilterNode(filter={self.expression}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the filtering to the child node.

        For each recordbatch yielded by the child node,
        apply the expression and get back a mask
        (an array of only true/false/missing values).

        Based on the mask filter the rows of the batch
        and return only those matching the filter.
        """
        for batch in self.child.batches():
            for name in self.expression.columns():
                if name not in batch.schema.names:
                    raise UnknownColumn(name, batch.schema.names, "filter")
            mask = self.expression.apply(batch)
            yield batch.filter(mask)
