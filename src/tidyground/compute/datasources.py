"""Query Plan nodes that provide data

The datasource nodes are the leaves of a query plan,
they take data that was already loaded by the caller and
forward it in the format accepted by the compute engine
to the next node in the plan.

Reading files is left to dedicated libraries, once the data
is available as a :class:`tidyground.compute.Table` or
as Arrow data it can be used in a query plan.
"""

from abc import abstractmethod

import pyarrow as pa

from .base import QueryPlanNode
from .table import ColumnKind, Table


class DataSourceNode(QueryPlanNode):
    """Base class for nodes that provide data to a query plan."""

    @abstractmethod
    def poll_schema(self) -> list[tuple[str, ColumnKind]]:
        """Poll the columns of the data source and their kind."""
        ...


class TableDataSource(DataSourceNode):
    """Provide the data of an in-memory Table.

    Given a :class:`tidyground.compute.Table`, a :class:`pyarrow.Table`
    or a :class:`pyarrow.RecordBatch` object,
    allow to use its data in a query plan.
    """

    def __init__(self, table: Table | pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The table or recordbatch with the data to read.
        """
        if not isinstance(table, Table):
            table = Table.from_arrow(table)
        self.table = table

    def __str__(self) -> str:
        return f"TableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the data contained in the Table for consumption by other nodes."""
        yield from self.table.to_batches()

    def poll_schema(self) -> list[tuple[str, ColumnKind]]:
        """Poll the schema of the Table."""
        return self.table.schema()
