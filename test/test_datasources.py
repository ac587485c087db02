import pyarrow as pa
import pytest

from tidyground.compute import ColumnKind, Table
from tidyground.compute.datasources import TableDataSource

# Mock data for testing
MOCK_PYARROW_TABLE = pa.table({"col1": [1, 4, 7], "col2": [2, 5, 8], "col3": ["3", "6", "9"]})


@pytest.mark.parametrize(
    "init_args, expected_str",
    [
        (
            (MOCK_PYARROW_TABLE,),
            "TableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
        (
            (MOCK_PYARROW_TABLE.to_batches()[0],),
            "TableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
        (
            (Table.from_arrow(MOCK_PYARROW_TABLE),),
            "TableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
    ],
)
def test_init_and_str(init_args, expected_str):
    data_source = TableDataSource(*init_args)
    assert str(data_source) == expected_str


@pytest.mark.parametrize(
    "init_args, expected_batches",
    [
        ((MOCK_PYARROW_TABLE,), MOCK_PYARROW_TABLE.to_batches()),
        ((MOCK_PYARROW_TABLE.to_batches()[0],), MOCK_PYARROW_TABLE.to_batches()),
        ((Table.from_arrow(MOCK_PYARROW_TABLE),), MOCK_PYARROW_TABLE.to_batches()),
    ],
)
def test_batches(init_args, expected_batches):
    data_source = TableDataSource(*init_args)
    batches = list(data_source.batches())
    assert len(batches) == len(expected_batches)
    for batch, expected_batch in zip(batches, expected_batches):
        assert batch.equals(expected_batch)


def test_batches_of_empty_table():
    data_source = TableDataSource(MOCK_PYARROW_TABLE.slice(0, 0))
    batches = list(data_source.batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema.equals(MOCK_PYARROW_TABLE.schema)


def test_poll_schema():
    data_source = TableDataSource(MOCK_PYARROW_TABLE)
    assert data_source.poll_schema() == [
        ("col1", ColumnKind.NUMERIC),
        ("col2", ColumnKind.NUMERIC),
        ("col3", ColumnKind.TEXT),
    ]
