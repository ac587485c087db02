import pyarrow as pa
import pyarrow.compute as pc
import pytest

from tidyground.compute import FunctionCallExpression, TableDataSource, col, is_missing, lit
from tidyground.compute.filtering import FilterNode
from tidyground.errors import UnknownColumn

PATIENTS = pa.record_batch(
    {
        "ER_status": ["pos", "neg", None, "pos", "neg"],
        "ESR1": [10.5, 6.25, 8.0, None, 5.5],
    }
)


def test_filter_node_str():
    predicate = FunctionCallExpression(pc.equal, col("ER_status"), lit("pos"))
    filter_node = FilterNode(predicate, TableDataSource(PATIENTS))
    assert str(filter_node) == (
        "FilterNode(filter=pyarrow.compute.equal(ColumnRef(ER_status),Literal('pos')), "
        "child=TableDataSource(columns=['ER_status', 'ESR1'], rows=5))"
    )


def test_filter_discards_missing_predicates():
    predicate = FunctionCallExpression(pc.equal, col("ER_status"), lit("pos"))
    result = next(FilterNode(predicate, TableDataSource(PATIENTS)).batches())
    assert result.to_pydict() == {"ER_status": ["pos", "pos"], "ESR1": [10.5, None]}


def test_filter_missing_values():
    result = next(FilterNode(is_missing(col("ESR1")), TableDataSource(PATIENTS)).batches())
    assert result.to_pydict() == {"ER_status": ["pos"], "ESR1": [None]}


def test_filter_nothing_matches():
    predicate = FunctionCallExpression(pc.greater, col("ESR1"), lit(100))
    batches = list(FilterNode(predicate, TableDataSource(PATIENTS)).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema.names == ["ER_status", "ESR1"]


def test_filter_unknown_column():
    predicate = FunctionCallExpression(pc.greater, col("PGR"), lit(1))
    with pytest.raises(UnknownColumn) as err:
        list(FilterNode(predicate, TableDataSource(PATIENTS)).batches())
    assert err.value.name == "PGR"
    assert "ER_status" in str(err.value)
