import pyarrow as pa
import pyarrow.compute as pc
import pytest

from tidyground.compute import (
    FunctionCallExpression,
    TableDataSource,
    col,
    lit,
    is_missing,
)
from tidyground.compute.selection import DistinctNode, ProjectNode, distinct
from tidyground.compute.table import Table
from tidyground.errors import InvalidSpec, UnknownColumn


@pytest.fixture
def mock_data():
    """Create a mock PyArrow Table for testing."""
    data = {"a": [1, 2, 3], "b": [4, 5, 6], "c": [7, 8, 9]}
    table = pa.table(data)
    return table


def test_init_and_str(mock_data):
    """Test the initialization and string representation of ProjectNode."""
    expressions = {"sum_ab": FunctionCallExpression(pc.add, col("a"), col("b"))}
    project_node = ProjectNode(
        ["a", "b"], expressions, TableDataSource(mock_data)
    )
    assert (
        str(project_node)
        == "ProjectNode(select=['a', 'b'], project={'sum_ab': pyarrow.compute.add(ColumnRef(a),ColumnRef(b))}, child=TableDataSource(columns=['a', 'b', 'c'], rows=3))"
    )


def test_select_columns(mock_data):
    """Test selecting specific columns."""
    project_node = ProjectNode(["a", "b"], {}, TableDataSource(mock_data))
    batches = list(project_node.batches())
    assert len(batches) == 1
    batch = batches[0]
    assert batch.num_columns == 2
    assert batch.column_names == ["a", "b"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [4, 5, 6]


def test_project_columns(mock_data):
    """Test projecting new columns using expressions."""
    expressions = {"sum_ab": FunctionCallExpression(pc.add, col("a"), col("b"))}
    project_node = ProjectNode(["a"], expressions, TableDataSource(mock_data))
    batches = list(project_node.batches())
    assert len(batches) == 1
    batch = batches[0]
    assert batch.num_columns == 2
    assert batch.column_names == ["a", "sum_ab"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [5, 7, 9]


def test_select_and_project_columns(mock_data):
    """Test selecting specific columns and projecting new columns."""
    expressions = {"sum_ab": FunctionCallExpression(pc.add, col("a"), col("b"))}
    project_node = ProjectNode(
        ["a", "c"], expressions, TableDataSource(mock_data)
    )
    batches = list(project_node.batches())
    assert len(batches) == 1
    batch = batches[0]
    assert batch.num_columns == 3
    assert batch.column_names == ["a", "c", "sum_ab"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [7, 8, 9]
    assert batch.column(2).to_pylist() == [5, 7, 9]


def test_multiple_project_columns(mock_data):
    """Test projecting multiple new columns using expressions."""
    expressions = {
        "sum_ab": FunctionCallExpression(pc.add, col("a"), col("b")),
        "double_sum_ab": FunctionCallExpression(pc.multiply, col("sum_ab"), lit(2)),
    }
    project_node = ProjectNode(["a"], expressions, TableDataSource(mock_data))
    batches = list(project_node.batches())
    assert len(batches) == 1
    batch = batches[0]
    assert batch.num_columns == 3
    assert batch.column_names == ["a", "sum_ab", "double_sum_ab"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [5, 7, 9]
    assert batch.column(2).to_pylist() == [10, 14, 18]


def test_project_column_not_selected(mock_data):
    """Test projecting a column that depends on a column that wasn't selected."""
    expressions = {"sum_bc": FunctionCallExpression(pc.add, col("b"), col("c"))}
    project_node = ProjectNode(["a"], expressions, TableDataSource(mock_data))
    batches = list(project_node.batches())
    assert len(batches) == 1
    batch = batches[0]
    assert batch.num_columns == 2
    assert batch.column_names == ["a", "sum_bc"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [11, 13, 15]


def test_project_with_no_columns(mock_data):
    """Test projecting with no columns selected or projected."""
    project_node = ProjectNode([], {}, TableDataSource(mock_data))
    batches = list(project_node.batches())
    assert len(batches) == 1
    batch = batches[0]
    assert batch.num_columns == 0


def test_project_with_all_columns(mock_data):
    """Test projecting with all columns selected."""
    expressions = {"sum_ab": FunctionCallExpression(pc.add, col("a"), col("b"))}
    project_node = ProjectNode(
        ["a", "b", "c"], expressions, TableDataSource(mock_data)
    )
    batches = list(project_node.batches())
    assert len(batches) == 1
    batch = batches[0]
    assert batch.num_columns == 4
    assert batch.column_names == ["a", "b", "c", "sum_ab"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [4, 5, 6]
    assert batch.column(2).to_pylist() == [7, 8, 9]
    assert batch.column(3).to_pylist() == [5, 7, 9]


def test_project_replaces_existing_column(mock_data):
    """Test projecting a column that already exists keeps its position."""
    expressions = {"b": FunctionCallExpression(pc.multiply, col("b"), lit(10))}
    project_node = ProjectNode(None, expressions, TableDataSource(mock_data))
    batch = next(project_node.batches())
    assert batch.column_names == ["a", "b", "c"]
    assert batch.column(1).to_pylist() == [40, 50, 60]


def test_project_literal(mock_data):
    """Test projecting a constant value on every row."""
    project_node = ProjectNode(["a"], {"one": lit(1)}, TableDataSource(mock_data))
    batch = next(project_node.batches())
    assert batch.column_names == ["a", "one"]
    assert batch.column(1).to_pylist() == [1, 1, 1]


def test_project_missing_predicate():
    """Test projecting a flag of the missing values."""
    data = pa.record_batch({"x": [1, None, 3]})
    project_node = ProjectNode(None, {"x_missing": is_missing(col("x"))}, TableDataSource(data))
    batch = next(project_node.batches())
    assert batch.to_pydict() == {"x": [1, None, 3], "x_missing": [False, True, False]}


@pytest.mark.parametrize(
    "select,project",
    [
        (["d"], {}),
        (["a"], {"sum_ad": FunctionCallExpression(pc.add, col("a"), col("d"))}),
    ],
)
def test_project_unknown_column(mock_data, select, project):
    """Test referencing a column that doesn't exist."""
    project_node = ProjectNode(select, project, TableDataSource(mock_data))
    with pytest.raises(UnknownColumn) as err:
        list(project_node.batches())
    assert err.value.name == "d"
    assert err.value.available == ["a", "b", "c"]


PEOPLE = Table.from_pydict(
    {
        "name": ["John", "Paul", "John", "George", "Paul", None, None],
        "born": [1940, 1942, 1940, 1943, 1942, 1950, None],
    }
)


def test_distinct_all_columns():
    assert distinct(PEOPLE).to_pydict() == {
        "name": ["John", "Paul", "George", None, None],
        "born": [1940, 1942, 1943, 1950, None],
    }


def test_distinct_subset_of_columns():
    assert distinct(PEOPLE, ["name"]).to_pydict() == {
        "name": ["John", "Paul", "George", None]
    }
    assert distinct(PEOPLE, ["name"], keep_all=True).to_pydict() == {
        "name": ["John", "Paul", "George", None],
        "born": [1940, 1942, 1943, 1950],
    }


def test_distinct_is_idempotent():
    once = distinct(PEOPLE)
    assert distinct(once) == once
    assert distinct(once).num_rows <= PEOPLE.num_rows


def test_distinct_without_columns():
    assert distinct(PEOPLE, []).num_rows == 1
    assert distinct(PEOPLE.take([]), []).num_rows == 0


def test_distinct_errors():
    with pytest.raises(UnknownColumn):
        distinct(PEOPLE, ["surname"])
    with pytest.raises(InvalidSpec):
        distinct(PEOPLE, ["name", "name"])


def test_distinct_node():
    data = [
        pa.record_batch({"k": [1, 2, 1]}),
        pa.record_batch({"k": [3, 2]}),
    ]
    node = DistinctNode(["k"], TableDataSource(Table.from_batches(data)))
    assert str(node) == (
        "DistinctNode(columns=['k'], keep_all=False, TableDataSource(columns=['k'], rows=5))"
    )
    assert Table.from_batches(node.batches()).to_pydict() == {"k": [1, 2, 3]}


def test_distinct_nan_values():
    table = Table.from_pydict({"x": [float("nan"), 2.0, float("nan"), None, None]})
    result = distinct(table).column("x").to_pylist()
    assert len(result) == 3
    assert result[1:] == [2.0, None]
