import pyarrow as pa
import pytest

from tidyground.compute import Column, ColumnKind, Table
from tidyground.errors import IncompatibleKind, InvalidSpec, UnknownColumn

TEST_DATA = {
    "gene": ["ESR1", "GATA3", "FOXA1"],
    "expression": [10.6, None, 7.2],
    "mutated": [True, False, None],
}


@pytest.fixture
def table():
    return Table.from_pydict(TEST_DATA)


def test_from_pydict_kinds(table):
    assert table.schema() == [
        ("gene", ColumnKind.TEXT),
        ("expression", ColumnKind.NUMERIC),
        ("mutated", ColumnKind.BOOLEAN),
    ]
    assert table.num_rows == 3
    assert table.num_columns == 3
    assert len(table) == 3


def test_from_rows_fills_missing_columns():
    table = Table.from_rows([{"name": "John", "plays": "guitar"}, {"name": "Ringo"}])
    assert table.column_names == ["name", "plays"]
    assert table.to_pydict() == {"name": ["John", "Ringo"], "plays": ["guitar", None]}


def test_from_arrow_record_batch():
    batch = pa.record_batch({"a": [1, 2]})
    assert Table.from_arrow(batch).to_pydict() == {"a": [1, 2]}


def test_forced_categorical_kind():
    table = Table.from_pydict({"status": ["pos", "neg", "pos"]}, kinds={"status": "categorical"})
    column = table.column("status")
    assert column.kind is ColumnKind.CATEGORICAL
    assert pa.types.is_dictionary(column.values.type)
    assert column.to_pylist() == ["pos", "neg", "pos"]


def test_forced_numeric_kind_on_text_fails():
    with pytest.raises(IncompatibleKind):
        Table.from_pydict({"x": ["a", "b"]}, kinds={"x": ColumnKind.NUMERIC})


def test_all_missing_column_is_numeric():
    table = Table.from_pydict({"x": [None, None]})
    assert table.kinds == {"x": ColumnKind.NUMERIC}
    assert table.to_pydict() == {"x": [None, None]}


def test_unsupported_type():
    with pytest.raises(IncompatibleKind):
        Table.from_arrow(pa.table({"x": pa.array([[1], [2]])}))


def test_mixed_values_in_column():
    with pytest.raises(IncompatibleKind):
        Table.from_pydict({"x": [1, "a"]})


def test_columns_of_different_length():
    with pytest.raises(InvalidSpec):
        Table.from_pydict({"a": [1, 2], "b": [1]})


def test_duplicate_column_names():
    data = pa.Table.from_arrays([pa.array([1]), pa.array([2])], names=["a", "a"])
    with pytest.raises(InvalidSpec):
        Table.from_arrow(data)


def test_unknown_column(table):
    with pytest.raises(UnknownColumn) as excinfo:
        table.column("missing")
    assert excinfo.value.name == "missing"
    assert "gene" in str(excinfo.value)
    # Also usable as a plain KeyError
    with pytest.raises(KeyError):
        table.select(["missing"])


def test_column(table):
    column = table.column("expression")
    assert isinstance(column, Column)
    assert column.name == "expression"
    assert column.kind is ColumnKind.NUMERIC
    assert len(column) == 3
    assert column.to_pylist() == [10.6, None, 7.2]


def test_rows(table):
    assert list(table.rows()) == [
        {"gene": "ESR1", "expression": 10.6, "mutated": True},
        {"gene": "GATA3", "expression": None, "mutated": False},
        {"gene": "FOXA1", "expression": 7.2, "mutated": None},
    ]


def test_take_with_missing_positions(table):
    result = table.take([2, None, 0])
    assert result.to_pydict() == {
        "gene": ["FOXA1", None, "ESR1"],
        "expression": [7.2, None, 10.6],
        "mutated": [None, None, True],
    }
    # The original table is untouched
    assert table.to_pydict() == TEST_DATA


def test_select_and_filter(table):
    result = table.select(["mutated", "gene"]).filter(pa.array([True, None, False]))
    assert result.to_pydict() == {"mutated": [True], "gene": ["ESR1"]}


def test_to_batches_of_empty_table():
    table = Table.from_pydict({"a": [1, 2]}).take([])
    batches = table.to_batches()
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema.names == ["a"]


def test_equality(table):
    assert table == Table.from_pydict(TEST_DATA)
    assert table != Table.from_pydict({"gene": ["ESR1"]})


def test_repr_and_str(table):
    assert repr(table) == "Table(columns=['gene', 'expression', 'mutated'], rows=3)"
    assert str(table).splitlines()[:2] == [
        "gene  | expression | mutated",
        "<chr> | <num>      | <lgl>",
    ]
