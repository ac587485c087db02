"""The Table, the dataset every compute operation works on.

A Table is an ordered set of named columns that all share
the same number of rows. Each column holds values of a single kind:

* ``NUMERIC`` for integers and floating point numbers,
* ``TEXT`` for strings,
* ``BOOLEAN`` for true/false values,
* ``CATEGORICAL`` for values out of a small set of levels
  (what R users know as *factors*).

Any position of a column can hold a missing value instead,
which is represented by Arrow's validity bitmap and shows up
as ``None`` on the Python side. It's distinct from every valid
value, ``NaN`` included.

The data is stored in a :class:`pyarrow.Table` which is immutable,
so every operation on a Table returns a new Table and a Table
handed to one operation stays valid for any other one.

>>> t = Table.from_pydict({"name": ["Mick", "John"], "born": [1943, 1940]})
>>> t.schema()
[('name', <ColumnKind.TEXT: 'text'>), ('born', <ColumnKind.NUMERIC: 'numeric'>)]
>>> list(t.rows())
[{'name': 'Mick', 'born': 1943}, {'name': 'John', 'born': 1940}]
"""

import enum
from typing import Any, Iterable, Iterator, Mapping, NamedTuple, Sequence

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import IncompatibleKind, InvalidSpec, UnknownColumn
from ..utils.tabulate import tabulate

__all__ = ("Column", "ColumnKind", "Table")


class ColumnKind(enum.Enum):
    """The kind of values stored in a column."""

    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"
    CATEGORICAL = "categorical"

    @property
    def abbreviation(self) -> str:
        """Short name used when displaying tables, like ``<num>``."""
        return _ABBREVIATIONS[self]

    @classmethod
    def from_arrow_type(cls, datatype: pa.DataType) -> "ColumnKind":
        """Detect the kind of a column from its Arrow type.

        >>> ColumnKind.from_arrow_type(pa.float64())
        <ColumnKind.NUMERIC: 'numeric'>
        >>> ColumnKind.from_arrow_type(pa.dictionary(pa.int32(), pa.string()))
        <ColumnKind.CATEGORICAL: 'categorical'>
        """
        if pa.types.is_integer(datatype) or pa.types.is_floating(datatype):
            return cls.NUMERIC
        if pa.types.is_string(datatype) or pa.types.is_large_string(datatype):
            return cls.TEXT
        if pa.types.is_boolean(datatype):
            return cls.BOOLEAN
        if pa.types.is_dictionary(datatype):
            return cls.CATEGORICAL
        raise IncompatibleKind(f"Unsupported column type: {datatype}")


_ABBREVIATIONS = {
    ColumnKind.NUMERIC: "num",
    ColumnKind.TEXT: "chr",
    ColumnKind.BOOLEAN: "lgl",
    ColumnKind.CATEGORICAL: "fct",
}


class Column(NamedTuple):
    """A named column of a :class:`Table` and its kind."""

    name: str
    kind: ColumnKind
    values: pa.ChunkedArray

    def __len__(self) -> int:
        return len(self.values)

    def to_pylist(self) -> list[Any]:
        return self.values.to_pylist()


def _coerce(data: pa.ChunkedArray, kind: ColumnKind) -> pa.ChunkedArray:
    """Convert the data of a column to the requested kind."""
    current = data.type
    try:
        if kind is ColumnKind.NUMERIC:
            if pa.types.is_integer(current) or pa.types.is_floating(current):
                return data
            return data.cast(pa.float64())
        if kind is ColumnKind.TEXT:
            if pa.types.is_dictionary(current):
                data = data.cast(current.value_type)
            return data.cast(pa.string())
        if kind is ColumnKind.BOOLEAN:
            return data.cast(pa.bool_())
        if kind is ColumnKind.CATEGORICAL:
            if pa.types.is_dictionary(current):
                return data
            if pa.types.is_null(current):
                data = data.cast(pa.string())
            return pc.dictionary_encode(data)
    except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as e:
        raise IncompatibleKind(f"Can't convert {current} values to {kind.value}: {e}")
    raise InvalidSpec(f"Unknown column kind: {kind!r}")


class Table:
    """Immutable columnar dataset.

    Tables are usually created through one of the ``from_*``
    constructors, the constructor itself accepts a :class:`pyarrow.Table`
    or :class:`pyarrow.RecordBatch`.

    The kind of each column is decided when the table is built,
    columns of types that don't map to a :class:`ColumnKind`
    are refused, while columns only made of missing values
    become numeric.
    """

    def __init__(
        self,
        data: pa.Table | pa.RecordBatch,
        kinds: Mapping[str, ColumnKind | str] | None = None,
    ) -> None:
        """
        :param data: The Arrow data of the table.
        :param kinds: Force the kind of some columns, in the form of
                      ``{"column_name": ColumnKind.CATEGORICAL}``.
        """
        if isinstance(data, pa.RecordBatch):
            data = pa.Table.from_batches([data])
        if not isinstance(data, pa.Table):
            raise InvalidSpec(
                f"Invalid input, expected a pyarrow Table or RecordBatch, got {type(data)}"
            )

        names = data.column_names
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise InvalidSpec(f"Column names must be unique, duplicated: {duplicates}")

        kinds = dict(kinds or {})
        unknown = [name for name in kinds if name not in names]
        if unknown:
            raise UnknownColumn(unknown[0], names)

        columns = []
        for name in names:
            column = data.column(name)
            if name in kinds:
                column = _coerce(column, ColumnKind(kinds[name]))
            elif pa.types.is_null(column.type):
                # A column of only missing values has no type of its own.
                column = column.cast(pa.float64())
            # Refuse unsupported types right away.
            ColumnKind.from_arrow_type(column.type)
            columns.append(column)

        if columns:
            data = pa.Table.from_arrays(columns, names=names)
        # Tables without columns still know their number of rows.
        self._data = data.unify_dictionaries()

    @classmethod
    def from_pydict(
        cls,
        data: Mapping[str, Sequence[Any]],
        kinds: Mapping[str, ColumnKind | str] | None = None,
    ) -> "Table":
        """Build a Table from a column oriented mapping.

        >>> Table.from_pydict({"x": [1, None, 3]}).to_pydict()
        {'x': [1, None, 3]}
        """
        lengths = {name: len(values) for name, values in data.items()}
        if len(set(lengths.values())) > 1:
            raise InvalidSpec(f"All columns must have the same length, got {lengths}")
        try:
            arrow_data = pa.table(
                {
                    name: values
                    if isinstance(values, (pa.Array, pa.ChunkedArray))
                    else pa.array(values)
                    for name, values in data.items()
                }
            )
        except (pa.ArrowInvalid, pa.ArrowTypeError) as e:
            raise IncompatibleKind(f"Columns must contain values of a single kind: {e}")
        return cls(arrow_data, kinds=kinds)

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Mapping[str, Any]],
        kinds: Mapping[str, ColumnKind | str] | None = None,
    ) -> "Table":
        """Build a Table from a row oriented sequence of mappings.

        Columns are ordered by first appearance, rows lacking
        a column get a missing value for it.

        >>> Table.from_rows([{"name": "John", "plays": "guitar"}, {"name": "Ringo"}]).to_pydict()
        {'name': ['John', 'Ringo'], 'plays': ['guitar', None]}
        """
        rows = list(rows)
        names: dict[str, None] = {}
        for row in rows:
            names.update(dict.fromkeys(row))
        return cls.from_pydict(
            {name: [row.get(name) for row in rows] for name in names}, kinds=kinds
        )

    @classmethod
    def from_arrow(
        cls,
        data: pa.Table | pa.RecordBatch,
        kinds: Mapping[str, ColumnKind | str] | None = None,
    ) -> "Table":
        """Build a Table from Arrow data."""
        return cls(data, kinds=kinds)

    @classmethod
    def from_batches(cls, batches: Iterable[pa.RecordBatch]) -> "Table":
        """Build a Table out of the batches emitted by a query plan node."""
        batches = list(batches)
        if not batches:
            raise InvalidSpec("At least one record batch is required to build a Table")
        return cls(pa.Table.from_batches(batches))

    @property
    def column_names(self) -> list[str]:
        return self._data.column_names

    @property
    def num_rows(self) -> int:
        return self._data.num_rows

    @property
    def num_columns(self) -> int:
        return self._data.num_columns

    @property
    def kinds(self) -> dict[str, ColumnKind]:
        """The kind of each column, by column name."""
        return {name: kind for name, kind in self.schema()}

    def __len__(self) -> int:
        return self.num_rows

    def schema(self) -> list[tuple[str, ColumnKind]]:
        """The ``(name, kind)`` of every column in order."""
        return [
            (field.name, ColumnKind.from_arrow_type(field.type))
            for field in self._data.schema
        ]

    def require_columns(self, names: Iterable[str], context: str = "table") -> None:
        """Fail with :class:`UnknownColumn` if any of the names is not a column."""
        available = self.column_names
        for name in names:
            if name not in available:
                raise UnknownColumn(name, available, context)

    def column(self, name: str) -> Column:
        """Get a column by name."""
        self.require_columns([name])
        values = self._data.column(name)
        return Column(name, ColumnKind.from_arrow_type(values.type), values)

    def columns(self) -> list[Column]:
        return [self.column(name) for name in self.column_names]

    def rows(self) -> Iterator[dict[str, Any]]:
        """Iterate over the rows as dictionaries, missing values are ``None``."""
        for batch in self._data.to_batches():
            yield from batch.to_pylist()

    def take(self, indices: Sequence[int | None] | pa.Array) -> "Table":
        """New table made of the rows at the given positions.

        A ``None`` position produces a row of missing values.
        """
        if not isinstance(indices, (pa.Array, pa.ChunkedArray)):
            indices = pa.array(indices, type=pa.int64())
        return self.__class__(self._data.take(indices))

    def select(self, names: Sequence[str]) -> "Table":
        """New table with only the given columns, in the given order."""
        self.require_columns(names)
        return self.__class__(self._data.select(list(names)))

    def filter(self, mask: pa.Array | pa.ChunkedArray) -> "Table":
        """New table with only the rows where mask is true.

        Rows where the mask is missing are discarded.
        """
        return self.__class__(self._data.filter(mask))

    def to_arrow(self) -> pa.Table:
        return self._data

    def to_pydict(self) -> dict[str, list[Any]]:
        return self._data.to_pydict()

    def to_batches(self) -> list[pa.RecordBatch]:
        """Record batches with the data of the table.

        Always provides at least one batch, even for an empty table,
        so that consumers can always know the schema of the data.
        """
        batches = self._data.to_batches()
        if not batches:
            schema = self._data.schema
            batches = [
                pa.RecordBatch.from_arrays(
                    [pa.array([], type=field.type) for field in schema], schema=schema
                )
            ]
        return batches

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self._data.equals(other._data)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Table(columns={self.column_names}, rows={self.num_rows})"

    def __str__(self) -> str:
        return tabulate(self)
