"""Partition the rows of a table by the values of some columns.

Grouping is the first half of any "split-apply-combine"
analysis, like computing the mean expression of a gene
for each tumour status.

Given the following data::

    ER_status, ESR1
    pos, 10.6
    neg, 6.21
    pos, 9.8

grouping by ``ER_status`` gives two groups, each made
of the positions of its rows::

    ("pos",) -> [0, 2]
    ("neg",) -> [1]

Every row belongs to exactly one group, rows with a missing
value in the grouping columns form their own group,
with ``None`` as the key value.

Groups are emitted in the order the keys are first seen in the data,
unless ``sort=True`` is requested, in which case they are sorted by key
with missing keys last.
"""

import logging
from typing import Any, Iterator, NamedTuple, Sequence

import pyarrow as pa

from ..config import settings
from ..errors import InvalidSpec
from .table import Table

__all__ = ("Group", "GroupKey", "Grouping", "group", "first_occurrences", "key_tuples")

logger = logging.getLogger(__name__)

GroupKey = tuple[Any, ...]

# Tuples compare items by identity first, so keys holding this
# same object are equal even if NaN is not equal to itself.
_NAN = float("nan")


class Group(NamedTuple):
    """The key of a group and the positions of its rows."""

    key: GroupKey
    indices: pa.Int64Array


class Grouping(Sequence[Group]):
    """Ordered sequence of the groups of a table.

    Knows the names of the columns the table was grouped by,
    so that an aggregation can emit them as part of its result.
    """

    def __init__(self, keys: Sequence[str], groups: Sequence[Group], num_rows: int) -> None:
        """
        :param keys: The columns used to group the rows.
        :param groups: The groups in the order they should be emitted.
        :param num_rows: The number of rows of the grouped table.
        """
        self.keys = list(keys)
        self.groups = list(groups)
        self.num_rows = num_rows

    def __getitem__(self, index):
        return self.groups[index]

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[Group]:
        return iter(self.groups)

    def __repr__(self) -> str:
        return f"Grouping(keys={self.keys}, groups={len(self.groups)})"


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and value != value


def _key_sorter(key: GroupKey) -> tuple[tuple[bool, bool, Any], ...]:
    # Missing values can't be compared with anything, so they go last,
    # NaN goes right before them.
    return tuple(
        (value is None, _is_nan(value), 0 if value is None or _is_nan(value) else value)
        for value in key
    )


def _partition(rows: Iterator[GroupKey]) -> dict[GroupKey, list[int]]:
    """Map each distinct key to the positions where it appears.

    Python dictionaries preserve insertion order, so the keys
    end up in order of first appearance.
    """
    positions: dict[GroupKey, list[int]] = {}
    for row_index, key in enumerate(rows):
        positions.setdefault(key, []).append(row_index)
    return positions


def key_tuples(table: Table, columns: Sequence[str]) -> Iterator[GroupKey]:
    """The values of the given columns for each row, as tuples.

    Categorical values are provided as their level, so that they
    compare equal to the same text in another table.
    Every NaN is replaced by the same NaN object, as NaN never
    equals itself but identical values must share a key.
    """
    values = []
    for name in columns:
        column = table.column(name)
        pylist = column.to_pylist()
        if pa.types.is_floating(column.values.type):
            pylist = [_NAN if _is_nan(v) else v for v in pylist]
        values.append(pylist)
    return zip(*values)


def group(table: Table, columns: Sequence[str], sort: bool | None = None) -> Grouping:
    """Partition the rows of the table by the values of the given columns.

    >>> t = Table.from_pydict({"status": ["pos", "neg", "pos"], "ESR1": [10.6, 6.21, 9.8]})
    >>> [(g.key, g.indices.to_pylist()) for g in group(t, ["status"])]
    [(('pos',), [0, 2]), (('neg',), [1])]

    :param table: The table whose rows have to be grouped.
    :param columns: The names of the columns to group by.
    :param sort: Emit the groups sorted by key instead of by first appearance.
                 Defaults to ``settings.sort_groups``.
    """
    columns = list(columns)
    if not columns:
        raise InvalidSpec("At least one column is required to group a table")
    if len(set(columns)) != len(columns):
        raise InvalidSpec(f"Grouping columns must be unique, got {columns}")
    table.require_columns(columns, "grouping")
    if sort is None:
        sort = settings.sort_groups

    positions = _partition(key_tuples(table, columns))
    keys = list(positions)
    if sort:
        keys.sort(key=_key_sorter)

    groups = [Group(key, pa.array(positions[key], type=pa.int64())) for key in keys]
    logger.debug(
        "Grouped %d rows by %s into %d groups", table.num_rows, columns, len(groups)
    )
    return Grouping(columns, groups, table.num_rows)


def first_occurrences(table: Table, columns: Sequence[str]) -> list[int]:
    """Position of the first row of each distinct combination of values.

    Positions are provided in the order the combinations
    first appear in the table.
    """
    return [indices[0] for indices in _partition(key_tuples(table, columns)).values()]
