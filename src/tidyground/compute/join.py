"""Join two tables on the values of some key columns.

The join is implemented as a hash join: the rows of the right
table are indexed by the value of their keys, then each row
of the left table looks up the rows of the right table that
have the same key.

The policy of the join decides which pairs of rows survive:

=========  ==================================================================
Policy     Rows kept
=========  ==================================================================
``inner``  only the pairs of rows whose keys match.
``left``   every left row, unmatched ones get missing values on the right.
``right``  every right row, unmatched ones get missing values on the left.
``full``   every left row, plus the right rows that matched no left row.
``semi``   the left rows with at least one match, without the right columns.
``anti``   the left rows without any match, without the right columns.
=========  ==================================================================

When a left row matches more than one right row, a row for each
match is emitted.

>>> band = Table.from_pydict({"name": ["Mick", "John"]})
>>> instruments = Table.from_pydict({"name": ["John"], "plays": ["guitar"]})
>>> join(band, instruments, JoinSpec("name", "left")).to_pydict()
{'name': ['Mick', 'John'], 'plays': [None, 'guitar']}

Output columns
==============

The result has all the columns of the left table, followed by
the non key columns of the right table. Key columns of the right
table are dropped, as their values are the same as the left ones.

Columns that exist in both tables but are not keys are kept twice,
their names get a suffix (by default ``.x`` for the left one
and ``.y`` for the right one) to tell them apart.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import pyarrow as pa

from ..config import settings
from ..errors import IncompatibleKind, InvalidSpec
from .base import QueryPlanNode
from .grouping import key_tuples
from .table import ColumnKind, Table

__all__ = ("JoinNode", "JoinPolicy", "JoinSpec", "join")

logger = logging.getLogger(__name__)


class JoinPolicy(enum.Enum):
    """Which pairs of rows survive a join."""

    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"
    SEMI = "semi"
    ANTI = "anti"


def _normalize_on(on: Any) -> tuple[tuple[str, str], ...]:
    """Turn any supported way of expressing the join keys into pairs of names."""
    if isinstance(on, str):
        pairs = [(on, on)]
    elif isinstance(on, Mapping):
        pairs = list(on.items())
    else:
        pairs = []
        for item in on:
            if isinstance(item, str):
                pairs.append((item, item))
            elif isinstance(item, (tuple, list)) and len(item) == 2:
                pairs.append((item[0], item[1]))
            else:
                raise InvalidSpec(f"Invalid join key: {item!r}")

    for left_key, right_key in pairs:
        if not isinstance(left_key, str) or not isinstance(right_key, str):
            raise InvalidSpec(f"Join keys must be column names, got {left_key!r}, {right_key!r}")
    if not pairs:
        raise InvalidSpec("At least one pair of join keys is required")
    left_keys = [left_key for left_key, _ in pairs]
    right_keys = [right_key for _, right_key in pairs]
    if len(set(left_keys)) != len(left_keys) or len(set(right_keys)) != len(right_keys):
        raise InvalidSpec(f"Join keys must be unique, got {pairs}")
    return tuple(pairs)


@dataclass(frozen=True)
class JoinSpec:
    """How two tables have to be joined.

    The keys can be provided as a column name (same name in both tables),
    a list of names, a ``{left_name: right_name}`` mapping or a list
    of ``(left_name, right_name)`` pairs.

    >>> JoinSpec({"id": "user_id"}, "semi").on
    (('id', 'user_id'),)
    """

    on: Any
    policy: JoinPolicy | str = JoinPolicy.INNER
    suffixes: tuple[str, str] = field(default_factory=lambda: settings.join_suffixes)
    na_matches: bool = field(default_factory=lambda: settings.join_na_matches)

    def __post_init__(self) -> None:
        # frozen dataclass, normalized values have to be set through object.
        object.__setattr__(self, "on", _normalize_on(self.on))
        object.__setattr__(self, "suffixes", tuple(self.suffixes))
        try:
            object.__setattr__(self, "policy", JoinPolicy(self.policy))
        except ValueError:
            raise InvalidSpec(
                f"Unknown join policy {self.policy!r}, "
                f"available policies: {[p.value for p in JoinPolicy]}"
            ) from None
        if len(self.suffixes) != 2 or self.suffixes[0] == self.suffixes[1]:
            raise InvalidSpec(f"Two different suffixes are required, got {self.suffixes!r}")

    @property
    def left_keys(self) -> list[str]:
        return [left_key for left_key, _ in self.on]

    @property
    def right_keys(self) -> list[str]:
        return [right_key for _, right_key in self.on]

    def validate(self, left: Table, right: Table) -> None:
        """Verify that the keys exist and can be compared.

        Text and categorical keys are comparable with each other,
        any other kind is only comparable with itself.
        """
        left.require_columns(self.left_keys, "left table of join")
        right.require_columns(self.right_keys, "right table of join")
        left_kinds, right_kinds = left.kinds, right.kinds
        for left_key, right_key in self.on:
            if _comparable_kind(left_kinds[left_key]) != _comparable_kind(
                right_kinds[right_key]
            ):
                raise IncompatibleKind(
                    f"Can't join {left_kinds[left_key].value} column {left_key!r} "
                    f"with {right_kinds[right_key].value} column {right_key!r}"
                )


def _comparable_kind(kind: ColumnKind) -> ColumnKind:
    if kind is ColumnKind.CATEGORICAL:
        return ColumnKind.TEXT
    return kind


def _common_type(left_type: pa.DataType, right_type: pa.DataType) -> pa.DataType:
    """Type able to hold the key values coming from both tables."""
    if left_type == right_type:
        return left_type
    if pa.types.is_floating(left_type) or pa.types.is_floating(right_type):
        return pa.float64()
    if pa.types.is_integer(left_type) and pa.types.is_integer(right_type):
        return pa.int64()
    # Mixing text and categorical values.
    return pa.string()


def _output_names(left: Table, right: Table, spec: JoinSpec) -> tuple[list[str], list[str]]:
    """Names of the left and right columns in the joined table."""
    left_suffix, right_suffix = spec.suffixes
    left_keys, right_keys = set(spec.left_keys), set(spec.right_keys)
    right_columns = [c for c in right.column_names if c not in right_keys]
    clashing = set(left.column_names) & set(right_columns)

    left_names = [
        c + left_suffix if c in clashing and c not in left_keys else c
        for c in left.column_names
    ]
    right_names = [c + right_suffix if c in clashing else c for c in right_columns]

    names = left_names + right_names
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise InvalidSpec(
            f"Suffixes {spec.suffixes!r} produce duplicated column names: {duplicates}"
        )
    return left_names, right_names


def _match(
    left: Table, right: Table, spec: JoinSpec
) -> tuple[list[int], list[int | None], list[int]]:
    """Pair the rows of the two tables.

    Returns the left positions and the matching right positions
    (``None`` when a left row has no match) of the pairs to emit
    and the positions of the right rows that matched no left row.
    """
    policy = spec.policy

    # Index the right table by key, each key points to all
    # the rows that have it in the order they appear.
    index: dict[tuple, list[int]] = {}
    for row_index, key in enumerate(key_tuples(right, spec.right_keys)):
        if not spec.na_matches and None in key:
            continue
        index.setdefault(key, []).append(row_index)

    left_positions: list[int] = []
    right_positions: list[int | None] = []
    matched_right = [False] * right.num_rows
    for row_index, key in enumerate(key_tuples(left, spec.left_keys)):
        if not spec.na_matches and None in key:
            matches = []
        else:
            matches = index.get(key, [])

        if policy is JoinPolicy.SEMI:
            if matches:
                left_positions.append(row_index)
        elif policy is JoinPolicy.ANTI:
            if not matches:
                left_positions.append(row_index)
        elif matches:
            for match in matches:
                left_positions.append(row_index)
                right_positions.append(match)
                matched_right[match] = True
        elif policy in (JoinPolicy.LEFT, JoinPolicy.FULL):
            left_positions.append(row_index)
            right_positions.append(None)

    unmatched_right = []
    if policy in (JoinPolicy.RIGHT, JoinPolicy.FULL):
        unmatched_right = [i for i, matched in enumerate(matched_right) if not matched]
    return left_positions, right_positions, unmatched_right


def join(left: Table, right: Table, spec: JoinSpec) -> Table:
    """Join two tables according to a :class:`JoinSpec`.

    Rows are emitted in the order of the left table, multiple matches
    of the same left row in the order of the right table. Right and full joins
    emit the right rows that matched no left row at the end, in the order
    of the right table.

    Missing keys match each other unless ``na_matches=False``.
    """
    spec.validate(left, right)
    left_names, right_names = _output_names(left, right, spec)
    left_positions, right_positions, unmatched_right = _match(left, right, spec)
    logger.debug(
        "%s join of %d and %d rows emitted %d pairs and %d unmatched right rows",
        spec.policy.value,
        left.num_rows,
        right.num_rows,
        len(left_positions),
        len(unmatched_right),
    )

    left_data = left.to_arrow()
    left_indices = pa.array(left_positions, type=pa.int64())
    if spec.policy in (JoinPolicy.SEMI, JoinPolicy.ANTI):
        return Table(left_data.take(left_indices))

    right_data = right.to_arrow()
    right_keys = set(spec.right_keys)
    right_columns = [c for c in right.column_names if c not in right_keys]
    right_indices = pa.array(right_positions, type=pa.int64())

    # Key columns of the left table need to also hold
    # the key values of the right rows that matched nothing.
    key_types = {}
    if unmatched_right:
        key_types = {
            left_key: _common_type(
                left_data.column(left_key).type, right_data.column(right_key).type
            )
            for left_key, right_key in spec.on
        }

    names = left_names + right_names
    matched = pa.Table.from_arrays(
        [
            _cast(left_data.column(c).take(left_indices), key_types.get(c))
            for c in left.column_names
        ]
        + [right_data.column(c).take(right_indices) for c in right_columns],
        names=names,
    )
    if not unmatched_right:
        return Table(matched)

    # Rows only existing in the right table, their left side is all missing
    # apart from the keys, which take the values of the right keys.
    right_only_indices = pa.array(unmatched_right, type=pa.int64())
    right_key_of = dict(spec.on)
    right_only = pa.Table.from_arrays(
        [
            _cast(
                right_data.column(right_key_of[c]).take(right_only_indices),
                key_types[c],
            )
            if c in right_key_of
            else pa.nulls(len(unmatched_right), type=left_data.column(c).type)
            for c in left.column_names
        ]
        + [right_data.column(c).take(right_only_indices) for c in right_columns],
        names=names,
    )
    return Table(pa.concat_tables([matched, right_only]).combine_chunks())


def _cast(values: pa.ChunkedArray, datatype: pa.DataType | None) -> pa.ChunkedArray:
    if datatype is None or values.type == datatype:
        return values
    if pa.types.is_dictionary(values.type):
        values = values.cast(values.type.value_type)
    return values.cast(datatype)


class JoinNode(QueryPlanNode):
    """Join the data of two child nodes.

    Joining requires all the rows of both children,
    so the data is accumulated in memory before
    the join is performed. Not suitable for large datasets.

    >>> from tidyground.compute import TableDataSource
    >>> left = TableDataSource(Table.from_pydict({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
    >>> right = TableDataSource(Table.from_pydict({"id": [3, 2], "age": [25, 30]}))
    >>> join_node = JoinNode(JoinSpec("id"), left, right)
    >>> next(join_node.batches()).to_pydict()
    {'id': [2, 3], 'name': ['Bob', 'Charlie'], 'age': [30, 25]}
    """

    def __init__(
        self, spec: JoinSpec, left_child: QueryPlanNode, right_child: QueryPlanNode
    ) -> None:
        """
        :param spec: The keys and policy of the join.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        """
        self.spec = spec
        self.left_child = left_child
        self.right_child = right_child

    def __str__(self) -> str:
        return (
            f"JoinNode(on={list(self.spec.on)}, policy={self.spec.policy.value}, "
            f"left={self.left_child}, right={self.right_child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation."""
        left = Table.from_batches(self.left_child.batches())
        right = Table.from_batches(self.right_child.batches())
        yield from join(left, right, self.spec).to_batches()

