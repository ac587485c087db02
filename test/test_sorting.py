import warnings

import pyarrow as pa
import pytest

from tidyground.compute.base import QueryPlanNode
from tidyground.compute.pagination import PaginateNode
from tidyground.compute.sorting import SortNode
from tidyground.errors import InvalidSpec, UnknownColumn


class MockQueryPlanNode(QueryPlanNode):
    def __init__(self, batches):
        self._batches = batches

    def batches(self):
        for batch in self._batches:
            yield batch

    def __str__(self):
        return "MockQueryPlanNode"


def _values(node):
    return [val for batch in node.batches() for val in batch.column(0).to_pylist()]


def test_sort_node_single_batch():
    data = pa.record_batch({"values": [5, 3, 1, 4, 2]})
    child_node = MockQueryPlanNode([data])
    sort_node = SortNode(["values"], [False], child_node)

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [1, 2, 3, 4, 5]


def test_sort_node_multiple_batches():
    data1 = pa.record_batch({"values": [5, 3]})
    data2 = pa.record_batch({"values": [1, 4, 2]})
    child_node = MockQueryPlanNode([data1, data2])
    sort_node = SortNode(["values"], [False], child_node)

    assert _values(sort_node) == [1, 2, 3, 4, 5]


def test_sort_node_descending():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    child_node = MockQueryPlanNode([data])
    sort_node = SortNode(["values"], [True], child_node)

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [5, 4, 3, 2, 1]


@pytest.mark.parametrize("descending", [False, True])
def test_sort_node_missing_values_last(descending):
    data = pa.record_batch({"values": [None, 2, 3, None, 1]})
    sort_node = SortNode(["values"], [descending], MockQueryPlanNode([data]))
    result = _values(sort_node)
    assert result[-2:] == [None, None]
    assert result[:3] == sorted([1, 2, 3], reverse=descending)


def test_sort_node_multiple_keys_is_stable():
    data = pa.record_batch(
        {"group": ["b", "a", "b", "a"], "value": [1, 2, 2, 1], "row": [0, 1, 2, 3]}
    )
    sort_node = SortNode(["group"], [False], MockQueryPlanNode([data]))
    assert next(sort_node.batches()).column("row").to_pylist() == [1, 3, 0, 2]

    sort_node = SortNode(["group", "value"], [False, True], MockQueryPlanNode([data]))
    assert next(sort_node.batches()).column("row").to_pylist() == [1, 3, 2, 0]


def test_sort_node_invalid_keys_and_descending_length():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    child_node = MockQueryPlanNode([data])
    with pytest.raises(ValueError):
        SortNode(["values"], [True, False], child_node)
    with pytest.raises(InvalidSpec):
        SortNode([], [], child_node)


def test_sort_node_unknown_column():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    sort_node = SortNode(["other"], [False], MockQueryPlanNode([data]))
    with pytest.raises(UnknownColumn):
        list(sort_node.batches())


def test_sort_node_with_paginate_node():
    child_node = MockQueryPlanNode(
        [
            pa.record_batch({"values": [5, 3, 1, 4, 2]}),
            pa.record_batch({"values": [6, 9, 8, 7, 10]}),
        ]
    )
    sort_node = SortNode(["values"], [False], child_node)
    paginate_node = PaginateNode(offset=0, length=2, child=sort_node)

    sorted_batches = next(paginate_node.batches())
    assert sorted_batches["values"].to_pylist() == [1, 2]


@pytest.mark.parametrize(
    "offset,length,expected",
    [
        (0, 2, [1, 2]),
        (1, 3, [2, 3, 4]),
        (2, 4, [3, 4, 5, 6]),
        (5, 10, [6, 7]),
        (7, 2, []),
        (3, 0, []),
    ],
)
def test_paginate_node_across_batches(offset, length, expected):
    child_node = MockQueryPlanNode(
        [
            pa.record_batch({"values": [1, 2, 3]}),
            pa.record_batch({"values": [4, 5]}),
            pa.record_batch({"values": [6, 7]}),
        ]
    )
    paginate_node = PaginateNode(offset, length, child_node)
    batches = list(paginate_node.batches())
    assert len(batches) >= 1
    assert _values(PaginateNode(offset, length, child_node)) == expected


def test_paginate_node_str_and_errors():
    child_node = MockQueryPlanNode([])
    assert str(PaginateNode(2, 3, child_node)) == "PaginateNode(2:5, MockQueryPlanNode)"
    with pytest.raises(ValueError):
        PaginateNode(-1, 3, child_node)


def test_sort_node_emits_no_deprecation_warnings():
    data = pa.record_batch({"values": [None, 2, 1]})
    sort_node = SortNode(["values"], [False], MockQueryPlanNode([data]))
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert _values(sort_node) == [1, 2, None]
