import pyarrow.compute as pc

from tidyground.compute import (
    AggregateNode,
    FilterNode,
    FunctionCallExpression,
    MeanAggregation,
    SumAggregation,
    Table,
    TableDataSource,
    col,
    is_missing,
    lit,
)

data = Table.from_pydict(
    {
        "sample": ["s1", "s2", "s3", "s4", "s5", "s6"],
        "ER_status": ["pos", "neg", "pos", "neg", "pos", None],
        "ESR1": [10.6, 6.21, 9.8, 5.7, None, 8.1],
    },
    kinds={"ER_status": "categorical"},
)

query = AggregateNode(
    ["ER_status"],
    {
        "mean_ESR1": MeanAggregation("ESR1", na_rm=True),
        "n_missing": SumAggregation(is_missing(col("ESR1"))),
    },
    FilterNode(
        FunctionCallExpression(pc.not_equal, col("sample"), lit("s4")),
        TableDataSource(data),
    ),
)
print(query)
for batch in query.batches():
    print("---")
    print(batch)
