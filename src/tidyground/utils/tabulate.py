"""Format tabular data into a text table for print.

The `tabulate` function takes a :class:`tidyground.compute.Table` and formats it into a text table.
It will show the kind of each column under its name, print missing values as ``NA``,
truncate long strings, format floats to 2 decimal places, and limit the number of rows to display.

Example:

    >>> from tidyground.compute import Table
    >>> table = Table.from_pydict({
    ...     "Product": ["Videogame", "Laptop", "Laptop"],
    ...     "Quantity": [8, None, 7],
    ...     "Price": [66.5, 38.72, 77.46],
    ... })
    >>> print(tabulate(table))
    Product   | Quantity | Price
    <chr>     | <num>    | <num>
    --------- | -------- | -----
    Videogame | 8        | 66.50
    Laptop    | NA       | 38.72
    Laptop    | 7        | 77.46
"""

from itertools import islice
from typing import Any

from ..config import settings


def tabulate(table: Any, max_rows: int | None = None) -> str:
    """Format a Table into a text table.

    Any object providing ``schema()``, ``rows()`` and ``num_rows``
    like :class:`tidyground.compute.Table` can be formatted.
    When ``max_rows`` is not provided, ``settings.display_max_rows`` is used.
    """
    if max_rows is None:
        max_rows = settings.display_max_rows

    schema = table.schema()
    cols = [name for name, _ in schema]
    kinds = [f"<{kind.abbreviation}>" for _, kind in schema]
    rows = [
        [format_value(row[c]) for c in cols]
        for row in islice(table.rows(), max_rows)
    ]

    colsizes = compute_max_colsize(cols, [kinds] + rows)
    header = [maketablerow(cols, colsizes=colsizes), maketablerow(kinds, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    text = "\n".join(header + separator + textrows)
    if table.num_rows > max_rows:
        text += f"\n... and {table.num_rows - max_rows} more rows"
    return text


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    ).rstrip()


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    Missing values are shown as ``NA``, floats are
    formatted to 2 decimal places and long strings truncated.
    """
    if v is None:
        return "NA"
    elif isinstance(v, float):
        return f"{v:.2f}"
    elif isinstance(v, bool):
        return "TRUE" if v else "FALSE"

    v = str(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
