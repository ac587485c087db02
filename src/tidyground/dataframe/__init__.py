"""Dataframe library built on top of tidyground.

A dataframe library is a tool designed to handle and manipulate structured data,
typically in the form of tables (i.e., rows and columns).
It allows users to explore data, apply transformations, and analyze it.

Dataframes provide a convenient way to chain operations such as filtering,
grouping, summarising and joining of datasets, where each step
takes the result of the previous one::

    (
        Dataframe(patients)
        .filter(FunctionCallExpression(pc.greater, col("age"), 50))
        .group_by("ER_status")
        .summarise(mean_ESR1=MeanAggregation("ESR1", na_rm=True))
    )

Those who used ``dplyr`` pipelines or ``pandas``
method chaining will find it familiar.

This module implements the dataframe using the
tidyground compute capabilities as its foundation.
"""

from ..compute.base import col, lit
from .dataframe import Dataframe, GroupedDataframe

__all__ = ("Dataframe", "GroupedDataframe", "col", "lit")
