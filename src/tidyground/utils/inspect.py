"""Provide insights about Python objects."""

import inspect
from typing import Any


def describe_callable(func: Any) -> str:
    """Name of a function as shown in expressions and query plans.

    Functions are named after the module that exposes them,
    so ``pyarrow.compute.add`` is shown as such even if it's
    generated inside another module.
    Bound methods are shown as ``module.Class.method``.

    >>> import pyarrow.compute as pc
    >>> describe_callable(pc.is_null)
    'pyarrow.compute.is_null'
    >>> class Scorer:
    ...   def score(self, arg):
    ...     pass
    >>> describe_callable(Scorer().score)
    'tidyground.utils.inspect.Scorer.score'
    """
    if inspect.ismethod(func):
        owner = type(func.__self__)
        return f"{owner.__module__}.{owner.__name__}.{func.__name__}"
    name = getattr(func, "__name__", None)
    module = getattr(func, "__module__", None)
    if name is None:
        # Callable instances
        cls = type(func)
        return f"{cls.__module__}.{cls.__name__}"
    if module is None:
        return name
    return f"{module}.{name}"
