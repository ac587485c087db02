"""Engine wide defaults.

The defaults are read from environment variables once,
when the module is imported, and exposed through :data:`settings`.

Values that can't be parsed are ignored and the default is used instead.
"""

import os
from dataclasses import dataclass
from typing import Mapping

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _getenv_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def _getenv_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _getenv_suffixes(
    environ: Mapping[str, str], name: str, default: tuple[str, str]
) -> tuple[str, str]:
    raw = environ.get(name)
    if raw is None:
        return default
    parts = raw.split(",")
    if len(parts) != 2 or not all(parts) or parts[0] == parts[1]:
        return default
    return (parts[0], parts[1])


@dataclass(frozen=True)
class Settings:
    """Defaults used when an operation doesn't specify them explicitly.

    :param join_suffixes: Appended to clashing column names of the
                          left and right table in a join.
    :param join_na_matches: If missing join keys match each other.
    :param sort_groups: If groups are sorted by key instead of
                        being emitted in order of first appearance.
    :param display_max_rows: How many rows are printed when showing a table.
    """

    join_suffixes: tuple[str, str] = (".x", ".y")
    join_na_matches: bool = True
    sort_groups: bool = False
    display_max_rows: int = 20


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from environment variables.

    >>> load_settings({"TIDYGROUND_JOIN_SUFFIXES": "_l,_r"}).join_suffixes
    ('_l', '_r')
    >>> load_settings({"TIDYGROUND_DISPLAY_MAX_ROWS": "many"}).display_max_rows
    20
    """
    if environ is None:
        environ = os.environ
    defaults = Settings()
    return Settings(
        join_suffixes=_getenv_suffixes(
            environ, "TIDYGROUND_JOIN_SUFFIXES", defaults.join_suffixes
        ),
        join_na_matches=_getenv_bool(
            environ, "TIDYGROUND_JOIN_NA_MATCHES", defaults.join_na_matches
        ),
        sort_groups=_getenv_bool(
            environ, "TIDYGROUND_SORT_GROUPS", defaults.sort_groups
        ),
        display_max_rows=_getenv_int(
            environ, "TIDYGROUND_DISPLAY_MAX_ROWS", defaults.display_max_rows
        ),
    )


settings = load_settings()
