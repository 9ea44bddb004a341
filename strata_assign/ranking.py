from __future__ import annotations

from typing import List, Sequence

import numpy as np
import pandas as pd

from .identifiers import canonical_ids, require_columns
from .rng import RandomSource

_ID_KEY = "__id_key__"
_POSITION_KEY = "__position__"


def random_key_columns(n_keys: int = 1, prefix: str = "random") -> List[str]:
    """Column names for ``n_keys`` random keys (``random`` or ``random1``, ``random2``, ...)."""
    if n_keys < 1:
        raise ValueError(f"At least one random key is required, got {n_keys}.")
    if n_keys == 1:
        return [prefix]
    return [f"{prefix}{i}" for i in range(1, n_keys + 1)]


def attach_random_keys(
    df: pd.DataFrame,
    source: RandomSource,
    n_keys: int = 1,
    prefix: str = "random",
) -> pd.DataFrame:
    """Attach uniform random key column(s) to a copy of ``df``.

    ``df`` must already be sorted by identifier: draws follow the current row
    order, one full column at a time, so the same seed and the same data always
    give every unit the same keys.
    """
    work_df = df.copy()
    for column in random_key_columns(n_keys, prefix):
        work_df[column] = source.draws(len(work_df))
    return work_df


def tie_broken_order(
    df: pd.DataFrame,
    key_columns: Sequence[str],
    id_column: str,
) -> pd.Index:
    """Row labels of ``df`` in random-key order.

    Keys are compared in order; remaining ties fall back to the identifier's
    string form and finally to the row's position in ``df``, so the order is
    total even with colliding keys or duplicated identifiers.
    """
    require_columns(df, list(key_columns) + [id_column])
    sort_frame = df[list(key_columns)].copy()
    sort_frame[_ID_KEY] = canonical_ids(df[id_column])
    sort_frame[_POSITION_KEY] = np.arange(len(df))
    ordered = sort_frame.sort_values(
        by=list(key_columns) + [_ID_KEY, _POSITION_KEY],
        kind="mergesort",
    )
    return ordered.index
