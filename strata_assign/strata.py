from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd
from pandas.api.types import is_scalar

from .identifiers import require_columns
from .ranking import tie_broken_order

StratumKey = Tuple


@dataclass(frozen=True)
class Stratum:
    """Units sharing identical values on every stratification column.

    Attributes:
        key: Stratification values, in the order of the strata columns
        members: Row labels of the member units, in input (identifier) order
    """

    key: StratumKey
    members: pd.Index

    @property
    def size(self) -> int:
        return len(self.members)


def _normalize(value):
    if is_scalar(value) and pd.isna(value):
        return None
    return value


def stratum_keys(df: pd.DataFrame, strata: Sequence[str]) -> pd.Series:
    """Stratum key tuple for every row.

    Missing values (NaN, None, NaT, pd.NA) are all mapped to ``None`` and form a
    stratum of their own instead of dropping the row.
    """
    strata = list(strata)
    require_columns(df, strata)
    # filled one by one so numpy keeps tuples as scalars instead of a 2-D array
    keys = np.empty(len(df), dtype=object)
    if strata:
        rows = df[strata].itertuples(index=False, name=None)
    else:
        rows = (() for _ in range(len(df)))
    for position, row in enumerate(rows):
        keys[position] = tuple(_normalize(v) for v in row)
    return pd.Series(keys, index=df.index)


def partition(df: pd.DataFrame, strata: Sequence[str]) -> Dict[StratumKey, Stratum]:
    """Split rows into strata, keyed by stratification values.

    Strata appear in order of their first member in ``df``. Every row belongs to
    exactly one stratum; an empty ``strata`` gives one stratum keyed ``()``.
    """
    members: Dict[StratumKey, List] = {}
    for label, key in stratum_keys(df, strata).items():
        members.setdefault(key, []).append(label)
    return {key: Stratum(key=key, members=pd.Index(labels)) for key, labels in members.items()}


def assign_ranks(
    df: pd.DataFrame,
    strata_map: Dict[StratumKey, Stratum],
    key_columns: Sequence[str],
    id_column: str,
    rank_column: str = "strata_index",
    size_column: str = "strata_size",
) -> pd.DataFrame:
    """Add within-stratum rank (1..size) and stratum size columns to a copy of ``df``.

    Each stratum is ranked on its own members only, by random key(s) with the
    identifier as the final tie-break.
    """
    if not df.index.is_unique:
        raise ValueError("Row labels must be unique to assign ranks; reset the index first.")
    ranks = pd.Series(0, index=df.index, dtype="int64")
    sizes = pd.Series(0, index=df.index, dtype="int64")
    for stratum in strata_map.values():
        ordered = tie_broken_order(df.loc[stratum.members], key_columns, id_column)
        ranks.loc[ordered] = np.arange(1, stratum.size + 1)
        sizes.loc[stratum.members] = stratum.size

    assigned = int((ranks > 0).sum())
    if assigned != len(df):
        raise RuntimeError(f"Strata cover {assigned} of {len(df)} rows.")

    work_df = df.copy()
    work_df[size_column] = sizes
    work_df[rank_column] = ranks
    return work_df


def strata_table(
    df: pd.DataFrame,
    strata_map: Dict[StratumKey, Stratum],
    strata: Sequence[str],
    treatment_column: str,
    arm_names: Sequence[str],
) -> pd.DataFrame:
    """One row per stratum with its size and the number of units in each arm."""
    records = []
    for stratum in strata_map.values():
        counts = df.loc[stratum.members, treatment_column].value_counts()
        record = dict(zip(strata, stratum.key))
        record["size"] = stratum.size
        for arm in arm_names:
            record[arm] = int(counts.get(arm, 0))
        records.append(record)
    columns = list(strata) + ["size"] + list(arm_names)
    return pd.DataFrame.from_records(records, columns=columns)
