from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import List, Sequence

import pandas as pd

from .identifiers import require_columns


@dataclass(frozen=True)
class TreatmentArm:
    """Definition for a treatment arm."""

    name: str
    proportion: float


def _exact(value: float) -> Fraction:
    # 0.3 must mean 3/10, not the nearest binary double
    return Fraction(value).limit_denominator(10**9)


def is_treated(rank: int, size: int, fraction: float = 0.5) -> bool:
    """Threshold rule for a two-arm split: ``rank <= size * fraction``.

    With the default half split a stratum of ``k`` units puts ``floor(k/2)`` in
    treatment and ``ceil(k/2)`` in control, so a lone unit is always control.
    """
    return rank <= size * _exact(fraction)


def arm_cutoffs(size: int, shares: Sequence[float]) -> List[int]:
    """Highest rank allocated to each arm for a stratum of ``size`` units.

    Cut points are ``floor(size * cumulative share)``; the last arm always
    extends to ``size`` so rounding never leaves a unit unallocated.
    """
    cutoffs = []
    cumulative = Fraction(0)
    for share in shares:
        cumulative += _exact(share)
        cutoffs.append(min(size, math.floor(size * cumulative)))
    if cutoffs:
        cutoffs[-1] = size
    return cutoffs


def allocate_arm(rank: int, size: int, arms: Sequence[TreatmentArm]) -> str:
    if not 1 <= rank <= size:
        raise ValueError(f"Rank {rank} is outside 1..{size}.")
    for arm, cutoff in zip(arms, arm_cutoffs(size, [a.proportion for a in arms])):
        if rank <= cutoff:
            return arm.name
    raise RuntimeError(f"No arm found for rank {rank} of {size}.")


def allocate(
    df: pd.DataFrame,
    arms: Sequence[TreatmentArm],
    rank_column: str = "strata_index",
    size_column: str = "strata_size",
    name: str = "treatment",
) -> pd.Series:
    """Arm label for every row from its within-stratum rank and stratum size."""
    require_columns(df, [rank_column, size_column])
    labels = [
        allocate_arm(int(rank), int(size), arms)
        for rank, size in zip(df[rank_column], df[size_column])
    ]
    return pd.Series(labels, index=df.index, name=name, dtype=object)
