from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

import pandas as pd


class MissingFieldError(KeyError):
    """A configured column does not exist in the input table."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Column(s) not found in data: {', '.join(self.missing)}")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateIdentifierError(ValueError):
    """The identifier column does not uniquely identify rows."""

    def __init__(self, id_column: str, count: int):
        self.id_column = id_column
        self.count = count
        super().__init__(
            f"Column '{id_column}' is not a unique identifier: {count} duplicate row(s). "
            "Fix the data or pass allow_duplicate_ids=True to proceed anyway."
        )


class DuplicateIdentifierWarning(UserWarning):
    """Randomization proceeded although the identifier has duplicates."""


@dataclass(frozen=True)
class DuplicateReport:
    """Outcome of a uniqueness check on the identifier column.

    Attributes:
        id_column: Column that was checked
        count: Number of rows whose identifier already appeared in an earlier row
        duplicated_ids: Distinct identifier values occurring more than once
    """

    id_column: str
    count: int
    duplicated_ids: List = field(default_factory=list)

    @property
    def is_unique(self) -> bool:
        return self.count == 0


def require_columns(df: pd.DataFrame, columns: Iterable[str]) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MissingFieldError(missing)


def check_unique_ids(df: pd.DataFrame, id_column: str) -> DuplicateReport:
    """Count duplicated identifiers without raising.

    Mirrors R's ``anyDuplicated`` check from the J-PAL exercise, but reports how
    many surplus rows there are so the caller can decide whether to continue.
    """
    require_columns(df, [id_column])
    ids = df[id_column]
    # 1 and "1" sort as the same identifier, so they are duplicates too
    surplus = canonical_ids(ids).duplicated(keep="first")
    duplicated_ids = list(pd.unique(ids[surplus]))
    return DuplicateReport(
        id_column=id_column,
        count=int(surplus.sum()),
        duplicated_ids=duplicated_ids,
    )


def canonical_ids(ids: pd.Series) -> pd.Series:
    """String form of identifiers used for every identifier comparison."""
    return ids.map(str)


def sort_by_id(df: pd.DataFrame, id_column: str) -> pd.DataFrame:
    """Return a copy of ``df`` ordered by identifier.

    Identifiers are compared by their string form so numeric and text IDs sort
    the same way on every platform. The sort is stable: rows sharing an
    identifier keep their input order.
    """
    require_columns(df, [id_column])
    return df.sort_values(by=id_column, key=canonical_ids, kind="mergesort")
