from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats


def balance_table(
    df: pd.DataFrame,
    treatment_column: str,
    covariates: Sequence[str],
) -> Tuple[pd.DataFrame, float]:
    """Describe covariate means by arm with a one-way ANOVA p-value per covariate.

    This is an audit of one finished assignment; it never feeds back into the
    randomization. Returns the table and the smallest p-value (1.0 when there
    is nothing to test, NaN when no test could be computed).
    """
    covariates = [c for c in covariates if c in df.columns]
    if not covariates:
        empty = pd.DataFrame(columns=["covariate", "p_value", "means", "min_p_value"])
        return empty, 1.0

    records = []
    min_p = np.inf
    groups = list(df[treatment_column].dropna().unique())
    for cov in covariates:
        cov_series = pd.to_numeric(df[cov], errors="coerce")
        means = {g: cov_series[df[treatment_column] == g].mean(skipna=True) for g in groups}
        samples = [cov_series[df[treatment_column] == g].dropna().to_numpy() for g in groups]
        samples = [s for s in samples if len(s) > 0]
        p_value = np.nan
        if len(samples) > 1 and all(len(s) > 1 for s in samples):
            _, p_value = stats.f_oneway(*samples)
        if not np.isnan(p_value):
            min_p = min(min_p, p_value)
        records.append(
            {
                "covariate": cov,
                "p_value": float(p_value) if not np.isnan(p_value) else np.nan,
                "means": means,
            }
        )
    table = pd.DataFrame.from_records(records)
    min_p = float(min_p) if np.isfinite(min_p) else np.nan
    table["min_p_value"] = min_p
    return table, min_p
