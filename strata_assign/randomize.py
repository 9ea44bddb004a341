from __future__ import annotations

import warnings
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .allocate import TreatmentArm, allocate
from .balance import balance_table
from .identifiers import (
    DuplicateIdentifierError,
    DuplicateIdentifierWarning,
    DuplicateReport,
    check_unique_ids,
    require_columns,
    sort_by_id,
)
from .ranking import attach_random_keys, random_key_columns
from .rng import RandomSource
from .strata import Stratum, StratumKey, assign_ranks, partition, strata_table


@dataclass(frozen=True)
class RandomizationConfig:
    """Configuration options for a randomization run."""

    id_column: str
    treatment_column: str = "treatment"
    arms: List[str] = field(default_factory=lambda: ["treatment", "control"])
    split_fraction: float = 0.5
    strata: List[str] = field(default_factory=list)
    seed: Optional[int] = None
    random_keys: int = 1
    key_prefix: str = "random"
    rank_column: str = "strata_index"
    size_column: str = "strata_size"
    indicator_column: Optional[str] = None
    allow_duplicate_ids: bool = False
    balance_covariates: List[str] = field(default_factory=list)

    def treatment_arms(self) -> List[TreatmentArm]:
        """Arms with their shares: ``split_fraction`` for two arms, equal shares otherwise."""
        if len(self.arms) == 2:
            return [
                TreatmentArm(self.arms[0], self.split_fraction),
                TreatmentArm(self.arms[1], 1 - self.split_fraction),
            ]
        share = 1 / len(self.arms)
        return [TreatmentArm(name, share) for name in self.arms]

    @property
    def key_columns(self) -> List[str]:
        return random_key_columns(self.random_keys, self.key_prefix)

    @property
    def output_columns(self) -> List[str]:
        columns = self.key_columns + [self.size_column, self.rank_column, self.treatment_column]
        if self.indicator_column:
            columns.append(self.indicator_column)
        return columns


@dataclass
class RandomizationResult:
    """Outcome of a randomization run.

    Attributes:
        assignments: Input rows sorted by identifier, with random key(s),
            stratum size, within-stratum rank and arm columns added
        duplicates: Uniqueness check of the identifier column
        strata_table: One row per stratum with its size and arm counts
        balance_table: Covariate means by arm with ANOVA p-values
        seed: Seed used for the run (None when not reproducible)
        diagnostics: Additional diagnostic information
    """

    assignments: pd.DataFrame
    duplicates: DuplicateReport
    strata_table: pd.DataFrame
    balance_table: pd.DataFrame
    seed: Optional[int]
    diagnostics: Dict = field(default_factory=dict)


@dataclass
class ValidationResult:
    """Results from validating randomization fairness.

    Attributes:
        assignment_probabilities: DataFrame with the share of simulations each unit spent in each arm
        summary_stats: Dictionary with summary statistics about assignment probabilities
        is_valid: Boolean indicating if randomization appears fair
        warnings: List of warning messages if issues detected
    """

    assignment_probabilities: pd.DataFrame
    summary_stats: Dict
    is_valid: bool
    warnings: List[str] = field(default_factory=list)


class Randomizer:
    """Seeded, optionally stratified treatment assignment.

    Units are sorted by identifier, given uniform random keys in that order,
    ranked by key within their stratum and split by rank: in every stratum of
    ``k`` units the first ``floor(k * split_fraction)`` ranks go to the first
    arm and the rest to the second.
    """

    def __init__(self, config: RandomizationConfig):
        self.config = config
        self._validate_config()

    def run(self, df: pd.DataFrame, verbose: bool = False) -> RandomizationResult:
        """Randomize ``df`` and return the augmented table with diagnostics.

        Args:
            df: DataFrame with units to randomize
            verbose: If True, print a summary of the assignment

        Returns:
            RandomizationResult with assignments and diagnostics

        Raises:
            MissingFieldError: If the identifier or a strata column is absent
            DuplicateIdentifierError: If identifiers repeat and
                ``allow_duplicate_ids`` is not set
        """
        cfg = self.config
        work_df, duplicates = self._prepare(df)

        if verbose:
            if cfg.seed is None:
                print("No seed set: this assignment cannot be reproduced.")
            else:
                print(f"Randomizing {len(work_df)} units with seed {cfg.seed}")

        ranked, strata_map = self._assign(work_df, cfg.seed)

        arm_names = [arm.name for arm in cfg.treatment_arms()]
        summary = strata_table(ranked, strata_map, cfg.strata, cfg.treatment_column, arm_names)
        balance, min_p = balance_table(ranked, cfg.treatment_column, cfg.balance_covariates)
        assignments = ranked.reset_index(drop=True)

        arm_counts = assignments[cfg.treatment_column].value_counts()
        diagnostics = {
            "n_units": len(assignments),
            "n_strata": len(strata_map),
            "arm_counts": {arm: int(arm_counts.get(arm, 0)) for arm in arm_names},
            "random_key_columns": cfg.key_columns,
            "min_p_value": min_p,
        }

        if verbose:
            print(f"Assigned {len(assignments)} units across {len(strata_map)} strata")
            for arm in arm_names:
                count = diagnostics["arm_counts"][arm]
                share = 100 * count / len(assignments) if len(assignments) else 0.0
                print(f"  {arm}: {count} ({share:.1f}%)")
            if cfg.balance_covariates:
                print(f"Minimum balance p-value: {min_p:.4f}")

        return RandomizationResult(
            assignments=assignments,
            duplicates=duplicates,
            strata_table=summary,
            balance_table=balance,
            seed=cfg.seed,
            diagnostics=diagnostics,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _validate_config(self) -> None:
        cfg = self.config
        if len(cfg.arms) < 2:
            raise ValueError("At least two treatment arms must be provided.")
        if len(set(cfg.arms)) != len(cfg.arms):
            raise ValueError(f"Arm names must be unique. Got {cfg.arms}.")
        if not 0 < cfg.split_fraction < 1:
            raise ValueError(f"split_fraction must lie strictly between 0 and 1. Got {cfg.split_fraction}.")
        if len(cfg.arms) > 2 and cfg.split_fraction != 0.5:
            raise ValueError("split_fraction only applies to two-arm designs; more arms get equal shares.")
        if cfg.random_keys < 1:
            raise ValueError(f"random_keys must be at least 1. Got {cfg.random_keys}.")
        inputs = {cfg.id_column, *cfg.strata}
        outputs = cfg.output_columns
        if len(set(outputs)) != len(outputs):
            raise ValueError(f"Output column names must be distinct. Got {outputs}.")
        overlap = inputs.intersection(outputs)
        if overlap:
            raise ValueError(
                f"Output column(s) {sorted(overlap)} would overwrite the identifier or strata columns."
            )
        # the strata summary has one column per stratum variable, "size" and one per arm
        summary_overlap = set(cfg.strata).intersection(["size", *cfg.arms])
        if summary_overlap:
            raise ValueError(
                f"Strata column(s) {sorted(summary_overlap)} clash with the strata summary's "
                "'size' or arm columns; rename them before randomizing."
            )

    def _prepare(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, DuplicateReport]:
        cfg = self.config
        require_columns(df, [cfg.id_column] + list(cfg.strata))

        duplicates = check_unique_ids(df, cfg.id_column)
        if not duplicates.is_unique:
            if not cfg.allow_duplicate_ids:
                raise DuplicateIdentifierError(cfg.id_column, duplicates.count)
            warnings.warn(
                f"Column '{cfg.id_column}' has {duplicates.count} duplicate row(s); "
                "the assignment is only reproducible if the input row order is unchanged.",
                DuplicateIdentifierWarning,
                stacklevel=3,
            )

        work_df = df
        existing = [c for c in cfg.output_columns if c in df.columns]
        if existing:
            warnings.warn(
                f"Replacing existing column(s) {existing} with a new randomization.",
                UserWarning,
                stacklevel=3,
            )
            work_df = df.drop(columns=existing)
        return work_df.reset_index(drop=True), duplicates

    def _assign(
        self, work_df: pd.DataFrame, seed: Optional[int]
    ) -> Tuple[pd.DataFrame, Dict[StratumKey, Stratum]]:
        cfg = self.config
        source = RandomSource(seed)
        ordered = sort_by_id(work_df, cfg.id_column)
        keyed = attach_random_keys(ordered, source, cfg.random_keys, cfg.key_prefix)
        strata_map = partition(keyed, cfg.strata)
        ranked = assign_ranks(
            keyed,
            strata_map,
            cfg.key_columns,
            cfg.id_column,
            rank_column=cfg.rank_column,
            size_column=cfg.size_column,
        )
        arms = cfg.treatment_arms()
        ranked[cfg.treatment_column] = allocate(
            ranked,
            arms,
            rank_column=cfg.rank_column,
            size_column=cfg.size_column,
            name=cfg.treatment_column,
        )
        if cfg.indicator_column:
            ranked[cfg.indicator_column] = (ranked[cfg.treatment_column] == arms[0].name).astype(int)
        return ranked, strata_map

    def validate_randomization(
        self,
        df: pd.DataFrame,
        n_simulations: int = 500,
        base_seed: Optional[int] = None,
        verbose: bool = False,
    ) -> ValidationResult:
        """Check that no unit is systematically favoured by the assignment.

        Runs the randomization ``n_simulations`` times with seeds
        ``base_seed + i`` and records how often each unit lands in each arm.
        Every unit should end up in each arm about as often as the arm's share.

        Args:
            df: DataFrame with units to randomize
            n_simulations: Number of times to run randomization (default: 500)
            base_seed: Base seed for simulations. Each simulation uses base_seed + i
            verbose: If True, print progress and diagnostic information

        Returns:
            ValidationResult with assignment probabilities and validation diagnostics
        """
        if n_simulations < 1:
            raise ValueError(f"n_simulations must be at least 1. Got {n_simulations}.")
        cfg = self.config
        work_df, _ = self._prepare(df)
        sim_randomizer = Randomizer(replace(cfg, balance_covariates=[]))

        if verbose:
            print(f"Running {n_simulations} randomization simulations to validate fairness...")
            if cfg.strata:
                print(f"Stratification: {', '.join(cfg.strata)}")

        arms = cfg.treatment_arms()
        arm_names = [arm.name for arm in arms]
        assignment_counts = {arm: np.zeros(len(work_df)) for arm in arm_names}
        ids = sort_by_id(work_df, cfg.id_column)[cfg.id_column].to_numpy()

        for i in range(n_simulations):
            seed = None if base_seed is None else base_seed + i
            ranked, _ = sim_randomizer._assign(work_df, seed)
            labels = ranked[cfg.treatment_column].to_numpy()
            for arm in arm_names:
                assignment_counts[arm] += labels == arm

            if verbose and (i + 1) % max(1, n_simulations // 10) == 0:
                print(f"  Completed {i + 1}/{n_simulations} simulations")

        prob_df = pd.DataFrame({cfg.id_column: ids})
        for arm in arm_names:
            prob_df[f"prob_{arm}"] = assignment_counts[arm] / n_simulations

        summary_stats = {}
        warnings_list = []
        is_valid = True

        for arm in arms:
            probs = prob_df[f"prob_{arm.name}"].to_numpy()
            expected = float(arm.proportion)
            mean = float(np.mean(probs)) if len(probs) else np.nan
            summary_stats[arm.name] = {
                "mean": mean,
                "std": float(np.std(probs)) if len(probs) else np.nan,
                "min": float(np.min(probs)) if len(probs) else np.nan,
                "max": float(np.max(probs)) if len(probs) else np.nan,
                "expected": expected,
                "mean_deviation": abs(mean - expected),
            }
            if len(probs) and abs(mean - expected) > 0.05:
                is_valid = False
                warnings_list.append(
                    f"Arm '{arm.name}': Mean probability ({mean:.3f}) deviates from "
                    f"expected ({expected:.3f}) by more than 5%"
                )
            if 0.2 < expected < 0.8 and len(probs):
                extreme = int(np.sum(np.abs(probs - expected) > 0.3))
                if extreme > len(probs) * 0.05:
                    is_valid = False
                    warnings_list.append(
                        f"Arm '{arm.name}': {extreme} units ({100 * extreme / len(probs):.1f}%) "
                        f"have extreme assignment probabilities (>30% deviation from expected)"
                    )

        if verbose:
            print("\nValidation Results:")
            print(f"  Valid: {'Yes' if is_valid else 'No'}")
            for name, stats in summary_stats.items():
                print(
                    f"    {name}: mean={stats['mean']:.4f} (expected {stats['expected']:.4f}), "
                    f"std={stats['std']:.4f}, range=[{stats['min']:.4f}, {stats['max']:.4f}]"
                )
            for message in warnings_list:
                print(f"    - {message}")

        return ValidationResult(
            assignment_probabilities=prob_df,
            summary_stats=summary_stats,
            is_valid=is_valid,
            warnings=warnings_list,
        )
