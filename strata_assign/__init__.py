from .allocate import TreatmentArm, allocate, allocate_arm, arm_cutoffs, is_treated
from .balance import balance_table
from .identifiers import (
    DuplicateIdentifierError,
    DuplicateIdentifierWarning,
    DuplicateReport,
    MissingFieldError,
    check_unique_ids,
    sort_by_id,
)
from .randomize import (
    RandomizationConfig,
    RandomizationResult,
    Randomizer,
    ValidationResult,
)
from .ranking import attach_random_keys, random_key_columns, tie_broken_order
from .rng import NonReproducibleWarning, RandomSource
from .strata import Stratum, assign_ranks, partition, stratum_keys

__all__ = [
    "RandomizationConfig",
    "RandomizationResult",
    "Randomizer",
    "ValidationResult",
    "TreatmentArm",
    "RandomSource",
    "NonReproducibleWarning",
    "DuplicateIdentifierError",
    "DuplicateIdentifierWarning",
    "DuplicateReport",
    "MissingFieldError",
    "check_unique_ids",
    "sort_by_id",
    "attach_random_keys",
    "random_key_columns",
    "tie_broken_order",
    "Stratum",
    "stratum_keys",
    "partition",
    "assign_ranks",
    "is_treated",
    "arm_cutoffs",
    "allocate_arm",
    "allocate",
    "balance_table",
]
__version__ = "0.1.0"
