import pandas as pd
import pytest

from strata_assign.allocate import TreatmentArm, allocate, allocate_arm, arm_cutoffs, is_treated

HALF = [TreatmentArm("treatment", 0.5), TreatmentArm("control", 0.5)]


@pytest.mark.parametrize("size", [1, 2, 3, 4, 5, 10, 11, 31])
def test_half_split_puts_extra_unit_in_control(size):
    labels = [allocate_arm(rank, size, HALF) for rank in range(1, size + 1)]
    assert labels.count("treatment") == size // 2
    assert labels.count("control") == size - size // 2


def test_single_unit_stratum_is_control():
    assert not is_treated(1, 1)
    assert allocate_arm(1, 1, HALF) == "control"


def test_threshold_rule_matches_rank_le_half_size():
    for size in range(1, 12):
        for rank in range(1, size + 1):
            assert is_treated(rank, size) == (rank <= size / 2)
            assert (allocate_arm(rank, size, HALF) == "treatment") == is_treated(rank, size)


def test_decimal_fractions_are_exact():
    assert arm_cutoffs(10, [0.3, 0.7]) == [3, 10]
    assert is_treated(3, 10, fraction=0.3)
    assert not is_treated(4, 10, fraction=0.3)


def test_equal_thirds():
    third = 1 / 3
    assert arm_cutoffs(9, [third] * 3) == [3, 6, 9]
    assert arm_cutoffs(7, [third] * 3) == [2, 4, 7]


def test_rank_out_of_range():
    with pytest.raises(ValueError):
        allocate_arm(0, 4, HALF)
    with pytest.raises(ValueError):
        allocate_arm(5, 4, HALF)


def test_allocate_series():
    df = pd.DataFrame({"strata_index": [1, 2, 3, 1, 2], "strata_size": [3, 3, 3, 2, 2]}, index=[10, 11, 12, 13, 14])
    labels = allocate(df, HALF, name="arm")
    assert labels.name == "arm"
    assert labels.index.tolist() == [10, 11, 12, 13, 14]
    assert labels.tolist() == ["treatment", "control", "control", "treatment", "control"]
