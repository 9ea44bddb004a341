"""Tests for randomization fairness validation."""
import numpy as np
import pandas as pd
import pytest

from strata_assign.randomize import RandomizationConfig, Randomizer, ValidationResult


@pytest.fixture
def simple_dataframe():
    """Create a simple test dataframe."""
    np.random.seed(42)
    return pd.DataFrame({
        "schoolid": [f"{i:03d}" for i in range(100)],
        "pupils": np.random.randint(18, 65, 100),
    })


@pytest.fixture
def stratified_dataframe():
    """Two languages by two genders, 50 schools in each cell."""
    return pd.DataFrame({
        "schoolid": [f"{i:03d}" for i in range(200)],
        "language": ["hindi"] * 100 + ["marathi"] * 100,
        "gender": ["boys", "girls"] * 100,
    })


def test_validate_simple_randomization(simple_dataframe):
    """Every unit should be treated about half of the time."""
    config = RandomizationConfig(id_column="schoolid", seed=12345)

    result = Randomizer(config).validate_randomization(
        simple_dataframe,
        n_simulations=100,
        base_seed=12345,
    )

    assert isinstance(result, ValidationResult)
    assert "prob_treatment" in result.assignment_probabilities.columns
    assert "prob_control" in result.assignment_probabilities.columns

    treatment_stats = result.summary_stats["treatment"]
    assert treatment_stats["mean"] == pytest.approx(0.5)
    assert treatment_stats["expected"] == 0.5
    assert result.is_valid
    assert result.warnings == []


def test_validate_stratified_randomization(stratified_dataframe):
    """Test validation with stratified randomization."""
    config = RandomizationConfig(
        id_column="schoolid",
        strata=["language", "gender"],
        seed=12345,
    )

    result = Randomizer(config).validate_randomization(
        stratified_dataframe,
        n_simulations=100,
        base_seed=12345,
    )

    assert result.is_valid
    assert len(result.assignment_probabilities) == len(stratified_dataframe)

    prob_cols = ["prob_treatment", "prob_control"]
    prob_sums = result.assignment_probabilities[prob_cols].sum(axis=1)
    assert np.allclose(prob_sums, 1.0)


def test_probabilities_listed_in_identifier_order(simple_dataframe):
    config = RandomizationConfig(id_column="schoolid", seed=1)
    shuffled = simple_dataframe.sample(frac=1.0, random_state=3)
    result = Randomizer(config).validate_randomization(shuffled, n_simulations=5, base_seed=1)
    ids = result.assignment_probabilities["schoolid"].tolist()
    assert ids == sorted(ids)


def test_validation_is_reproducible(simple_dataframe):
    config = RandomizationConfig(id_column="schoolid", seed=1)
    first = Randomizer(config).validate_randomization(simple_dataframe, n_simulations=20, base_seed=99)
    second = Randomizer(config).validate_randomization(simple_dataframe, n_simulations=20, base_seed=99)
    pd.testing.assert_frame_equal(first.assignment_probabilities, second.assignment_probabilities)


def test_single_simulation_matches_run(simple_dataframe):
    config = RandomizationConfig(id_column="schoolid", seed=77)
    randomizer = Randomizer(config)
    validation = randomizer.validate_randomization(simple_dataframe, n_simulations=1, base_seed=77)
    assigned = randomizer.run(simple_dataframe).assignments
    expected = (assigned["treatment"] == "treatment").astype(float).tolist()
    assert validation.assignment_probabilities["prob_treatment"].tolist() == expected


def test_validation_with_unequal_split(simple_dataframe):
    config = RandomizationConfig(id_column="schoolid", split_fraction=0.3, seed=12345)
    result = Randomizer(config).validate_randomization(
        simple_dataframe,
        n_simulations=100,
        base_seed=12345,
    )

    assert result.summary_stats["treatment"]["expected"] == pytest.approx(0.3)
    assert result.summary_stats["control"]["expected"] == pytest.approx(0.7)
    assert result.summary_stats["treatment"]["mean"] == pytest.approx(0.3)
    assert result.is_valid


def test_validation_flags_singleton_strata():
    """Strata of one unit always go to control, which validation should report."""
    df = pd.DataFrame({"schoolid": [f"s{i}" for i in range(20)], "village": [f"v{i}" for i in range(20)]})
    config = RandomizationConfig(id_column="schoolid", strata=["village"], seed=1)

    result = Randomizer(config).validate_randomization(df, n_simulations=10, base_seed=1)

    assert not result.is_valid
    assert result.summary_stats["treatment"]["mean"] == 0.0
    assert any("treatment" in message for message in result.warnings)


def test_validation_requires_simulations(simple_dataframe):
    config = RandomizationConfig(id_column="schoolid", seed=1)
    with pytest.raises(ValueError):
        Randomizer(config).validate_randomization(simple_dataframe, n_simulations=0)
