import pandas as pd
import pytest

from strata_assign.identifiers import (
    MissingFieldError,
    check_unique_ids,
    require_columns,
    sort_by_id,
)


def test_unique_ids_report_no_duplicates():
    df = pd.DataFrame({"schoolid": ["s1", "s2", "s3"]})
    report = check_unique_ids(df, "schoolid")
    assert report.is_unique
    assert report.count == 0
    assert report.duplicated_ids == []


def test_duplicate_count_is_number_of_surplus_rows():
    df = pd.DataFrame({"schoolid": ["a", "b", "a", "c", "c", "c"]})
    report = check_unique_ids(df, "schoolid")
    assert not report.is_unique
    assert report.count == 3
    assert report.duplicated_ids == ["a", "c"]


def test_check_on_non_identifier_column_finds_duplicates():
    df = pd.DataFrame({"schoolid": ["1", "2", "3", "4"], "gender": ["boys", "girls", "boys", "girls"]})
    assert check_unique_ids(df, "gender").count == 2


def test_missing_id_column_raises():
    df = pd.DataFrame({"id": [1, 2]})
    with pytest.raises(MissingFieldError) as excinfo:
        check_unique_ids(df, "schoolid")
    assert excinfo.value.missing == ["schoolid"]
    assert isinstance(excinfo.value, KeyError)


def test_require_columns_lists_every_missing_column():
    df = pd.DataFrame({"schoolid": [1]})
    with pytest.raises(MissingFieldError) as excinfo:
        require_columns(df, ["schoolid", "language", "gender"])
    assert excinfo.value.missing == ["language", "gender"]
    assert "language, gender" in str(excinfo.value)


def test_sort_uses_string_form_of_identifier():
    df = pd.DataFrame({"schoolid": [10, 2, 1], "pupils": [100, 20, 10]})
    ordered = sort_by_id(df, "schoolid")
    assert ordered["schoolid"].tolist() == [1, 10, 2]
    assert ordered["pupils"].tolist() == [10, 100, 20]


def test_sort_returns_copy():
    df = pd.DataFrame({"schoolid": ["c", "a", "b"]})
    ordered = sort_by_id(df, "schoolid")
    assert df["schoolid"].tolist() == ["c", "a", "b"]
    assert ordered["schoolid"].tolist() == ["a", "b", "c"]


def test_sort_is_stable_for_duplicates():
    df = pd.DataFrame({"schoolid": ["b", "a", "b", "a"], "row": [0, 1, 2, 3]})
    ordered = sort_by_id(df, "schoolid")
    assert ordered["row"].tolist() == [1, 3, 0, 2]


def test_ids_equal_as_strings_are_duplicates():
    df = pd.DataFrame({"schoolid": [1, "1", 2]})
    report = check_unique_ids(df, "schoolid")
    assert report.count == 1
    assert report.duplicated_ids == ["1"]
