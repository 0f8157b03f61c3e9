from __future__ import annotations

import pandas as pd
import pytest

from issue_classifier.data import ISSUE_COLUMNS, Issue, SchemaError, issue_frame, read_issues

from conftest import write_tsv


def test_read_issues_keeps_schema_columns_in_order(train_path):
    df = read_issues(train_path)
    assert list(df.columns) == ISSUE_COLUMNS
    assert len(df) == 12
    assert df.loc[0, "Area"] == "area-System.Net"


def test_read_issues_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_issues(tmp_path / "nope.tsv")


def test_read_issues_missing_label_column(tmp_path):
    p = write_tsv(tmp_path / "x.tsv", [("a title", "a description")], header=("Title", "Description"))
    with pytest.raises(SchemaError, match="Area"):
        read_issues(p)


def test_read_issues_unlabeled_allowed(tmp_path):
    p = write_tsv(tmp_path / "x.tsv", [("a title", "a description")], header=("Title", "Description"))
    df = read_issues(p, require_label=False)
    assert list(df.columns) == ["Title", "Description"]


def test_read_issues_empty_fields_and_quotes(tmp_path):
    p = write_tsv(
        tmp_path / "x.tsv",
        [("bug", 'Crash on "null" input', "")],
        header=("Area", "Title", "Description"),
    )
    df = read_issues(p)
    assert df.loc[0, "Description"] == ""
    assert df.loc[0, "Title"] == 'Crash on "null" input'
    assert not df.isna().any().any()


def test_issue_frame_from_dataclass_drops_missing_area():
    df = issue_frame([Issue(Title="t", Description="d")])
    assert list(df.columns) == ["Title", "Description"]


def test_issue_frame_does_not_invent_columns():
    df = issue_frame([{"Title": "only a title"}])
    assert list(df.columns) == ["Title"]
    assert isinstance(df, pd.DataFrame)


def test_issue_frame_rejects_other_types():
    with pytest.raises(TypeError):
        issue_frame(["not an issue"])


def test_read_issues_short_row_is_a_schema_error(tmp_path):
    p = write_tsv(
        tmp_path / "x.tsv",
        [("1", "bug", "Crash on start", "stack trace attached"), ("2", "docs", "Typo in readme")],
    )
    with pytest.raises(SchemaError, match=r"Description.*\[3\]"):
        read_issues(p)
