from __future__ import annotations

import pandas as pd
import pytest

from issue_classifier.data import Issue, SchemaError


def test_websockets_issue_gets_a_known_label(trained):
    issue = Issue(
        Title="WebSockets communication is slow in my machine",
        Description="The WebSockets communication used under the covers by SignalR looks like is going slow in my development machine..",
    )
    pred = trained.predictor.predict(issue)
    assert pred.area in trained.predictor.labels
    assert set(pred.scores) == set(trained.predictor.labels)
    assert sum(pred.scores.values()) == pytest.approx(1.0)
    assert pred.score == max(pred.scores.values())


def test_missing_description_is_a_schema_error(trained):
    with pytest.raises(SchemaError, match="Description"):
        trained.predictor.predict({"Title": "Threads are failed"})


def test_calls_are_independent(trained):
    a = trained.predictor.predict({"Title": "Build fails on CI", "Description": "CI build broken"})
    trained.predictor.predict({"Title": "Deadlock", "Description": "threads deadlock on lock"})
    b = trained.predictor.predict({"Title": "Build fails on CI", "Description": "CI build broken"})
    assert a == b


def test_label_column_is_optional_at_prediction(trained):
    pred = trained.predictor.predict(
        {"Title": "Socket timeout", "Description": "network socket times out", "Area": "area-Unknown"}
    )
    assert pred.area in trained.predictor.labels


def test_predict_many_keeps_order(trained):
    preds = trained.predictor.predict_many(
        [
            Issue(Title="Threads deadlock", Description="threads wait on a lock forever"),
            Issue(Title="CI build", Description="the build pipeline on CI fails"),
        ]
    )
    assert len(preds) == 2


def test_null_description_is_a_schema_error(trained):
    with pytest.raises(SchemaError, match="Description"):
        trained.predictor.predict({"Title": "Threads are failed", "Description": None})
    with pytest.raises(SchemaError, match="Description"):
        trained.predictor.predict(Issue(Title="Threads are failed", Description=None))


def test_empty_input_gives_empty_results(trained):
    assert trained.predictor.predict_many([]) == []

    frame = pd.DataFrame(columns=["Title", "Description"])
    out = trained.predictor.predict_frame(frame)
    assert len(out) == 0
    assert {"PredictedArea", "PredictedScore"} <= set(out.columns)


def test_empty_frame_still_needs_the_text_columns(trained):
    with pytest.raises(SchemaError, match="Description"):
        trained.predictor.predict_frame(pd.DataFrame(columns=["Title"]))
