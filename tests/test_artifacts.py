from __future__ import annotations

import joblib
import numpy as np
import pytest

from issue_classifier.artifacts import ModelArtifact, ModelLoadError, load_model, save_model
from issue_classifier.predict import IssuePredictor
from issue_classifier.stages import SCORE_COL


def test_round_trip_predicts_identically(trained, test_df, tmp_path):
    path = save_model(trained.pipeline, trained.schema, tmp_path / "Models" / "model.joblib")
    loaded, schema = load_model(path)

    assert schema == trained.schema
    assert schema.names == ("Title", "Description", "Area")
    assert loaded.label_vocabulary == trained.pipeline.label_vocabulary

    np.testing.assert_allclose(
        loaded.transform(test_df)[SCORE_COL],
        trained.pipeline.transform(test_df)[SCORE_COL],
    )
    before = trained.predictor.predict_frame(test_df)
    after = IssuePredictor(loaded).predict_frame(test_df)
    assert before["PredictedArea"].tolist() == after["PredictedArea"].tolist()


def test_saved_metadata_describes_the_model(trained, tmp_path):
    path = save_model(trained.pipeline, trained.schema, tmp_path / "m.joblib", metadata={"note": "x"})
    art = ModelArtifact.load(path)
    assert art.metadata["label_vocabulary"] == list(trained.pipeline.label_vocabulary)
    assert art.metadata["stages"][-2:] == ["Classify", "DecodeLabel"]
    assert art.metadata["note"] == "x"
    assert "scikit-learn" in art.metadata["versions"]


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_model(tmp_path / "missing.joblib")


def test_load_corrupt_file(tmp_path):
    p = tmp_path / "corrupt.joblib"
    p.write_bytes(b"this is not a pickle")
    with pytest.raises(ModelLoadError):
        load_model(p)


def test_load_wrong_object(tmp_path):
    p = tmp_path / "other.joblib"
    joblib.dump({"not": "a model"}, p)
    with pytest.raises(TypeError):
        load_model(p)
