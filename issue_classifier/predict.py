# issue_classifier/predict.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

from .data import IssueLike, issue_frame, validate_required_columns
from .pipeline import FittedPipeline
from .stages import PREDICTED_LABEL_COL, SCORE_COL


@dataclass(frozen=True)
class IssuePrediction:
    area: str
    scores: Dict[str, float]

    @property
    def score(self) -> float:
        return self.scores[self.area]


class IssuePredictor:
    """Single-record prediction over a fitted pipeline. Holds no per-call state."""

    def __init__(self, pipeline: FittedPipeline):
        self.pipeline = pipeline

    @property
    def labels(self) -> Tuple[str, ...]:
        return self.pipeline.label_vocabulary

    def _score(self, frame: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray, Tuple[str, ...]]:
        if len(frame) == 0:
            # The featurizers reject zero rows; answer with empty results instead.
            validate_required_columns(frame.columns, self.pipeline.required_columns)
            labels = self.labels
            return np.zeros((0, len(labels))), np.empty(0, dtype=object), labels
        view = self.pipeline.transform(frame)
        labels = view.key_values_of(SCORE_COL) or self.labels
        return np.asarray(view[SCORE_COL]), np.asarray(view[PREDICTED_LABEL_COL], dtype=object), labels

    def predict(self, issue: IssueLike) -> IssuePrediction:
        return self.predict_many([issue])[0]

    def predict_many(self, issues: List[IssueLike]) -> List[IssuePrediction]:
        scores, predicted, labels = self._score(issue_frame(issues))
        return [
            IssuePrediction(
                area=str(predicted[i]),
                scores={label: float(scores[i, k]) for k, label in enumerate(labels)},
            )
            for i in range(scores.shape[0])
        ]

    def predict_frame(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Return `frame` with PredictedArea and its probability appended."""
        scores, predicted, _ = self._score(frame)
        out = frame.copy()
        out["PredictedArea"] = predicted
        out["PredictedScore"] = scores.max(axis=1)
        return out
