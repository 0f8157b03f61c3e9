# issue_classifier/training.py
from __future__ import annotations

import logging
import warnings
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .artifacts import InputSchema
from .config import (
    DEFAULT_C,
    DEFAULT_CHAR_NGRAM_RANGE,
    DEFAULT_MAX_FEATURES,
    DEFAULT_MAX_ITER,
    DEFAULT_SEED,
    DEFAULT_TOL,
    DEFAULT_TOP_K,
    DEFAULT_WORD_NGRAM_RANGE,
)
from .data import ISSUE_COLUMNS, validate_required_columns
from .metrics import MulticlassMetrics, multiclass_metrics
from .pipeline import FittedPipeline, PipelineSpec, build_feature_pipeline
from .predict import IssuePredictor
from .stages import LABEL_COL, MISSING_KEY, PREDICTED_LABEL_COL, SCORE_COL, Classify, DecodeLabel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingConfig:
    seed: int = DEFAULT_SEED

    # Classifier (multinomial logistic regression)
    C: float = DEFAULT_C
    max_iter: int = DEFAULT_MAX_ITER
    tol: float = DEFAULT_TOL

    # Text featurization
    word_ngram_range: Tuple[int, int] = DEFAULT_WORD_NGRAM_RANGE
    char_ngram_range: Tuple[int, int] = DEFAULT_CHAR_NGRAM_RANGE
    max_features: Optional[int] = DEFAULT_MAX_FEATURES
    sublinear_tf: bool = False

    # Evaluation
    top_k: int = DEFAULT_TOP_K

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["word_ngram_range"] = list(self.word_ngram_range)
        d["char_ngram_range"] = list(self.char_ngram_range)
        return d


@dataclass(frozen=True)
class TrainedModel:
    pipeline: FittedPipeline
    predictor: IssuePredictor
    schema: InputSchema
    config: TrainingConfig


def train_model(
    train_df: pd.DataFrame,
    spec: Optional[PipelineSpec] = None,
    config: Optional[TrainingConfig] = None,
) -> TrainedModel:
    """
    Fit the declared feature pipeline plus a classifier and a label decoder.

    Pure with respect to its inputs: `spec` is not modified and nothing is
    predicted here.
    """
    cfg = config or TrainingConfig()
    if spec is None:
        spec = build_feature_pipeline(cfg)

    validate_required_columns(train_df.columns, ISSUE_COLUMNS)
    if len(train_df) == 0:
        raise ValueError("Training data is empty.")

    training_spec = spec.append(
        Classify(
            C=cfg.C,
            max_iter=cfg.max_iter,
            tol=cfg.tol,
            random_state=cfg.seed,
        )
    ).append(DecodeLabel(input_col=PREDICTED_LABEL_COL))

    logger.info("Training on %d issues with stages %s", len(train_df), training_spec.stage_names)
    fitted = training_spec.fit(train_df)
    logger.info("Learned %d labels", len(fitted.label_vocabulary))

    return TrainedModel(
        pipeline=fitted,
        predictor=IssuePredictor(fitted),
        schema=InputSchema.from_frame(train_df),
        config=cfg,
    )


def evaluate_model(
    model: Union[TrainedModel, FittedPipeline],
    test_df: pd.DataFrame,
    *,
    top_k: int = DEFAULT_TOP_K,
) -> MulticlassMetrics:
    """Evaluate a fitted model on held-out labeled data (no refitting)."""
    pipeline = model.pipeline if isinstance(model, TrainedModel) else model

    validate_required_columns(test_df.columns, ISSUE_COLUMNS)
    if len(test_df) == 0:
        raise ValueError("Test data is empty; cannot evaluate.")

    view = pipeline.transform(test_df)
    y_true = np.asarray(view[LABEL_COL], dtype=np.int64)
    labels = view.key_values_of(SCORE_COL) or pipeline.label_vocabulary

    n_unknown = int(np.sum(y_true == MISSING_KEY))
    if n_unknown:
        warnings.warn(
            f"{n_unknown} test rows carry empty labels or labels unseen in training; they are excluded from metrics.",
            RuntimeWarning,
        )

    metrics = multiclass_metrics(y_true, view[SCORE_COL], labels, top_k=top_k)
    logger.info(
        "Evaluated %d rows: micro=%.3f macro=%.3f logloss=%.3f",
        metrics.n_samples,
        metrics.micro_accuracy,
        metrics.macro_accuracy,
        metrics.log_loss,
    )
    return metrics
