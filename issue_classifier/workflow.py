# issue_classifier/workflow.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from . import config
from .artifacts import InputSchema, load_model, save_model
from .data import Issue, read_issues
from .metrics import MulticlassMetrics
from .pipeline import build_feature_pipeline
from .predict import IssuePrediction, IssuePredictor
from .training import TrainingConfig, evaluate_model, train_model

logger = logging.getLogger(__name__)


SAMPLE_ISSUES: Tuple[Issue, ...] = (
    Issue(
        Title="Threads are failed",
        Description="When i am use Threads my variables null take strong and not fail to crash.",
    ),
    Issue(
        Title="Entity Framework crashes",
        Description="When connecting to the database, EF is crashing",
    ),
)


@dataclass(frozen=True)
class RunConfig:
    train_path: Path = config.TRAIN_DATA_PATH
    test_path: Path = config.TEST_DATA_PATH
    model_path: Path = config.MODEL_PATH
    training: TrainingConfig = field(default_factory=TrainingConfig)
    sample_issues: Tuple[Issue, ...] = SAMPLE_ISSUES


@dataclass(frozen=True)
class RunResult:
    metrics: MulticlassMetrics
    model_path: str
    schema: InputSchema
    labels: Tuple[str, ...]
    predictions: Tuple[IssuePrediction, ...]


def run_end_to_end(cfg: RunConfig) -> RunResult:
    """
    Train -> evaluate -> save -> reload -> predict, once and in order.

    Each step hands its result to the next explicitly; the only model used for the
    sample predictions is the one read back from disk.
    """
    logger.info("Loading training data from %s", cfg.train_path)
    train_df = read_issues(cfg.train_path)

    spec = build_feature_pipeline(cfg.training)
    trained = train_model(train_df, spec, cfg.training)

    logger.info("Loading test data from %s", cfg.test_path)
    test_df = read_issues(cfg.test_path)
    metrics = evaluate_model(trained, test_df, top_k=cfg.training.top_k)

    model_path = save_model(
        trained.pipeline,
        trained.schema,
        cfg.model_path,
        metadata={"training_config": cfg.training.to_dict(), "n_train_rows": int(len(train_df))},
    )

    loaded, schema = load_model(model_path)
    predictor = IssuePredictor(loaded)
    predictions = tuple(predictor.predict(issue) for issue in cfg.sample_issues)

    return RunResult(
        metrics=metrics,
        model_path=model_path,
        schema=schema,
        labels=predictor.labels,
        predictions=predictions,
    )
