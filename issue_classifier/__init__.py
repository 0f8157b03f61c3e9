# issue_classifier/__init__.py
from __future__ import annotations

from .data import (
    ISSUE_COLUMNS,
    TEXT_COLUMNS,
    Issue,
    SchemaError,
    issue_frame,
    read_issues,
)
from .stages import Cache, Classify, Concatenate, DataView, DecodeLabel, Featurize, LabelEncode, Stage
from .pipeline import FittedPipeline, PipelineSpec, build_feature_pipeline
from .metrics import MulticlassMetrics, format_metrics_report, multiclass_metrics
from .artifacts import InputSchema, ModelArtifact, ModelLoadError, load_model, save_model
from .predict import IssuePrediction, IssuePredictor
from .training import TrainedModel, TrainingConfig, evaluate_model, train_model
from .workflow import RunConfig, RunResult, run_end_to_end
