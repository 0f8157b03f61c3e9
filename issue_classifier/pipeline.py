# issue_classifier/pipeline.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple, Union

import pandas as pd
from sklearn.base import clone

from .data import DESCRIPTION_COL, LABEL_SOURCE_COL, TITLE_COL, validate_required_columns
from .stages import (
    FEATURES_COL,
    LABEL_COL,
    Cache,
    Classify,
    Concatenate,
    DataView,
    DecodeLabel,
    Featurize,
    LabelEncode,
    Stage,
)

if TYPE_CHECKING:
    from .training import TrainingConfig

logger = logging.getLogger(__name__)


def _as_view(data: Union[pd.DataFrame, DataView]) -> DataView:
    if isinstance(data, DataView):
        return data
    if isinstance(data, pd.DataFrame):
        return DataView.from_frame(data)
    raise TypeError(f"Expected a DataFrame or DataView, got {type(data).__name__}")


@dataclass(frozen=True)
class PipelineSpec:
    """Ordered, unfitted declaration of stages. Holds no data-dependent state."""
    stages: Tuple[Stage, ...] = ()

    def append(self, stage: Stage) -> "PipelineSpec":
        if not isinstance(stage, Stage):
            raise TypeError(f"Expected a Stage, got {type(stage).__name__}")
        return PipelineSpec(stages=self.stages + (stage,))

    @property
    def stage_names(self) -> Tuple[str, ...]:
        return tuple(type(s).__name__ for s in self.stages)

    def fit(self, data: Union[pd.DataFrame, DataView]) -> "FittedPipeline":
        """
        Fit every stage in one pass over `data`.

        Each declared stage is cloned before fitting, so the spec itself stays
        unfitted and can be fitted again.
        """
        if not self.stages:
            raise ValueError("Cannot fit an empty pipeline.")
        view = _as_view(data)
        fitted = []
        for stage in self.stages:
            est = clone(stage)
            logger.info("Fitting stage %s", type(est).__name__)
            est.fit(view)
            view = est.apply(view)
            fitted.append(est)
        return FittedPipeline(stages=tuple(fitted))


@dataclass(frozen=True)
class FittedPipeline:
    """Fitted stages applied in order. Never refitted once built."""
    stages: Tuple[Stage, ...]

    @property
    def required_columns(self) -> Tuple[str, ...]:
        cols = []
        for s in self.stages:
            for c in s.required_columns():
                if c not in cols:
                    cols.append(c)
        return tuple(cols)

    @property
    def label_vocabulary(self) -> Tuple[str, ...]:
        for s in reversed(self.stages):
            if isinstance(s, (DecodeLabel, Classify, LabelEncode)):
                return tuple(s.classes_)
        raise ValueError("Pipeline has no label-bearing stage.")

    def transform(self, data: Union[pd.DataFrame, DataView]) -> DataView:
        view = _as_view(data)
        validate_required_columns(view.column_names, self.required_columns)
        for s in self.stages:
            view = s.apply(view)
        return view


def build_feature_pipeline(config: Optional["TrainingConfig"] = None) -> PipelineSpec:
    """
    Declare the featurization chain:
      Area -> Label key, Title/Description -> TF-IDF vectors,
      concatenation into Features, then a cache checkpoint.
    """
    if config is None:
        from .training import TrainingConfig

        config = TrainingConfig()

    def _featurize(col: str) -> Featurize:
        return Featurize(
            input_col=col,
            output_col=f"{col}Featurized",
            word_ngram_range=tuple(config.word_ngram_range),
            char_ngram_range=tuple(config.char_ngram_range),
            max_features=config.max_features,
            sublinear_tf=bool(config.sublinear_tf),
        )

    return (
        PipelineSpec()
        .append(LabelEncode(input_col=LABEL_SOURCE_COL, output_col=LABEL_COL))
        .append(_featurize(TITLE_COL))
        .append(_featurize(DESCRIPTION_COL))
        .append(Concatenate(FEATURES_COL, (f"{TITLE_COL}Featurized", f"{DESCRIPTION_COL}Featurized")))
        .append(Cache(columns=(FEATURES_COL,)))
    )
