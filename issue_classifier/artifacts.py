# issue_classifier/artifacts.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import joblib
import numpy as np
import pandas as pd
import scipy
import sklearn
from joblib import dump, load

from .pipeline import FittedPipeline

logger = logging.getLogger(__name__)


class ModelLoadError(RuntimeError):
    """A model artifact exists but could not be deserialized."""


@dataclass(frozen=True)
class InputSchema:
    """Column names and dtypes of the data the pipeline was trained on."""
    columns: Tuple[Tuple[str, str], ...]

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "InputSchema":
        return cls(columns=tuple((str(c), str(df[c].dtype)) for c in df.columns))

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.columns)


@dataclass
class ModelArtifact:
    """Everything needed to predict again: fitted stages, input schema and metadata."""
    pipeline: FittedPipeline
    schema: InputSchema
    metadata: Dict[str, Any] = field(default_factory=dict)

    def save(self, path: Union[str, Path]) -> str:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        dump(self, str(p), compress=3)
        return str(p)

    @staticmethod
    def load(path: Union[str, Path]) -> "ModelArtifact":
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Model artifact not found at {p.resolve()}")
        try:
            obj = load(str(p))
        except Exception as exc:
            raise ModelLoadError(f"Could not read model artifact at {p}: {exc}") from exc
        if not isinstance(obj, ModelArtifact):
            raise TypeError(f"Loaded object is not a ModelArtifact: {type(obj)}")
        return obj


def _library_versions() -> Dict[str, str]:
    return {
        "scikit-learn": sklearn.__version__,
        "numpy": np.__version__,
        "scipy": scipy.__version__,
        "pandas": pd.__version__,
        "joblib": joblib.__version__,
    }


def save_model(
    model: FittedPipeline,
    schema: InputSchema,
    path: Union[str, Path],
    *,
    metadata: Optional[Dict[str, Any]] = None,
) -> str:
    """Persist a fitted pipeline with its input schema. Returns the written path."""
    meta: Dict[str, Any] = {
        "label_vocabulary": list(model.label_vocabulary),
        "required_columns": list(model.required_columns),
        "stages": [type(s).__name__ for s in model.stages],
        "versions": _library_versions(),
    }
    if metadata:
        meta.update(metadata)
    out = ModelArtifact(pipeline=model, schema=schema, metadata=meta).save(path)
    logger.info("Saved model to %s", out)
    return out


def load_model(path: Union[str, Path]) -> Tuple[FittedPipeline, InputSchema]:
    """Load a persisted pipeline and the schema it was trained on."""
    art = ModelArtifact.load(path)
    saved = art.metadata.get("versions", {}).get("scikit-learn")
    if saved and saved != sklearn.__version__:
        logger.warning(
            "Model at %s was saved with scikit-learn %s; running %s", path, saved, sklearn.__version__
        )
    logger.info("Loaded model from %s", path)
    return art.pipeline, art.schema
