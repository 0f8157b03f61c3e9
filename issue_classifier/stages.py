# issue_classifier/stages.py
"""
Pipeline stage variants.

A fitted model is an ordered tuple of these stages. Every stage exposes the same
two operations:

- fit(view)   learns data-dependent state (vocabulary, TF-IDF statistics, weights)
- apply(view) returns a new DataView with the stage's output column added

Stages are scikit-learn estimators, so `sklearn.base.clone` yields an unfitted copy
of a declared stage. Learned attributes carry a trailing underscore.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import sparse
from sklearn.base import BaseEstimator
from sklearn.dummy import DummyClassifier
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import FeatureUnion, Pipeline
from sklearn.preprocessing import LabelEncoder, Normalizer
from sklearn.utils.validation import check_is_fitted

from .data import LABEL_SOURCE_COL, SchemaError

logger = logging.getLogger(__name__)


# Column names produced inside the pipeline
LABEL_COL = "Label"
FEATURES_COL = "Features"
SCORE_COL = "Score"
PREDICTED_LABEL_COL = "PredictedLabel"

# Key assigned to label values outside the training vocabulary
MISSING_KEY = -1


def _n_rows(values: Any) -> int:
    if sparse.issparse(values) or isinstance(values, np.ndarray):
        return int(values.shape[0])
    return len(values)


def _as_text(values: Any, column: str) -> np.ndarray:
    """Coerce a text column to an object array of str. Null entries are a SchemaError."""
    s = pd.Series(values, dtype=object)
    missing = s.isna().to_numpy()
    if missing.any():
        rows = np.flatnonzero(missing).tolist()
        raise SchemaError(f"Column '{column}' has missing values at rows {rows[:10]}")
    return s.astype(str).to_numpy(dtype=object)


def _as_label(values: Any) -> np.ndarray:
    """Label text as str, with null or empty labels as None."""
    s = pd.Series(values, dtype=object)
    out = s.astype(str).to_numpy(dtype=object)
    out[s.isna().to_numpy() | (out == "")] = None
    return out


@dataclass(frozen=True)
class DataView:
    """Immutable bag of equally long columns passed between stages.

    `key_values` annotates key-typed columns (integer labels, score slots) with the
    vocabulary their integers index into.
    """
    columns: Mapping[str, Any]
    n_rows: int
    key_values: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "DataView":
        cols = {str(c): df[c].to_numpy(dtype=object) for c in df.columns}
        return cls(columns=cols, n_rows=int(len(df)))

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(self.columns)

    def __contains__(self, name: object) -> bool:
        return name in self.columns

    def __getitem__(self, name: str) -> Any:
        if name not in self.columns:
            raise SchemaError(f"Column '{name}' not found; available columns: {list(self.columns)}")
        return self.columns[name]

    def key_values_of(self, name: str) -> Optional[Tuple[str, ...]]:
        return self.key_values.get(name)

    def with_column(
        self,
        name: str,
        values: Any,
        *,
        key_values: Optional[Sequence[str]] = None,
    ) -> "DataView":
        n = _n_rows(values)
        if n != self.n_rows:
            raise ValueError(f"Column '{name}' has {n} rows; the view has {self.n_rows}.")
        cols = dict(self.columns)
        cols[name] = values
        keys = dict(self.key_values)
        if key_values is None:
            keys.pop(name, None)
        else:
            keys[name] = tuple(key_values)
        return DataView(columns=cols, n_rows=self.n_rows, key_values=keys)


class Stage(BaseEstimator):
    """Base class for all stage variants."""

    def fit(self, view: DataView) -> "Stage":
        return self

    def apply(self, view: DataView) -> DataView:
        raise NotImplementedError

    def required_columns(self) -> Tuple[str, ...]:
        """Raw input columns this stage needs at prediction time."""
        return ()


class LabelEncode(Stage):
    """
    Map the category text to an integer key over the sorted training vocabulary.

    Null or empty labels never enter the vocabulary; they get MISSING_KEY.
    """

    def __init__(self, input_col: str = LABEL_SOURCE_COL, output_col: str = LABEL_COL):
        self.input_col = input_col
        self.output_col = output_col

    def fit(self, view: DataView) -> "LabelEncode":
        values = _as_label(view[self.input_col])
        labeled = np.array([v for v in values if v is not None], dtype=object)
        if labeled.size == 0:
            raise ValueError(f"Cannot learn a label vocabulary: '{self.input_col}' has no non-empty values.")
        encoder = LabelEncoder().fit(labeled)
        self.classes_ = tuple(str(c) for c in encoder.classes_)
        logger.debug("Label vocabulary (%d): %s", len(self.classes_), self.classes_)
        return self

    def apply(self, view: DataView) -> DataView:
        check_is_fitted(self, "classes_")
        # Unlabeled data (prediction time) passes through.
        if self.input_col not in view:
            return view
        lookup = {label: i for i, label in enumerate(self.classes_)}
        values = _as_label(view[self.input_col])
        keys = np.fromiter(
            (lookup.get(v, MISSING_KEY) for v in values),
            dtype=np.int64,
            count=values.size,
        )
        return view.with_column(self.output_col, keys, key_values=self.classes_)


class Featurize(Stage):
    """
    TF-IDF text featurizer.

    Word n-grams and character n-grams (within word boundaries) are extracted by two
    TfidfVectorizers joined in a FeatureUnion, then the joint vector is L2-normalized.
    """

    def __init__(
        self,
        input_col: str,
        output_col: Optional[str] = None,
        word_ngram_range: Tuple[int, int] = (1, 2),
        char_ngram_range: Tuple[int, int] = (3, 3),
        max_features: Optional[int] = None,
        sublinear_tf: bool = False,
    ):
        self.input_col = input_col
        self.output_col = output_col
        self.word_ngram_range = word_ngram_range
        self.char_ngram_range = char_ngram_range
        self.max_features = max_features
        self.sublinear_tf = sublinear_tf

    @property
    def output_name(self) -> str:
        return self.output_col or f"{self.input_col}Featurized"

    def required_columns(self) -> Tuple[str, ...]:
        return (self.input_col,)

    def _make_vectorizer(self) -> Pipeline:
        words = TfidfVectorizer(
            analyzer="word",
            lowercase=True,
            ngram_range=tuple(self.word_ngram_range),
            max_features=self.max_features,
            sublinear_tf=self.sublinear_tf,
            dtype=np.float32,
        )
        chars = TfidfVectorizer(
            analyzer="char_wb",
            lowercase=True,
            ngram_range=tuple(self.char_ngram_range),
            max_features=self.max_features,
            sublinear_tf=self.sublinear_tf,
            dtype=np.float32,
        )
        return Pipeline(
            steps=[
                ("ngrams", FeatureUnion([("words", words), ("chars", chars)])),
                ("l2", Normalizer(norm="l2")),
            ]
        )

    def fit(self, view: DataView) -> "Featurize":
        texts = _as_text(view[self.input_col], self.input_col)
        self.vectorizer_ = self._make_vectorizer().fit(texts)
        union = self.vectorizer_.named_steps["ngrams"]
        self.n_features_ = int(sum(len(v.vocabulary_) for _, v in union.transformer_list))
        logger.debug("Featurized '%s' into %d dimensions", self.input_col, self.n_features_)
        return self

    def apply(self, view: DataView) -> DataView:
        check_is_fitted(self, "vectorizer_")
        texts = _as_text(view[self.input_col], self.input_col)
        X = sparse.csr_matrix(self.vectorizer_.transform(texts), dtype=np.float32)
        return view.with_column(self.output_name, X)


class Concatenate(Stage):
    """Stack vector columns side by side into one feature column."""

    def __init__(
        self,
        output_col: str = FEATURES_COL,
        input_cols: Tuple[str, ...] = ("TitleFeaturized", "DescriptionFeaturized"),
    ):
        self.output_col = output_col
        self.input_cols = input_cols

    def fit(self, view: DataView) -> "Concatenate":
        if not self.input_cols:
            raise ValueError("Concatenate needs at least one input column.")
        self.widths_ = tuple(int(view[c].shape[1]) for c in self.input_cols)
        return self

    def apply(self, view: DataView) -> DataView:
        check_is_fitted(self, "widths_")
        blocks = []
        for col, width in zip(self.input_cols, self.widths_):
            block = sparse.csr_matrix(view[col])
            if block.shape[1] != width:
                raise SchemaError(f"Column '{col}' has width {block.shape[1]}; expected {width}.")
            blocks.append(block)
        merged = sparse.hstack(blocks, format="csr")
        return view.with_column(self.output_col, merged)


class Cache(Stage):
    """
    Checkpoint: materialize vector columns as float32 CSR matrices.

    The classifier makes many passes over the features; materializing here means
    those passes read a compact matrix instead of recomputing upstream stages.
    """

    def __init__(self, columns: Tuple[str, ...] = (FEATURES_COL,)):
        self.columns = columns

    @staticmethod
    def _materialize(X: Any) -> Any:
        if sparse.issparse(X):
            X = X.tocsr()
            if X.dtype != np.float32:
                X = X.astype(np.float32)
            return X
        Xn = np.asarray(X)
        if Xn.dtype != np.float32:
            Xn = Xn.astype(np.float32, copy=False)
        return Xn

    def apply(self, view: DataView) -> DataView:
        for col in self.columns:
            view = view.with_column(col, self._materialize(view[col]), key_values=view.key_values_of(col))
        return view


class Classify(Stage):
    """
    Multiclass maximum-entropy classifier.

    Produces a Score matrix with one column per vocabulary label and the arg-max
    PredictedLabel key. A training set with a single class yields a prior model that
    assigns that class probability 1.0.
    """

    def __init__(
        self,
        label_col: str = LABEL_COL,
        features_col: str = FEATURES_COL,
        score_col: str = SCORE_COL,
        predicted_col: str = PREDICTED_LABEL_COL,
        C: float = 1.0,
        max_iter: int = 1000,
        tol: float = 1e-4,
        random_state: int = 0,
    ):
        self.label_col = label_col
        self.features_col = features_col
        self.score_col = score_col
        self.predicted_col = predicted_col
        self.C = C
        self.max_iter = max_iter
        self.tol = tol
        self.random_state = random_state

    def _make_estimator(self, n_classes: int) -> Any:
        if n_classes < 2:
            return DummyClassifier(strategy="prior")
        return LogisticRegression(
            C=float(self.C),
            solver="saga",
            max_iter=int(self.max_iter),
            tol=float(self.tol),
            random_state=int(self.random_state),
        )

    def fit(self, view: DataView) -> "Classify":
        vocab = view.key_values_of(self.label_col)
        if vocab is None:
            raise SchemaError(f"Column '{self.label_col}' is not a key column; encode the label first.")

        y = np.asarray(view[self.label_col], dtype=np.int64)
        rows = np.flatnonzero(y != MISSING_KEY)
        if rows.size == 0:
            raise ValueError("Training data contains no labeled rows.")

        X = view[self.features_col][rows]
        y = y[rows]
        n_classes = int(np.unique(y).size)

        est = self._make_estimator(n_classes)
        logger.info(
            "Training %s on %d rows x %d features (%d classes)",
            type(est).__name__,
            X.shape[0],
            X.shape[1],
            n_classes,
        )
        est.fit(X, y)

        self.estimator_ = est
        self.classes_ = tuple(vocab)
        return self

    def predict_scores(self, X: Any) -> np.ndarray:
        """Class probabilities laid out over the full training vocabulary."""
        check_is_fitted(self, "estimator_")
        proba = np.asarray(self.estimator_.predict_proba(X), dtype=np.float64)
        scores = np.zeros((proba.shape[0], len(self.classes_)), dtype=np.float64)
        scores[:, np.asarray(self.estimator_.classes_, dtype=int)] = proba
        return scores

    def apply(self, view: DataView) -> DataView:
        scores = self.predict_scores(view[self.features_col])
        predicted = np.argmax(scores, axis=1).astype(np.int64)
        view = view.with_column(self.score_col, scores, key_values=self.classes_)
        return view.with_column(self.predicted_col, predicted, key_values=self.classes_)


class DecodeLabel(Stage):
    """Map integer keys back to the category strings they were encoded from."""

    def __init__(self, input_col: str = PREDICTED_LABEL_COL, output_col: Optional[str] = None):
        self.input_col = input_col
        self.output_col = output_col

    def fit(self, view: DataView) -> "DecodeLabel":
        vocab = view.key_values_of(self.input_col)
        if vocab is None:
            raise SchemaError(f"Column '{self.input_col}' carries no key values to decode.")
        self.classes_ = tuple(vocab)
        return self

    def apply(self, view: DataView) -> DataView:
        check_is_fitted(self, "classes_")
        keys = np.asarray(view[self.input_col], dtype=np.int64)
        labels = np.asarray(self.classes_, dtype=object)
        decoded = labels.take(np.clip(keys, 0, len(labels) - 1))
        decoded[keys == MISSING_KEY] = None
        return view.with_column(self.output_col or self.input_col, decoded)


