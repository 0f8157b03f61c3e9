# issue_classifier/metrics.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, confusion_matrix, recall_score

from .stages import MISSING_KEY

# Probabilities are clipped here before taking the log.
LOG_LOSS_EPS = 1e-15


@dataclass(frozen=True)
class MulticlassMetrics:
    micro_accuracy: float
    macro_accuracy: float
    log_loss: float
    log_loss_reduction: float
    top_k: int
    top_k_accuracy: float
    per_class_log_loss: Dict[str, float]
    confusion: pd.DataFrame = field(compare=False)
    n_samples: int = 0
    n_unknown_labels: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "micro_accuracy": self.micro_accuracy,
            "macro_accuracy": self.macro_accuracy,
            "log_loss": self.log_loss,
            "log_loss_reduction": self.log_loss_reduction,
            "top_k": self.top_k,
            "top_k_accuracy": self.top_k_accuracy,
            "per_class_log_loss": dict(self.per_class_log_loss),
            "confusion_matrix": {
                "labels": [str(c) for c in self.confusion.columns],
                "counts": self.confusion.to_numpy(dtype=int).tolist(),
            },
            "n_samples": self.n_samples,
            "n_unknown_labels": self.n_unknown_labels,
        }


def multiclass_metrics(
    y_true: Any,
    scores: Any,
    labels: Sequence[str],
    *,
    top_k: int = 3,
) -> MulticlassMetrics:
    """
    Aggregate quality metrics from integer label keys and a score matrix.

    y_true holds keys into `labels`; rows keyed MISSING_KEY (labels never seen in
    training) are left out and counted in n_unknown_labels.
    scores is (n_rows, len(labels)) with per-class probabilities.
    """
    y_all = np.asarray(y_true, dtype=np.int64).ravel()
    P_all = np.asarray(scores, dtype=np.float64)
    n_labels = len(labels)

    if P_all.ndim != 2 or P_all.shape[0] != y_all.size or P_all.shape[1] != n_labels:
        raise ValueError(
            f"Score matrix shape {P_all.shape} does not match {y_all.size} rows x {n_labels} labels."
        )

    known = y_all != MISSING_KEY
    n_unknown = int(np.sum(~known))
    y = y_all[known]
    P = P_all[known]
    n = int(y.size)
    if n == 0:
        raise ValueError("No evaluable rows: the test set is empty or holds only unseen labels.")

    y_pred = np.argmax(P, axis=1)
    present = np.unique(y)

    micro = float(accuracy_score(y, y_pred))
    # Mean per-class recall over classes present in the test labels
    macro = float(recall_score(y, y_pred, labels=present, average="macro", zero_division=0))

    p_true = np.clip(P[np.arange(n), y], LOG_LOSS_EPS, 1.0)
    row_loss = -np.log(p_true)
    ll = float(np.mean(row_loss))

    counts = np.bincount(y, minlength=n_labels).astype(np.float64)
    prior = counts[present] / float(n)
    prior_ll = float(-np.sum(prior * np.log(prior)))
    reduction = (prior_ll - ll) / prior_ll if prior_ll > 0.0 else 0.0

    per_class = {str(labels[c]): float(np.mean(row_loss[y == c])) for c in present}

    k = int(max(1, min(int(top_k), n_labels)))
    top_idx = np.argsort(-P, axis=1, kind="stable")[:, :k]
    top_k_acc = float(np.mean(np.any(top_idx == y[:, None], axis=1)))

    cm = confusion_matrix(y, y_pred, labels=np.arange(n_labels))
    cm_df = pd.DataFrame(cm, index=list(labels), columns=list(labels))
    cm_df.index.name = "true"
    cm_df.columns.name = "predicted"

    return MulticlassMetrics(
        micro_accuracy=micro,
        macro_accuracy=macro,
        log_loss=ll,
        log_loss_reduction=float(reduction),
        top_k=k,
        top_k_accuracy=top_k_acc,
        per_class_log_loss=per_class,
        confusion=cm_df,
        n_samples=n,
        n_unknown_labels=n_unknown,
    )


def format_metrics_report(metrics: MulticlassMetrics) -> str:
    rule = "*" * 109
    sub = "*" + "-" * 108
    lines = [
        rule,
        "*       Metrics for Multi-class Classification model - Test Data     ",
        sub,
        f"*       MicroAccuracy:    {metrics.micro_accuracy:.3f}",
        f"*       MacroAccuracy:    {metrics.macro_accuracy:.3f}",
        f"*       LogLoss:          {metrics.log_loss:.3f}",
        f"*       LogLossReduction: {metrics.log_loss_reduction:.3f}",
        f"*       Top{metrics.top_k}Accuracy:     {metrics.top_k_accuracy:.3f}",
        rule,
    ]
    return "\n".join(lines)
