# issue_classifier/data.py
from __future__ import annotations

import csv
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

logger = logging.getLogger(__name__)


# -----------------------------
# Dataset schema
# -----------------------------
TITLE_COL = "Title"
DESCRIPTION_COL = "Description"
LABEL_SOURCE_COL = "Area"

# Text columns consumed by the featurizers
TEXT_COLUMNS: List[str] = [TITLE_COL, DESCRIPTION_COL]

# Full labeled schema, in file order
ISSUE_COLUMNS: List[str] = [TITLE_COL, DESCRIPTION_COL, LABEL_SOURCE_COL]


class SchemaError(ValueError):
    """Input data does not carry the columns the pipeline expects."""


@dataclass(frozen=True)
class Issue:
    Title: str
    Description: str
    Area: Optional[str] = None

    def to_record(self) -> dict:
        rec = asdict(self)
        if rec[LABEL_SOURCE_COL] is None:
            rec.pop(LABEL_SOURCE_COL)
        return rec


IssueLike = Union[Issue, Mapping[str, Any]]


def validate_required_columns(columns: Iterable[str], required: Sequence[str]) -> None:
    """Raise SchemaError listing every column of `required` absent from `columns`."""
    present = set(columns)
    missing = [c for c in required if c not in present]
    if missing:
        raise SchemaError(f"Missing required columns: {missing}")


def read_issues(path: Union[str, Path], *, require_label: bool = True) -> pd.DataFrame:
    """
    Read a tab-separated issues file with a header row.

    Only the schema columns are returned (extra columns such as an ID are dropped).
    Empty fields are kept as empty strings; a row with too few fields for a
    required column is a SchemaError.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Dataset not found at {p.resolve()}")

    df = pd.read_csv(
        p,
        sep="\t",
        header=0,
        dtype=str,
        keep_default_na=False,
        encoding="utf-8",
        quoting=csv.QUOTE_NONE,  # issue text contains stray quotes
    )

    required = ISSUE_COLUMNS if require_label else TEXT_COLUMNS
    validate_required_columns(df.columns, required)

    keep = [c for c in ISSUE_COLUMNS if c in df.columns]
    out = df[keep].reset_index(drop=True)

    # With keep_default_na=False only a short row leaves NaN behind.
    short = out[list(required)].isna()
    if short.any().any():
        bad_rows = short.any(axis=1)
        lines = (out.index[bad_rows] + 2).tolist()  # 1-based, after the header
        cols = [c for c in required if short[c].any()]
        raise SchemaError(f"Rows missing fields {cols} at file lines {lines[:10]} of {p}")

    logger.info("Loaded %d issues from %s", len(out), p)
    return out


def issue_frame(records: Iterable[IssueLike]) -> pd.DataFrame:
    """Build a frame from ad-hoc issues without inventing missing columns."""
    rows = []
    for r in records:
        if isinstance(r, Issue):
            rows.append(r.to_record())
        elif isinstance(r, Mapping):
            rows.append(dict(r))
        else:
            raise TypeError(f"Expected an Issue or a mapping, got {type(r).__name__}")
    if not rows:
        return pd.DataFrame(columns=list(TEXT_COLUMNS))

    # Columns are the intersection over rows: a key missing on any row is missing.
    common = set(rows[0])
    for row in rows[1:]:
        common &= set(row)
    ordered = [c for c in rows[0] if c in common]
    return pd.DataFrame([{c: row[c] for c in ordered} for row in rows], columns=ordered)
