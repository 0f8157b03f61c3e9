# issue_classifier/config.py
"""
Project configuration settings.

Default locations of the issue datasets and the trained model artifact, plus the
default training hyperparameters. Paths are relative to the working directory the
program is started from; every one of them can be overridden on the command line.
"""

from pathlib import Path
from typing import Optional, Tuple

###############################################################################
# Directory paths
###############################################################################

# Tab-separated issue datasets (Title, Description, Area)
DATA_DIR: Path = Path("Data")
TRAIN_DATA_PATH: Path = DATA_DIR / "issues_train.tsv"
TEST_DATA_PATH: Path = DATA_DIR / "issues_test.tsv"

# Serialized fitted pipeline
MODELS_DIR: Path = Path("Models")
MODEL_PATH: Path = MODELS_DIR / "model.joblib"

###############################################################################
# Training defaults
###############################################################################

DEFAULT_SEED: int = 0
DEFAULT_C: float = 1.0
DEFAULT_MAX_ITER: int = 1000
DEFAULT_TOL: float = 1e-4
DEFAULT_WORD_NGRAM_RANGE: Tuple[int, int] = (1, 2)
DEFAULT_CHAR_NGRAM_RANGE: Tuple[int, int] = (3, 3)
DEFAULT_MAX_FEATURES: Optional[int] = None
DEFAULT_TOP_K: int = 3
