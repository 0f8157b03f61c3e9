from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import pytest

from issue_classifier.training import TrainingConfig, train_model
from issue_classifier.data import read_issues

HEADER = ("ID", "Area", "Title", "Description")

TRAIN_ROWS = [
    ("1", "area-System.Net", "WebSockets connection drops", "The websocket connection drops after a few seconds of idle network traffic"),
    ("2", "area-System.Net", "HttpClient timeout ignored", "HttpClient request hangs over the network and the timeout setting is ignored"),
    ("3", "area-System.Net", "Socket send is slow", "Sending data over a socket is slow on the loopback network interface"),
    ("4", "area-System.Net", "DNS lookup fails", "Dns resolution fails for hosts on the local network with sockets"),
    ("5", "area-System.Threading", "Deadlock in SemaphoreSlim", "Threads deadlock when waiting on SemaphoreSlim from multiple threads"),
    ("6", "area-System.Threading", "Thread pool starvation", "The thread pool starves when many threads block on locks"),
    ("7", "area-System.Threading", "Monitor lock not released", "A lock taken by one thread is never released and other threads wait forever"),
    ("8", "area-System.Threading", "Timer callback races", "Timer callbacks run concurrently on different threads and race"),
    ("9", "area-Infrastructure", "Build fails on CI", "The CI build fails while restoring packages for the infrastructure scripts"),
    ("10", "area-Infrastructure", "Update build tools", "Update the build tools version used by the official build pipeline"),
    ("11", "area-Infrastructure", "Flaky CI leg", "The CI pipeline leg on linux is flaky and the build times out"),
    ("12", "area-Infrastructure", "Packaging script broken", "The packaging script in the build infrastructure produces broken packages"),
]

TEST_ROWS = [
    ("13", "area-System.Net", "Socket connection reset", "The network socket connection is reset by the server"),
    ("14", "area-System.Threading", "Threads hang on lock", "Several threads hang waiting for the same lock"),
    ("15", "area-Infrastructure", "CI build broken", "The official CI build is broken after the tools update"),
]


def write_tsv(path: Path, rows: Iterable[Sequence[str]], header: Sequence[str] = HEADER) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["\t".join(header)] + ["\t".join(r) for r in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def train_path(tmp_path: Path) -> Path:
    return write_tsv(tmp_path / "Data" / "issues_train.tsv", TRAIN_ROWS)


@pytest.fixture
def test_path(tmp_path: Path) -> Path:
    return write_tsv(tmp_path / "Data" / "issues_test.tsv", TEST_ROWS)


@pytest.fixture
def train_df(train_path: Path):
    return read_issues(train_path)


@pytest.fixture
def test_df(test_path: Path):
    return read_issues(test_path)


@pytest.fixture
def training_config() -> TrainingConfig:
    return TrainingConfig(seed=0)


@pytest.fixture
def trained(train_df, training_config):
    return train_model(train_df, config=training_config)
