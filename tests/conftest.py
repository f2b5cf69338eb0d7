"""
Pytest configuration and shared fixtures for sonar_predictor tests.
"""

from pathlib import Path

import numpy as np
import pytest

from sonar_predictor import ServiceConfig, SonarService


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests"
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests by default unless --run-slow is passed."""
    if config.getoption("--run-slow"):
        return

    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def format_row(features, label: str = "") -> str:
    values = ",".join(f"{v:.4f}" for v in features)
    return f"{values},{label}" if label else values


def write_rows(path: Path, rows) -> Path:
    """Write (features, label) pairs as sonar lines."""
    path.write_text("\n".join(format_row(features, label) for features, label in rows) + "\n", encoding="utf-8")
    return path


def synthetic_rows(n_rows: int = 30, seed: int = 7):
    """Mines centred on 0.6, rocks on 0.3, alternating, values clipped to [0, 1]."""
    rng = np.random.default_rng(seed)
    rows = []
    for i in range(n_rows):
        label = "M" if i % 2 == 0 else "R"
        centre = 0.6 if label == "M" else 0.3
        features = np.clip(rng.normal(centre, 0.1, size=60), 0.0, 1.0)
        rows.append((np.round(features, 4).tolist(), label))
    return rows


@pytest.fixture
def sonar_rows():
    return synthetic_rows()


@pytest.fixture
def sonar_csv(tmp_path: Path, sonar_rows) -> Path:
    return write_rows(tmp_path / "sonar.csv", sonar_rows)


@pytest.fixture
def two_sample_csv(tmp_path: Path) -> Path:
    """One Mine at 0.5 everywhere, one Rock at 0.1 everywhere."""
    return write_rows(tmp_path / "two.csv", [([0.5] * 60, "M"), ([0.1] * 60, "R")])


@pytest.fixture
def samples_txt(tmp_path: Path, sonar_rows) -> Path:
    return write_rows(tmp_path / "sonar_samples.txt", sonar_rows[:4])


@pytest.fixture
def service(sonar_csv: Path, samples_txt: Path) -> SonarService:
    return SonarService(
        ServiceConfig(dataset_path=sonar_csv, samples_path=samples_txt),
        rng=np.random.default_rng(0),
    )
