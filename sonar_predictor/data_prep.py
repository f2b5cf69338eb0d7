from __future__ import annotations

"""
Loading of the sonar text sources into labeled samples.

Each non-blank line holds 60 comma-separated band intensities followed by a
single-character class label ('R' or 'M').
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, NamedTuple, Sequence

import numpy as np
import pandas as pd

from .constants import FEATURE_NAMES, LABEL_NAMES, MINE, N_FEATURES, ROCK
from .errors import LoadError
from .log import get_logger

logger = get_logger(__name__)


class ParsedValue(NamedTuple):
    """Outcome of parsing one numeric token; value is NaN when ok is False."""

    value: float
    ok: bool


def parse_float_token(token: str | None) -> ParsedValue:
    if token is None:
        return ParsedValue(math.nan, False)
    text = token.strip()
    if not text:
        return ParsedValue(math.nan, False)
    try:
        value = float(text)
    except ValueError:
        return ParsedValue(math.nan, False)
    if not math.isfinite(value):
        return ParsedValue(math.nan, False)
    return ParsedValue(value, True)


def json_float(value: float) -> float | None:
    """NaN has no JSON form; report it as null."""
    return None if math.isnan(value) else value


@dataclass(frozen=True)
class Sample:
    features: tuple[float, ...]
    label: str
    id: int | None = None

    @property
    def label_name(self) -> str:
        return LABEL_NAMES[self.label]

    @property
    def target(self) -> int:
        return int(self.label == MINE)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "features": [json_float(v) for v in self.features],
            "label": self.label,
        }


class Dataset:
    """
    Ordered, immutable collection of samples with a cached feature matrix.

    `features` is an (N, 60) read-only float array in sample order and
    `targets` holds 1.0 for Mine and 0.0 for Rock.
    """

    def __init__(
        self,
        samples: Sequence[Sample],
        source: Path | None = None,
        malformed_tokens: int = 0,
    ):
        if not samples:
            raise LoadError(f"No usable rows in {source}" if source else "Dataset holds no samples")
        for sample in samples:
            if len(sample.features) != N_FEATURES:
                raise ValueError(
                    f"Sample {sample.id} has {len(sample.features)} features, expected {N_FEATURES}"
                )
            if sample.label not in LABEL_NAMES:
                raise ValueError(f"Sample {sample.id} has unknown label {sample.label!r}")

        self.samples = tuple(samples)
        self.source = source
        self.malformed_tokens = malformed_tokens

        self.features = np.array([s.features for s in self.samples], dtype=float)
        self.features.setflags(write=False)
        self.targets = np.array([s.target for s in self.samples], dtype=float)
        self.targets.setflags(write=False)
        self._by_id = {s.id: s for s in self.samples if s.id is not None}

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples)

    def get(self, sample_id: int) -> Sample | None:
        return self._by_id.get(sample_id)

    def label_counts(self) -> dict[str, int]:
        mines = int(self.targets.sum())
        return {ROCK: len(self) - mines, MINE: mines}

    def to_frame(self) -> pd.DataFrame:
        """One row per sample: band_01..band_60 plus the label, indexed by id."""
        frame = pd.DataFrame(self.features, columns=FEATURE_NAMES)
        frame["label"] = [s.label for s in self.samples]
        frame.index = pd.Index([s.id for s in self.samples], name="id")
        return frame


def read_lines(path: Path) -> list[str]:
    """Return the non-blank lines of a text source, raising LoadError if unreadable."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadError(f"Cannot read {path}: {exc}") from exc
    return [line for line in content.split("\n") if line.strip()]


def split_line(line: str) -> tuple[list[ParsedValue], str]:
    """Parse the 60 feature tokens of a line; missing tokens count as failures."""
    parts = line.split(",")
    parsed = [
        parse_float_token(parts[i] if i < len(parts) else None) for i in range(N_FEATURES)
    ]
    raw_label = parts[N_FEATURES].strip() if len(parts) > N_FEATURES else ""
    return parsed, raw_label


def load_dataset(path: Path) -> Dataset:
    """
    Parse the training source into a Dataset with 1-based ids in file order.

    Missing labels default to Rock. Unparsable feature tokens are kept as NaN
    and counted; rows holding them are not dropped.
    """
    path = Path(path)
    samples = []
    malformed = 0

    for row_id, line in enumerate(read_lines(path), start=1):
        parsed, raw_label = split_line(line)
        failures = sum(1 for p in parsed if not p.ok)
        if failures:
            malformed += failures
            logger.warning(
                "Row %d of %s has %d unparsable feature token(s); kept as NaN",
                row_id,
                path,
                failures,
            )

        label = raw_label or ROCK
        if label not in LABEL_NAMES:
            logger.warning("Row %d of %s has unknown label %r; using %s", row_id, path, label, ROCK)
            label = ROCK

        samples.append(
            Sample(features=tuple(p.value for p in parsed), label=label, id=row_id)
        )

    dataset = Dataset(samples, source=path, malformed_tokens=malformed)
    counts = dataset.label_counts()
    logger.info(
        "Loaded %d samples from %s (rocks=%d, mines=%d)",
        len(dataset),
        path,
        counts[ROCK],
        counts[MINE],
    )
    return dataset


def describe_dataset(dataset: Dataset) -> dict:
    """Size, class balance and per-band summary statistics."""
    frame = dataset.to_frame()
    bands = frame[FEATURE_NAMES]
    return {
        "num_samples": len(dataset),
        "label_counts": dataset.label_counts(),
        "mine_rate": float(dataset.targets.mean()),
        "malformed_tokens": dataset.malformed_tokens,
        "rows_with_nan": int(bands.isna().any(axis=1).sum()),
        "band_summary": bands.agg(["mean", "std", "min", "max"]).T,
    }
