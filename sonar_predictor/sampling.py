from __future__ import annotations

"""
Random labeled example for the demo, drawn from the separate sample source.
"""

from pathlib import Path

import numpy as np

from .constants import LABEL_NAMES, UNKNOWN_LABEL_NAME
from .data_prep import json_float, read_lines, split_line
from .errors import NoSamplesError


def label_name(raw_label: str) -> str:
    return LABEL_NAMES.get(raw_label, UNKNOWN_LABEL_NAME)


def pick_random_sample(
    path: Path, rng: np.random.Generator | None = None
) -> tuple[list[float | None], str]:
    """
    Pick one non-blank line uniformly at random and return its bands and label
    name. The source is re-read on every call. Unparsable bands come back as None.
    """
    lines = read_lines(path)
    if not lines:
        raise NoSamplesError(f"No samples available in {path}")

    rng = rng or np.random.default_rng()
    line = lines[int(rng.integers(len(lines)))]
    parsed, raw_label = split_line(line)
    features = [json_float(p.value) for p in parsed]
    return features, label_name(raw_label)
