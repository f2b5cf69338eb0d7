from __future__ import annotations

"""
Checks applied to a submitted feature vector before it reaches the model:
shape and numeric parsing, the [0, 1] range, and membership in the training set.
"""

import math
import numbers
from typing import NamedTuple, Sequence

import numpy as np

from .constants import (
    FEATURE_MAX,
    FEATURE_MIN,
    INVALID_FEATURES_MESSAGE,
    MATCH_TOLERANCE,
    N_FEATURES,
)
from .data_prep import Dataset, Sample, parse_float_token
from .errors import ValidationError


class RangeCheck(NamedTuple):
    valid: bool
    message: str | None = None
    index: int | None = None  # 1-based position of the first offending value


def _parse_element(value) -> float | None:
    # bool is an int subclass but never a band intensity
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        parsed = parse_float_token(value)
        return parsed.value if parsed.ok else None
    return None


def parse_feature_vector(raw) -> list[float]:
    """
    Turn request input into 60 finite floats or raise ValidationError.

    Numeric strings are accepted; booleans, None and non-finite values are not.
    """
    if raw is None or isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise ValidationError(INVALID_FEATURES_MESSAGE)
    if len(raw) != N_FEATURES:
        raise ValidationError(INVALID_FEATURES_MESSAGE)

    values = []
    for i, element in enumerate(raw):
        number = _parse_element(element)
        if number is None:
            raise ValidationError(f"Feature {i + 1} is not a valid number. Got: {element!r}")
        values.append(number)
    return values


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def check_feature_range(features: Sequence[float]) -> RangeCheck:
    for i, value in enumerate(features):
        if value < FEATURE_MIN or value > FEATURE_MAX:
            return RangeCheck(
                valid=False,
                message=f"Feature {i + 1} must be between 0 and 1. Got: {_format_number(value)}",
                index=i + 1,
            )
    return RangeCheck(valid=True)


def find_known_sample(
    features: Sequence[float], dataset: Dataset, tolerance: float = MATCH_TOLERANCE
) -> Sample | None:
    """
    First sample (in dataset order) whose every band lies within `tolerance`
    of the submitted vector, or None.
    """
    x = np.asarray(features, dtype=float)
    # a component mismatches only when |diff| > tol, so NaN components never do
    with np.errstate(invalid="ignore"):
        mismatched = np.abs(dataset.features - x) > tolerance
    matches = np.flatnonzero(~mismatched.any(axis=1))
    if matches.size == 0:
        return None
    return dataset.samples[int(matches[0])]


def is_known_sample(
    features: Sequence[float], dataset: Dataset, tolerance: float = MATCH_TOLERANCE
) -> bool:
    return find_known_sample(features, dataset, tolerance) is not None
