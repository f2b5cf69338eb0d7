"""
Rock-or-mine classification of 60-band sonar returns.

This package contains the dataset loader, a from-scratch logistic regression
with its standardizer, request validation, the random sample picker and the
service object that the web layer and main.py call into.
"""

from .config import ServiceConfig
from .constants import FEATURE_NAMES, MINE, N_FEATURES, ROCK
from .data_prep import Dataset, Sample, describe_dataset, load_dataset
from .errors import LoadError, NoSamplesError, NotTrainedError, SonarError, ValidationError
from .logreg import (
    LogisticModel,
    LogisticRegressionSGD,
    PredictionResult,
    StandardizationStats,
    predict,
    train,
)
from .metrics import compute_classification_metrics, summarize_band_weights
from .sampling import pick_random_sample
from .service import SonarService
from .validation import check_feature_range, find_known_sample, is_known_sample

__all__ = [
    "FEATURE_NAMES",
    "MINE",
    "N_FEATURES",
    "ROCK",
    "ServiceConfig",
    "Dataset",
    "Sample",
    "describe_dataset",
    "load_dataset",
    "LoadError",
    "NoSamplesError",
    "NotTrainedError",
    "SonarError",
    "ValidationError",
    "LogisticModel",
    "LogisticRegressionSGD",
    "PredictionResult",
    "StandardizationStats",
    "predict",
    "train",
    "compute_classification_metrics",
    "summarize_band_weights",
    "pick_random_sample",
    "SonarService",
    "check_feature_range",
    "find_known_sample",
    "is_known_sample",
]
