from __future__ import annotations

"""
Request-level entry points for the web layer.

SonarService owns the cached Dataset and Model. Both are built lazily, at most
once per service, and are read-only afterwards. Handlers return
(status, payload) pairs using HTTP status codes.
"""

import math
import threading
from typing import Callable, Mapping

import numpy as np

from .config import ServiceConfig
from .constants import (
    INVALID_FEATURES_MESSAGE,
    MINE,
    NOT_FROM_DATASET_ERROR,
    NOT_FROM_DATASET_WARNING,
    ROCK,
)
from .data_prep import Dataset, load_dataset
from .errors import NoSamplesError, ValidationError
from .log import get_logger
from .logreg import LogisticModel, predict, train
from .sampling import pick_random_sample
from .validation import check_feature_range, is_known_sample, parse_feature_vector

logger = get_logger(__name__)

Response = tuple[int, dict]

LABEL_FILTERS = {"all": None, "rock": ROCK, "mine": MINE}


def round_confidence(value: float) -> float:
    """Two decimals, halves rounded up."""
    return math.floor(value * 100 + 0.5) / 100


class SonarService:
    """
    Holds the training Dataset and the trained Model for one process.

    Concurrent first callers block on a lock so the dataset is read once and
    the 2000-epoch training runs once; everyone then sees the same objects.
    """

    def __init__(
        self,
        config: ServiceConfig | None = None,
        loader: Callable[..., Dataset] = load_dataset,
        trainer: Callable[[Dataset], LogisticModel] = train,
        rng: np.random.Generator | None = None,
    ):
        self.config = config or ServiceConfig()
        self._loader = loader
        self._trainer = trainer
        self._rng = rng
        self._dataset: Dataset | None = None
        self._model: LogisticModel | None = None
        self._dataset_lock = threading.Lock()
        self._model_lock = threading.Lock()

    @property
    def dataset(self) -> Dataset:
        dataset = self._dataset
        if dataset is None:
            with self._dataset_lock:
                if self._dataset is None:
                    self._dataset = self._loader(self.config.dataset_path)
                dataset = self._dataset
        return dataset

    @property
    def model(self) -> LogisticModel:
        model = self._model
        if model is None:
            with self._model_lock:
                if self._model is None:
                    self._model = self._trainer(self.dataset)
                model = self._model
        return model

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    def reset(self) -> None:
        """Drop the cached dataset and model; the next request rebuilds them."""
        # same order as `model`, which loads the dataset while holding the model lock
        with self._model_lock, self._dataset_lock:
            self._dataset = None
            self._model = None

    def handle_predict(self, payload) -> Response:
        try:
            if not isinstance(payload, Mapping):
                raise ValidationError(INVALID_FEATURES_MESSAGE)
            features = parse_feature_vector(payload.get("features"))

            range_check = check_feature_range(features)
            if not range_check.valid:
                return 400, {"error": range_check.message}

            from_dataset = is_known_sample(features, self.dataset)
            if payload.get("validateStrict") and not from_dataset:
                return 400, {"error": NOT_FROM_DATASET_ERROR, "isFromDataset": False}

            result = predict(features, self.model)
            body = {
                "result": result.label,
                "confidence": round_confidence(result.confidence),
                "rawClass": result.raw_class,
                "isFromDataset": from_dataset,
            }
            if not from_dataset:
                body["warning"] = NOT_FROM_DATASET_WARNING
            return 200, body
        except ValidationError as exc:
            return 400, {"error": str(exc)}
        except Exception:
            logger.exception("Prediction error")
            return 500, {"error": "Prediction failed"}

    def handle_sample(self) -> Response:
        try:
            features, actual_label = pick_random_sample(self.config.samples_path, self._rng)
        except NoSamplesError:
            logger.warning("No samples available in %s", self.config.samples_path)
            return 404, {"error": "No samples available"}
        except Exception:
            logger.exception("Error loading sample")
            return 500, {"error": "Failed to load sample"}
        return 200, {"features": features, "actualLabel": actual_label}

    def handle_dataset(
        self,
        page=1,
        limit=20,
        label_filter: str = "all",
        sample_id=None,
    ) -> Response:
        """Look up one sample by id, or return a filtered page with class counts."""
        try:
            page, limit = _positive_int(page, "page"), _positive_int(limit, "limit")
            if label_filter not in LABEL_FILTERS:
                raise ValidationError(
                    f"Unknown filter {label_filter!r}; use one of {', '.join(LABEL_FILTERS)}"
                )
            dataset = self.dataset

            if sample_id is not None:
                sample = dataset.get(_positive_int(sample_id, "id"))
                if sample is None:
                    return 404, {"error": "Sample not found"}
                return 200, {"sample": sample.to_dict()}

            wanted = LABEL_FILTERS[label_filter]
            rows = [s for s in dataset if wanted is None or s.label == wanted]
            start = (page - 1) * limit
            counts = dataset.label_counts()
            return 200, {
                "items": [s.to_dict() for s in rows[start : start + limit]],
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "totalItems": len(rows),
                    "totalPages": math.ceil(len(rows) / limit),
                },
                "stats": {
                    "total": len(dataset),
                    "rocks": counts[ROCK],
                    "mines": counts[MINE],
                },
            }
        except ValidationError as exc:
            return 400, {"error": str(exc)}
        except Exception:
            logger.exception("Dataset error")
            return 500, {"error": "Failed to load dataset"}


def _positive_int(value, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer. Got: {value!r}") from None
    if isinstance(value, bool) or number < 1:
        raise ValidationError(f"{name} must be a positive integer. Got: {value!r}")
    return number
