from __future__ import annotations

"""
Logistic regression trained with per-sample gradient descent over standardized
sonar bands, plus the inference step used by the request handlers.
"""

import math
import time
from dataclasses import dataclass

import numpy as np

from .constants import (
    DECISION_THRESHOLD,
    LABEL_NAMES,
    LEARNING_RATE,
    MINE,
    N_EPOCHS,
    N_FEATURES,
    ROCK,
    SIGMOID_CLAMP,
)
from .data_prep import Dataset
from .errors import NotTrainedError
from .log import get_logger

logger = get_logger(__name__)


def sigmoid(z):
    """Logistic function; z is clamped to [-500, 500] so exp never overflows."""
    if isinstance(z, np.ndarray):
        z = np.clip(z, -SIGMOID_CLAMP, SIGMOID_CLAMP)
        return 1.0 / (1.0 + np.exp(-z))
    z = min(max(float(z), -SIGMOID_CLAMP), SIGMOID_CLAMP)
    return 1.0 / (1.0 + math.exp(-z))


@dataclass(frozen=True, eq=False)
class StandardizationStats:
    """Per-band population mean and standard deviation."""

    mean: np.ndarray
    std: np.ndarray

    @classmethod
    def fit(cls, X) -> StandardizationStats:
        X_arr = np.asarray(X, dtype=float)
        mean = X_arr.mean(axis=0)
        # population std (N divisor); falsy values (0 or NaN) fall back to 1
        std = X_arr.std(axis=0)
        std[(std == 0) | np.isnan(std)] = 1.0
        mean.setflags(write=False)
        std.setflags(write=False)
        return cls(mean=mean, std=std)

    def apply(self, X) -> np.ndarray:
        return (np.asarray(X, dtype=float) - self.mean) / self.std


@dataclass(frozen=True, eq=False)
class LogisticModel:
    weights: np.ndarray
    bias: float
    stats: StandardizationStats

    def decision_function(self, X) -> np.ndarray:
        return self.stats.apply(X) @ self.weights + self.bias

    def predict_proba(self, X) -> np.ndarray:
        """Return P(Mine) for each row (or a scalar array for one vector)."""
        return sigmoid(np.asarray(self.decision_function(X), dtype=float))


@dataclass(frozen=True)
class PredictionResult:
    label: str
    confidence: float
    raw_class: str
    probability: float


class LogisticRegressionSGD:
    """
    Logistic regression fitted one sample at a time, in row order, for a fixed
    number of epochs. Features are standardized with population statistics of
    the training matrix. No shuffling and no early stopping, so fitting is
    deterministic for a given input.
    """

    def __init__(
        self,
        lr: float = LEARNING_RATE,
        n_epochs: int = N_EPOCHS,
        verbose: bool = False,
    ):
        self.lr = lr
        self.n_epochs = n_epochs
        self.verbose = verbose
        self.model_: LogisticModel | None = None

    @property
    def coef_(self) -> np.ndarray:
        return self._fitted().weights

    @property
    def intercept_(self) -> float:
        return self._fitted().bias

    def _fitted(self) -> LogisticModel:
        if self.model_ is None:
            raise NotTrainedError()
        return self.model_

    def fit(self, X, y):
        """Train on X (n_samples, n_features) and 0/1 targets y."""
        X_arr = np.asarray(X, dtype=float)
        y_arr = np.asarray(y, dtype=float)

        stats = StandardizationStats.fit(X_arr)
        X_scaled = stats.apply(X_arr)
        weights = np.zeros(X_arr.shape[1])
        bias = 0.0
        lr = self.lr

        for epoch in range(1, self.n_epochs + 1):
            for x_row, target in zip(X_scaled, y_arr):
                z = bias + float(weights @ x_row)
                error = sigmoid(z) - target
                bias -= lr * error
                weights -= (lr * error) * x_row

            if self.verbose and epoch % 500 == 0:
                probs = sigmoid(X_scaled @ weights + bias)
                loss = -np.mean(
                    y_arr * np.log(probs + 1e-12) + (1 - y_arr) * np.log(1 - probs + 1e-12)
                )
                logger.debug("[SGD] epoch=%d, loss=%.4f", epoch, loss)

        weights.setflags(write=False)
        self.model_ = LogisticModel(weights=weights, bias=float(bias), stats=stats)
        return self

    def predict_proba(self, X) -> np.ndarray:
        """Return P(y=1) for each row in X."""
        return self._fitted().predict_proba(np.asarray(X, dtype=float))

    def predict(self, X, threshold: float = DECISION_THRESHOLD) -> np.ndarray:
        """Binary predictions; a probability equal to the threshold is class 0."""
        return (self.predict_proba(X) > threshold).astype(int)


def train(dataset: Dataset) -> LogisticModel:
    """Fit the serving model on the full dataset with the fixed hyperparameters."""
    started = time.perf_counter()
    logger.info(
        "Training on %d samples (lr=%s, epochs=%d)", len(dataset), LEARNING_RATE, N_EPOCHS
    )
    estimator = LogisticRegressionSGD(lr=LEARNING_RATE, n_epochs=N_EPOCHS)
    estimator.fit(dataset.features, dataset.targets)
    logger.info("Training finished in %.2fs", time.perf_counter() - started)
    return estimator.model_


def predict(features, model: LogisticModel | None) -> PredictionResult:
    """Classify one 60-band vector; prob > 0.5 is Mine, anything else Rock."""
    if model is None:
        raise NotTrainedError()
    x = np.asarray(features, dtype=float)
    if x.shape != (N_FEATURES,):
        raise ValueError(f"Expected {N_FEATURES} features, got shape {x.shape}")

    prob = sigmoid(model.bias + float(model.stats.apply(x) @ model.weights))
    if prob > DECISION_THRESHOLD:
        return PredictionResult(LABEL_NAMES[MINE], prob, MINE, prob)
    return PredictionResult(LABEL_NAMES[ROCK], 1.0 - prob, ROCK, prob)
