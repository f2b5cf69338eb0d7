from __future__ import annotations

"""
Holdout evaluation helpers: Mine-vs-Rock classification summaries and the
bands that carry the most weight in a fitted model.
"""

import numpy as np
import pandas as pd
from sklearn import metrics
from sklearn.model_selection import train_test_split

from .constants import DECISION_THRESHOLD, FEATURE_NAMES, LABEL_NAMES, MINE, ROCK
from .data_prep import Dataset

CLASS_ORDER = [LABEL_NAMES[ROCK], LABEL_NAMES[MINE]]


def compute_classification_metrics(
    y_true: np.ndarray | pd.Series, probs: np.ndarray, threshold: float = DECISION_THRESHOLD
):
    """
    Binary metrics with Mine as the positive class. A probability equal to the
    threshold counts as Rock, as in the serving model. The confusion matrix is
    a frame indexed by actual class with predicted classes as columns.
    """
    y_arr = np.asarray(y_true).astype(int)
    preds = (np.asarray(probs) > threshold).astype(int)
    precision, recall, f1, _ = metrics.precision_recall_fscore_support(
        y_arr, preds, average="binary", zero_division=0
    )
    try:
        roc_auc = metrics.roc_auc_score(y_arr, probs)
    except ValueError:
        roc_auc = float("nan")

    confusion = pd.DataFrame(
        metrics.confusion_matrix(y_arr, preds, labels=[0, 1]),
        index=pd.Index(CLASS_ORDER, name="actual"),
        columns=pd.Index(CLASS_ORDER, name="predicted"),
    )
    return {
        "n_samples": len(y_arr),
        "accuracy": metrics.accuracy_score(y_arr, preds),
        "mine_precision": precision,
        "mine_recall": recall,
        "f1": f1,
        "roc_auc": roc_auc,
        "confusion_matrix": confusion,
    }


def majority_baseline(y_train: np.ndarray | pd.Series, y_test: np.ndarray | pd.Series):
    """Scores every test row with the training-set Mine rate."""
    probs = np.full(len(y_test), float(np.mean(y_train)), dtype=float)
    return compute_classification_metrics(y_test, probs)


def summarize_band_weights(
    weights: np.ndarray, top_k: int = 8, band_names: list[str] = FEATURE_NAMES
) -> dict[str, pd.Series]:
    """
    Strongest bands on each side of the decision: "mine" holds the largest
    positive weights (descending), "rock" the most negative (ascending).
    Zero weights belong to neither side.
    """
    weights = np.asarray(weights, dtype=float)
    if len(weights) != len(band_names):
        raise ValueError(f"Got {len(weights)} weights for {len(band_names)} bands")

    series = pd.Series(weights, index=pd.Index(band_names, name="band"), name="weight")
    return {
        "mine": series[series > 0].sort_values(ascending=False).head(top_k),
        "rock": series[series < 0].sort_values().head(top_k),
    }


def make_holdout_split(dataset: Dataset, test_size: float = 0.2, random_state: int | None = 42):
    """Stratified split of sample positions into train and test index arrays."""
    positions = np.arange(len(dataset))
    train_idx, test_idx = train_test_split(
        positions,
        test_size=test_size,
        random_state=random_state,
        stratify=dataset.targets,
    )
    return np.sort(train_idx), np.sort(test_idx)
