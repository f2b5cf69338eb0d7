from pathlib import Path

import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from sklearn.metrics import roc_curve, auc, confusion_matrix, ConfusionMatrixDisplay

from sonar_predictor import FEATURE_NAMES, LogisticRegressionSGD, load_dataset
from sonar_predictor.log import get_logger, setup_logging
from sonar_predictor.metrics import make_holdout_split

# Configuration
CSV_PATH = Path("data/sonar.csv")
OUTPUT_DIR = Path("docs")
TEST_SIZE = 0.2
RANDOM_STATE = 42

logger = get_logger(__name__)


def plot_confusion_matrix_and_roc(y_test, y_probs, y_pred, filename_cm, filename_roc):
    # Confusion Matrix
    cm = confusion_matrix(y_test, y_pred, labels=[0, 1])
    disp = ConfusionMatrixDisplay(confusion_matrix=cm, display_labels=["Rock", "Mine"])
    plt.figure(figsize=(6, 5))
    disp.plot(cmap="Blues", values_format="d")
    plt.title("Confusion Matrix: Rock vs Mine")
    plt.tight_layout()
    plt.savefig(filename_cm)
    plt.close()

    # ROC Curve
    fpr, tpr, _ = roc_curve(y_test, y_probs)
    roc_auc = auc(fpr, tpr)

    plt.figure(figsize=(8, 6))
    plt.plot(fpr, tpr, color="darkorange", lw=2, label=f"ROC curve (area = {roc_auc:.3f})")
    plt.plot([0, 1], [0, 1], color="navy", lw=2, linestyle="--")
    plt.xlim([0.0, 1.0])
    plt.ylim([0.0, 1.05])
    plt.xlabel("False Positive Rate")
    plt.ylabel("True Positive Rate")
    plt.title("ROC Curve: Mine detection")
    plt.legend(loc="lower right")
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(filename_roc)
    plt.close()


def plot_band_weights(weights, filename):
    x = np.arange(len(FEATURE_NAMES))
    colors = ["tab:red" if w > 0 else "tab:blue" for w in weights]

    plt.figure(figsize=(14, 5))
    plt.bar(x, weights, color=colors)
    plt.axhline(0, color="black", lw=0.8)
    plt.xticks(x[::5], [FEATURE_NAMES[i] for i in x[::5]], rotation=45)
    plt.ylabel("Weight (standardized space)")
    plt.title("Band weights: positive = Mine, negative = Rock")
    plt.grid(axis="y", linestyle="--", alpha=0.7)
    plt.tight_layout()
    plt.savefig(filename)
    plt.close()


def run_holdout_plots():
    logger.info("Generating holdout plots from %s", CSV_PATH)
    dataset = load_dataset(CSV_PATH)
    train_idx, test_idx = make_holdout_split(
        dataset, test_size=TEST_SIZE, random_state=RANDOM_STATE
    )
    X, y = dataset.features, dataset.targets

    model = LogisticRegressionSGD()
    model.fit(X[train_idx], y[train_idx])
    probs = model.predict_proba(X[test_idx])
    preds = model.predict(X[test_idx])

    plot_confusion_matrix_and_roc(
        y[test_idx],
        probs,
        preds,
        OUTPUT_DIR / "confusion_matrix_sonar.png",
        OUTPUT_DIR / "roc_curve_sonar.png",
    )
    plot_band_weights(model.coef_, OUTPUT_DIR / "band_weights_sonar.png")


if __name__ == "__main__":
    setup_logging("INFO")
    run_holdout_plots()
    logger.info("All plots generated successfully.")
