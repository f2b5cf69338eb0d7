from __future__ import annotations

"""
CLI entrypoint for the sonar rock/mine classifier. Pick a command:
predict, sample, dataset (browse), describe, evaluate (holdout comparison).
"""

import argparse
import json
import sys
from pathlib import Path

from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler

from sonar_predictor import (
    LoadError,
    LogisticRegressionSGD,
    ServiceConfig,
    SonarService,
    compute_classification_metrics,
    describe_dataset,
    summarize_band_weights,
)
from sonar_predictor.log import LOG_LEVELS, get_logger, setup_logging
from sonar_predictor.metrics import majority_baseline, make_holdout_split

logger = get_logger(__name__)


def print_holdout_metrics(label: str, metrics: dict):
    """One line of scores, then how many mines were caught and rocks misread."""
    cm = metrics["confusion_matrix"]
    print(
        f"[{label}] Acc {metrics['accuracy']:.3f} | "
        f"Mine precision {metrics['mine_precision']:.3f} | Mine recall {metrics['mine_recall']:.3f} | "
        f"F1 {metrics['f1']:.3f} | ROC-AUC {metrics['roc_auc']:.3f}"
    )
    print(
        f"    mines caught {cm.loc['Mine', 'Mine']}/{cm.loc['Mine'].sum()}, "
        f"rocks read as mines {cm.loc['Rock', 'Mine']}/{cm.loc['Rock'].sum()}"
    )


def print_response(status: int, body: dict) -> int:
    print(json.dumps(body, indent=2))
    return 0 if status == 200 else 1


def read_features(args: argparse.Namespace) -> list[str]:
    """Raw comma-separated values from --features or --features-file."""
    text = args.features
    if args.features_file is not None:
        text = args.features_file.read_text(encoding="utf-8")
    if text is None:
        return []
    return [token.strip() for token in text.replace("\n", ",").split(",") if token.strip()]


def build_arg_parser():
    """CLI parser with source locations, logging level and one subcommand per operation."""
    parser = argparse.ArgumentParser(
        description="Classify 60-band sonar returns as Rock or Mine."
    )
    parser.add_argument("--dataset-path", type=Path, default=None, help="Training CSV (60 bands + label).")
    parser.add_argument("--samples-path", type=Path, default=None, help="Sample source for `sample`.")
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, default=None, help="Logging verbosity."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_predict = sub.add_parser("predict", help="Classify one 60-band vector.")
    source = p_predict.add_mutually_exclusive_group(required=True)
    source.add_argument("--features", help="60 comma-separated values in [0, 1].")
    source.add_argument("--features-file", type=Path, help="File with 60 comma-separated values.")
    p_predict.add_argument(
        "--strict",
        action="store_true",
        help="Reject vectors that do not match a training row.",
    )

    sub.add_parser("sample", help="Print a random labeled sample.")

    p_dataset = sub.add_parser("dataset", help="Browse the training set.")
    p_dataset.add_argument("--page", type=int, default=1)
    p_dataset.add_argument("--limit", type=int, default=20)
    p_dataset.add_argument("--filter", choices=["all", "rock", "mine"], default="all")
    p_dataset.add_argument("--id", type=int, default=None, help="Show one sample by 1-based id.")

    sub.add_parser("describe", help="Summarize size, balance and band statistics.")

    p_eval = sub.add_parser("evaluate", help="Holdout comparison against scikit-learn.")
    p_eval.add_argument("--test-size", type=float, default=0.2)
    p_eval.add_argument("--random-state", type=int, default=42, help="Seed for the split.")
    p_eval.add_argument("--top-k", type=int, default=8, help="Bands listed per sign.")
    return parser


def run_describe(service: SonarService) -> int:
    summary = describe_dataset(service.dataset)
    counts = summary["label_counts"]
    print(f"Total samples: {summary['num_samples']} (rocks={counts['R']}, mines={counts['M']})")
    print(f"Mine rate: {summary['mine_rate']:.3f}")
    if summary["malformed_tokens"]:
        print(
            f"Unparsable tokens: {summary['malformed_tokens']} "
            f"in {summary['rows_with_nan']} row(s), kept as NaN"
        )
    print(summary["band_summary"].to_string(float_format=lambda v: f"{v:.4f}"))
    return 0


def run_evaluate(service: SonarService, args: argparse.Namespace) -> int:
    """Majority baseline vs scikit-learn vs the per-sample SGD model on one split."""
    dataset = service.dataset
    train_idx, test_idx = make_holdout_split(
        dataset, test_size=args.test_size, random_state=args.random_state
    )
    X, y = dataset.features, dataset.targets
    X_train, X_test = X[train_idx], X[test_idx]
    y_train, y_test = y[train_idx], y[test_idx]

    print(f"Train size: {len(train_idx)}, Test size: {len(test_idx)}")

    print_holdout_metrics("Majority baseline", majority_baseline(y_train, y_test))

    sk_model = make_pipeline(StandardScaler(), LogisticRegression(max_iter=5000))
    sk_model.fit(X_train, y_train)
    sk_probs = sk_model.predict_proba(X_test)[:, 1]
    print_holdout_metrics("sklearn LogisticRegression", compute_classification_metrics(y_test, sk_probs))

    sgd_model = LogisticRegressionSGD(verbose=args.log_level == "DEBUG")
    sgd_model.fit(X_train, y_train)
    sgd_probs = sgd_model.predict_proba(X_test)
    print_holdout_metrics("Per-sample SGD logistic", compute_classification_metrics(y_test, sgd_probs))

    top = summarize_band_weights(sgd_model.coef_, top_k=args.top_k)
    for side, label in (("mine", "Mine"), ("rock", "Rock")):
        print(f"\nBands pushing towards {label} (SGD):")
        print(top[side].to_string(float_format=lambda v: f"{v:+.4f}"))
    print(f"\nSGD intercept (standardized space): {sgd_model.intercept_:.4f}")
    return 0


def main(args: argparse.Namespace | None = None) -> int:
    """Dispatch to the selected command."""
    args = args or build_arg_parser().parse_args()
    config = ServiceConfig.from_env().with_overrides(
        dataset_path=args.dataset_path,
        samples_path=args.samples_path,
        log_level=args.log_level,
    )
    try:
        setup_logging(config.log_level)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    args.log_level = config.log_level.upper()
    service = SonarService(config)

    if args.command == "predict":
        payload = {"features": read_features(args), "validateStrict": args.strict}
        return print_response(*service.handle_predict(payload))
    if args.command == "sample":
        return print_response(*service.handle_sample())
    if args.command == "dataset":
        return print_response(
            *service.handle_dataset(
                page=args.page, limit=args.limit, label_filter=args.filter, sample_id=args.id
            )
        )
    try:
        if args.command == "describe":
            return run_describe(service)
        return run_evaluate(service, args)
    except LoadError as exc:
        logger.error("Cannot load dataset: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
