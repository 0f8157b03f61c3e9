# main.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from issue_classifier import config
from issue_classifier.artifacts import load_model
from issue_classifier.data import Issue, read_issues
from issue_classifier.metrics import format_metrics_report
from issue_classifier.predict import IssuePredictor
from issue_classifier.training import TrainingConfig, evaluate_model
from issue_classifier.workflow import RunConfig, run_end_to_end


def _save_json(obj: Any, path: str) -> str:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2)
    return str(p)


def _prediction_line(prefix: str, area: str) -> str:
    return f"=============== {prefix} Prediction - Result: {area} ==============="


def cmd_train(args: argparse.Namespace) -> None:
    training = TrainingConfig(
        seed=args.seed,
        C=args.C,
        max_iter=args.max_iter,
        tol=args.tol,
        max_features=args.max_features,
        sublinear_tf=args.sublinear_tf,
        top_k=args.top_k,
    )
    cfg = RunConfig(
        train_path=Path(args.train),
        test_path=Path(args.test),
        model_path=Path(args.model),
        training=training,
    )

    result = run_end_to_end(cfg)

    print(format_metrics_report(result.metrics))
    if args.metrics_out:
        _save_json(result.metrics.to_dict(), args.metrics_out)

    prefixes = ["Single", "Second"]
    for i, pred in enumerate(result.predictions):
        prefix = prefixes[i] if i < len(prefixes) else f"#{i + 1}"
        print(_prediction_line(prefix, pred.area))


def cmd_evaluate(args: argparse.Namespace) -> None:
    pipeline, _ = load_model(args.model)
    test_df = read_issues(args.test)
    metrics = evaluate_model(pipeline, test_df, top_k=args.top_k)
    print(format_metrics_report(metrics))
    if args.metrics_out:
        _save_json(metrics.to_dict(), args.metrics_out)


def cmd_predict(args: argparse.Namespace) -> None:
    pipeline, _ = load_model(args.model)
    predictor = IssuePredictor(pipeline)

    if args.input:
        df = read_issues(args.input, require_label=False)
        out_df = predictor.predict_frame(df)
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_df.to_csv(out_path, sep="\t", index=False)
        print(f"Predictions written to: {out_path}")
        return

    if args.title is None or args.description is None:
        raise SystemExit("predict needs --input, or both --title and --description")

    pred = predictor.predict(Issue(Title=args.title, Description=args.description))
    print(_prediction_line("Single", pred.area))
    if args.show_scores:
        for label, score in sorted(pred.scores.items(), key=lambda kv: -kv[1]):
            print(f"  {label}: {score:.4f}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="GitHub issue area classifier (train / evaluate / predict).")
    p.add_argument("--model", type=str, default=str(config.MODEL_PATH), help="Path of the saved model artifact.")
    p.add_argument("--log-level", type=str, default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...).")
    p.add_argument("--top-k", dest="top_k", type=int, default=config.DEFAULT_TOP_K, help="K for top-K accuracy.")
    p.add_argument("--metrics-out", type=str, default=None, help="Optional path for a JSON metrics summary.")

    sub = p.add_subparsers(dest="command")

    # train
    t = sub.add_parser("train", help="Train, evaluate, save, reload and predict the sample issues.")
    t.add_argument("--train", type=str, default=str(config.TRAIN_DATA_PATH), help="Training TSV.")
    t.add_argument("--test", type=str, default=str(config.TEST_DATA_PATH), help="Held-out test TSV.")
    t.add_argument("--seed", type=int, default=config.DEFAULT_SEED, help="Random seed.")
    t.add_argument("--C", type=float, default=config.DEFAULT_C, help="Inverse L2 regularization strength.")
    t.add_argument("--max-iter", dest="max_iter", type=int, default=config.DEFAULT_MAX_ITER, help="Solver iterations.")
    t.add_argument("--tol", type=float, default=config.DEFAULT_TOL, help="Solver stopping tolerance.")
    t.add_argument("--max-features", dest="max_features", type=int, default=config.DEFAULT_MAX_FEATURES,
                   help="Cap on n-gram vocabulary size per analyzer.")
    t.add_argument("--sublinear-tf", dest="sublinear_tf", action="store_true", help="Use 1 + log(tf).")
    t.set_defaults(func=cmd_train)

    # evaluate
    e = sub.add_parser("evaluate", help="Evaluate a saved model on a labeled TSV.")
    e.add_argument("--test", type=str, default=str(config.TEST_DATA_PATH), help="Held-out test TSV.")
    e.set_defaults(func=cmd_evaluate)

    # predict
    pr = sub.add_parser("predict", help="Predict the area of ad-hoc issues with a saved model.")
    pr.add_argument("--title", type=str, default=None, help="Issue title.")
    pr.add_argument("--description", type=str, default=None, help="Issue description.")
    pr.add_argument("--show-scores", action="store_true", help="Print the per-class probabilities.")
    pr.add_argument("--input", type=str, default=None, help="TSV with Title and Description columns.")
    pr.add_argument("--output", type=str, default="Predictions/predictions.tsv", help="Output TSV for --input.")
    pr.set_defaults(func=cmd_predict)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    # Default: if no subcommand given, run the full train flow
    if not getattr(args, "command", None):
        raw = list(sys.argv[1:] if argv is None else argv)
        args = parser.parse_args(raw + ["train"])

    args.func(args)


if __name__ == "__main__":
    main()
