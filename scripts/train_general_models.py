"""Train pooled GENERAL models for every stat type and write a training report."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, List

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from prop_projector.data.features.feature_engineering import ExtractorConfig
from prop_projector.errors import InsufficientDataError
from prop_projector.ml.regression.trainer import TrainingConfig
from prop_projector.models.game import StatType
from prop_projector.models.regression import GENERAL_SCOPE
from prop_projector.pipeline.projection import ProjectionConfig, build_projection_service

logger = logging.getLogger("train_general_models")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train GENERAL ridge models for all stat types.")
    parser.add_argument("--game-logs", required=True, help="Game log CSV/JSON covering every season to pool")
    parser.add_argument("--reference", default=None, help="Reference tables JSON")
    parser.add_argument("--season", required=True, help="Current training season (gets the higher weight)")
    parser.add_argument("--model-dir", default="data/models", help="Model store directory")
    parser.add_argument("--report", default="data/reports/training_report.json", help="Report output path")
    parser.add_argument("--stat-types", nargs="+", default=[s.value for s in StatType],
                        help="Stat types to train (default: all)")
    parser.add_argument("--ridge-lambda", type=float, default=0.1)
    parser.add_argument("--today", default=None, help="Override today's date (YYYY-MM-DD)")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    service = build_projection_service(ProjectionConfig(
        model_dir=args.model_dir,
        game_logs_path=args.game_logs,
        reference_path=args.reference,
        training=TrainingConfig(ridge_lambda=args.ridge_lambda),
        extractor=ExtractorConfig(today=date.fromisoformat(args.today) if args.today else None),
    ))
    logger.info("Loaded %d games for %d players", len(service.game_logs), len(service.game_logs.players()))

    results: List[Dict] = []
    for stat in args.stat_types:
        try:
            model = service.train_from_game_logs(GENERAL_SCOPE, stat, args.season)
        except InsufficientDataError as exc:
            logger.warning("Skipping %s: %s", stat, exc)
            results.append({"stat_type": stat, "status": "insufficient_data", "error": str(exc)})
            continue
        top = sorted(model.coefficient_map().items(), key=lambda kv: abs(kv[1]), reverse=True)[:5]
        results.append({
            "stat_type": stat,
            "status": "trained",
            "key": str(model.key),
            "training_data_size": model.training_data_size,
            "metrics": model.metrics.to_dict(),
            "top_coefficients": dict(top),
        })

    report = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "season": args.season,
        "game_logs": args.game_logs,
        "models": results,
    }
    report_path = Path(args.report)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, "w") as f:
        json.dump(report, f, indent=2)

    trained = sum(1 for r in results if r["status"] == "trained")
    print(f"Trained {trained}/{len(results)} GENERAL models. Report written to {report_path}")
    return 0 if trained else 1


if __name__ == "__main__":
    raise SystemExit(main())
