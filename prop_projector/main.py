"""Main CLI interface for the player prop projector."""

import argparse
import json
import logging
import sys
from datetime import date

from .data.features.feature_engineering import ExtractorConfig, FeatureExtractor
from .data.loader import GameLogRepository
from .data.reference import load_reference_tables
from .errors import InsufficientDataError, SingularSystemError
from .ml.evaluation.validation import cross_validate, evaluate_model, time_based_split
from .ml.regression.trainer import ModelTrainer, TrainingConfig
from .models.game import StatType
from .models.projection import ProjectionRequest, ProjectionResult
from .models.regression import GENERAL_SCOPE
from .pipeline.projection import ProjectionConfig, ProjectionService, build_projection_service
from .storage.model_store import JsonModelStore


def _parse_date(value):
    return date.fromisoformat(value) if value else None


def _extractor_config(args) -> ExtractorConfig:
    return ExtractorConfig(today=_parse_date(getattr(args, "today", None)))


def _training_config(args) -> TrainingConfig:
    return TrainingConfig(
        ridge_lambda=args.ridge_lambda,
        penalize_intercept=args.penalize_intercept,
        solver=args.solver,
        on_singular=args.on_singular,
    )


def train_models(args):
    """Train one model per requested stat type and persist them."""
    print(f"Loading game logs from {args.game_logs}...")
    config = ProjectionConfig(
        model_dir=args.model_dir,
        game_logs_path=args.game_logs,
        reference_path=args.reference,
        training=_training_config(args),
        extractor=_extractor_config(args),
    )
    try:
        service = build_projection_service(config)
    except (OSError, ValueError) as e:
        print(f"Error loading data: {e}")
        return 1

    print(f"Loaded {len(service.game_logs)} games for {len(service.game_logs.players())} players")

    trained = []
    failed = 0
    for stat in args.stat_type:
        try:
            model = service.train_from_game_logs(args.player, stat, args.season)
        except (InsufficientDataError, SingularSystemError) as e:
            print(f"✗ {args.player} {stat}: {e}")
            failed += 1
            continue
        print(f"✓ {model.key}: n={model.training_data_size} R²={model.r_squared:.3f} RMSE={model.metrics.rmse:.3f}")
        trained.append({"key": str(model.key), **model.metrics.to_dict(), "n": model.training_data_size})

    print(json.dumps({"trained": trained, "failed": failed}, indent=2))
    return 1 if failed and not trained else 0


def _load_heuristic(args) -> ProjectionResult:
    if args.heuristic:
        with open(args.heuristic, "r") as f:
            return ProjectionResult.from_dict(json.load(f))
    return ProjectionResult(
        projected_value=args.heuristic_value,
        confidence_score=args.heuristic_confidence,
    )


def project(args):
    """Combine a heuristic projection with the stored regression model."""
    config = ProjectionConfig(
        model_dir=args.model_dir,
        game_logs_path=args.game_logs,
        reference_path=args.reference,
        confidence=args.confidence,
        extractor=_extractor_config(args),
    )
    try:
        service = build_projection_service(config)
        heuristic = _load_heuristic(args)
        request = ProjectionRequest(
            player_name=args.player,
            stat_type=args.stat_type,
            opponent=args.opponent,
            is_home=args.home,
            season=args.season,
            market_line=args.line,
            team=args.team,
            game_date=_parse_date(args.date),
        )
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: {e}")
        return 1

    result = service.project(request, heuristic)
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def list_models(args):
    """List stored models and their fit metrics."""
    store = JsonModelStore(args.model_dir)
    rows = []
    for key in store.list_models(args.player):
        model = store.load_model(key)
        rows.append({
            "key": str(key),
            "training_data_size": model.training_data_size,
            "last_trained": model.last_trained.isoformat(),
            **model.metrics.to_dict(),
        })
    print(json.dumps({"models": rows}, indent=2))
    return 0


def evaluate(args):
    """Cross-validate and holdout-test a model configuration without persisting it."""
    try:
        reference = load_reference_tables(args.reference)
        game_logs = GameLogRepository.from_file(args.game_logs)
    except (OSError, ValueError) as e:
        print(f"Error loading data: {e}")
        return 1

    service = ProjectionService(
        store=JsonModelStore(args.model_dir),
        reference=reference,
        game_logs=game_logs,
        extractor=FeatureExtractor(reference, _extractor_config(args)),
    )
    trainer = ModelTrainer(config=_training_config(args))
    try:
        samples = service.samples_for(args.player, args.stat_type, args.season)
        print(f"Extracted {len(samples)} samples for {args.player} {args.stat_type}")
        cv = cross_validate(samples, trainer, args.stat_type, args.season, args.player, n_splits=args.folds)
        split = time_based_split(samples)
        model = trainer.fit(args.player, args.stat_type, args.season, split.train + split.validation)
        holdout = evaluate_model(model, split.test)
    except (InsufficientDataError, SingularSystemError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print(json.dumps({
        "cross_validation": cv.to_dict(),
        "split": split.sizes(),
        "holdout": holdout.to_dict(),
    }, indent=2))
    return 0


def _add_training_args(parser):
    parser.add_argument("--ridge-lambda", type=float, default=0.1, help="L2 penalty strength")
    parser.add_argument("--penalize-intercept", action="store_true", help="Apply the penalty to the intercept too")
    parser.add_argument("--solver", choices=["gaussian", "svd"], default="gaussian", help="Normal-equation solver")
    parser.add_argument("--on-singular", choices=["fallback", "raise"], default="fallback",
                        help="Near-singular pivot handling for the gaussian solver")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Player Prop Projector - ridge regression projections blended with heuristic lines"
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--model-dir", default="data/models", help="Directory of stored model documents")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Train command
    train_parser = subparsers.add_parser("train", help="Train and store regression models from game logs")
    train_parser.add_argument("--game-logs", required=True, help="Game log CSV/JSON file")
    train_parser.add_argument("--reference", default=None, help="Reference tables JSON")
    train_parser.add_argument("--player", default=GENERAL_SCOPE, help=f"Player id, or {GENERAL_SCOPE} to pool all players")
    train_parser.add_argument("--stat-type", nargs="+", default=["points"],
                              choices=[s.value for s in StatType], help="Stat types to train")
    train_parser.add_argument("--season", required=True, help="Training season")
    train_parser.add_argument("--today", default=None, help="Override today's date (YYYY-MM-DD)")
    _add_training_args(train_parser)

    # Project command
    project_parser = subparsers.add_parser("project", help="Project a player's stat against a line")
    project_parser.add_argument("--player", required=True, help="Player id")
    project_parser.add_argument("--stat-type", default="points", help="Stat type (points, pra, points+assists, ...)")
    project_parser.add_argument("--opponent", required=True, help="Opponent team")
    project_parser.add_argument("--home", action="store_true", help="Player's team is at home")
    project_parser.add_argument("--season", required=True, help="Season of the game")
    project_parser.add_argument("--team", default=None, help="Player's team (default: from game logs)")
    project_parser.add_argument("--date", default=None, help="Game date (YYYY-MM-DD, default: today)")
    project_parser.add_argument("--line", type=float, default=None, help="Market line")
    project_parser.add_argument("--game-logs", default=None, help="Game log CSV/JSON file")
    project_parser.add_argument("--reference", default=None, help="Reference tables JSON")
    project_parser.add_argument("--heuristic", default=None, help="Heuristic projection JSON file")
    project_parser.add_argument("--heuristic-value", type=float, default=0.0, help="Heuristic projected value")
    project_parser.add_argument("--heuristic-confidence", type=float, default=0.5, help="Heuristic confidence score")
    project_parser.add_argument("--confidence", type=float, default=0.95, choices=[0.90, 0.95, 0.99],
                                help="Interval confidence level")
    project_parser.add_argument("--today", default=None, help="Override today's date (YYYY-MM-DD)")

    # Models command
    models_parser = subparsers.add_parser("models", help="List stored models")
    models_parser.add_argument("--player", default=None, help="Only models for this scope")

    # Evaluate command
    evaluate_parser = subparsers.add_parser("evaluate", help="Cross-validate a model configuration")
    evaluate_parser.add_argument("--game-logs", required=True, help="Game log CSV/JSON file")
    evaluate_parser.add_argument("--reference", default=None, help="Reference tables JSON")
    evaluate_parser.add_argument("--player", default=GENERAL_SCOPE, help=f"Player id, or {GENERAL_SCOPE}")
    evaluate_parser.add_argument("--stat-type", default="points", help="Stat type")
    evaluate_parser.add_argument("--season", required=True, help="Training season")
    evaluate_parser.add_argument("--folds", type=int, default=5, help="Number of time-series folds")
    evaluate_parser.add_argument("--today", default=None, help="Override today's date (YYYY-MM-DD)")
    _add_training_args(evaluate_parser)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "train":
        return train_models(args)
    elif args.command == "project":
        return project(args)
    elif args.command == "models":
        return list_models(args)
    elif args.command == "evaluate":
        return evaluate(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
