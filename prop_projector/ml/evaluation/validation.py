"""Chronological splits, time-series cross-validation and holdout evaluation.

Samples are always ordered by game date so that no fold is scored on games
played before the games it was trained on.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import TimeSeriesSplit

from ...data.features.feature_engineering import TrainingSample
from ...data.features.schema import check_schema
from ...errors import InsufficientDataError
from ...models.regression import GENERAL_SCOPE, RegressionModel
from .metrics import coverage_within

logger = logging.getLogger(__name__)


@dataclass
class DataSplit:
    """Chronological train/validation/test partition."""

    train: List[TrainingSample]
    validation: List[TrainingSample]
    test: List[TrainingSample]

    def sizes(self) -> Dict[str, int]:
        return {"train": len(self.train), "validation": len(self.validation), "test": len(self.test)}


@dataclass
class FoldResult:
    fold: int
    train_size: int
    test_size: int
    rmse: float
    mae: float
    r_squared: float


@dataclass
class CrossValidationResults:
    """Per-fold holdout metrics and their mean/standard deviation."""

    folds: List[FoldResult] = field(default_factory=list)

    def _stat(self, attr: str, fn) -> float:
        values = [getattr(f, attr) for f in self.folds]
        return float(fn(values)) if values else 0.0

    @property
    def mean_rmse(self) -> float:
        return self._stat("rmse", np.mean)

    @property
    def std_rmse(self) -> float:
        return self._stat("rmse", np.std)

    @property
    def mean_mae(self) -> float:
        return self._stat("mae", np.mean)

    @property
    def std_mae(self) -> float:
        return self._stat("mae", np.std)

    @property
    def mean_r_squared(self) -> float:
        return self._stat("r_squared", np.mean)

    @property
    def std_r_squared(self) -> float:
        return self._stat("r_squared", np.std)

    def to_dict(self) -> dict:
        return {
            "folds": [vars(f).copy() for f in self.folds],
            "mean_rmse": self.mean_rmse,
            "std_rmse": self.std_rmse,
            "mean_mae": self.mean_mae,
            "std_mae": self.std_mae,
            "mean_r_squared": self.mean_r_squared,
            "std_r_squared": self.std_r_squared,
        }


@dataclass
class ModelEvaluation:
    """Holdout metrics of a trained model on unseen samples."""

    n_samples: int
    rmse: float
    mae: float
    r_squared: float
    mean_error: float  # mean(actual - predicted); positive means under-projection
    within_1_sd: float
    within_2_sd: float
    within_3_sd: float

    def to_dict(self) -> dict:
        return vars(self).copy()


def _chronological(samples: Sequence[TrainingSample]) -> List[TrainingSample]:
    return sorted(samples, key=lambda s: (s.game_date, s.player_id))


def _finite(samples: Sequence[TrainingSample]) -> List[TrainingSample]:
    return [s for s in samples if s.features.is_finite() and math.isfinite(s.target)]


def _r2(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    if len(y_true) < 2:
        return 0.0
    return float(r2_score(y_true, y_pred))


# ---------------------------------------------------------------------------
# Splits
# ---------------------------------------------------------------------------

def time_based_split(
    samples: Sequence[TrainingSample],
    train_fraction: float = 0.70,
    validation_fraction: float = 0.15,
) -> DataSplit:
    """Split samples chronologically; the test partition takes the remainder.

    Args:
        samples: Training samples in any order.
        train_fraction: Share of the earliest samples used for training.
        validation_fraction: Share of the following samples used for validation.

    Returns:
        DataSplit with date-ordered partitions.
    """
    if not 0 < train_fraction < 1 or validation_fraction < 0 or train_fraction + validation_fraction > 1:
        raise ValueError(
            f"Invalid split fractions: train={train_fraction}, validation={validation_fraction}"
        )
    ordered = _chronological(samples)
    n = len(ordered)
    train_end = int(n * train_fraction)
    validation_end = train_end + int(n * validation_fraction)
    return DataSplit(
        train=ordered[:train_end],
        validation=ordered[train_end:validation_end],
        test=ordered[validation_end:],
    )


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def predict_samples(model: RegressionModel, samples: Sequence[TrainingSample]) -> np.ndarray:
    """Point estimates (clamped at 0) for each sample."""
    if not samples:
        return np.zeros(0)
    check_schema(model.feature_names, model.schema_version)
    X = np.vstack([s.features.to_array() for s in samples])
    return model.point_estimates(X)


def evaluate_model(model: RegressionModel, samples: Sequence[TrainingSample]) -> ModelEvaluation:
    """Score a trained model on holdout samples.

    Coverage is measured against the model's residual standard deviation.
    """
    valid = _finite(samples)
    if not valid:
        raise ValueError("No finite samples to evaluate")
    y = np.array([s.target for s in valid], dtype=float)
    y_hat = predict_samples(model, valid)
    residuals = y - y_hat
    coverage = coverage_within(residuals, model.residual_standard_deviation)
    return ModelEvaluation(
        n_samples=len(valid),
        rmse=math.sqrt(mean_squared_error(y, y_hat)),
        mae=float(mean_absolute_error(y, y_hat)),
        r_squared=_r2(y, y_hat),
        mean_error=float(np.mean(residuals)),
        within_1_sd=coverage["within_1_sd"],
        within_2_sd=coverage["within_2_sd"],
        within_3_sd=coverage["within_3_sd"],
    )


def cross_validate(
    samples: Sequence[TrainingSample],
    trainer,
    stat_type,
    season: str,
    player_scope: str = GENERAL_SCOPE,
    n_splits: int = 5,
    ridge_lambda=None,
) -> CrossValidationResults:
    """Expanding-window cross-validation over chronologically ordered samples.

    Folds whose training window is too small to fit are logged and skipped.

    Args:
        samples: Training samples in any order.
        trainer: ModelTrainer used to fit each fold (nothing is persisted).
        stat_type: Target stat.
        season: Training season passed through to the trainer.
        player_scope: Scope recorded on the fold models.
        n_splits: Number of folds.
        ridge_lambda: Optional penalty override.

    Returns:
        CrossValidationResults.

    Raises:
        ValueError: If there are too few samples for the requested folds,
            or no fold could be trained.
    """
    ordered = _chronological(_finite(samples))
    if len(ordered) <= n_splits:
        raise ValueError(f"Need more than {n_splits} samples for {n_splits}-fold validation, got {len(ordered)}")

    results = CrossValidationResults()
    splitter = TimeSeriesSplit(n_splits=n_splits)
    for fold, (train_idx, test_idx) in enumerate(splitter.split(np.arange(len(ordered)))):
        train = [ordered[i] for i in train_idx]
        test = [ordered[i] for i in test_idx]
        try:
            model = trainer.fit(player_scope, stat_type, season, train, ridge_lambda)
        except InsufficientDataError as e:
            logger.warning("Skipping fold %d: %s", fold, e)
            continue

        y = np.array([s.target for s in test], dtype=float)
        y_hat = predict_samples(model, test)
        results.folds.append(FoldResult(
            fold=fold,
            train_size=len(train),
            test_size=len(test),
            rmse=math.sqrt(mean_squared_error(y, y_hat)),
            mae=float(mean_absolute_error(y, y_hat)),
            r_squared=_r2(y, y_hat),
        ))
        logger.debug("Fold %d: train=%d test=%d rmse=%.3f", fold, len(train), len(test), results.folds[-1].rmse)

    if not results.folds:
        raise ValueError("No cross-validation fold had enough training samples")
    return results
