"""
Ridge model training.

Fits one RegressionModel per (player scope, stat type, season) from
extracted TrainingSamples and persists it through a ModelStore.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ...data.features.feature_engineering import TrainingSample
from ...data.features.schema import FEATURE_NAMES, FEATURE_SCHEMA_VERSION
from ...errors import InsufficientDataError
from ...models.game import StatType
from ...models.regression import RegressionModel
from ..evaluation.metrics import fit_metrics, residual_standard_deviation
from .ridge import add_intercept, solve_ridge

logger = logging.getLogger(__name__)


@dataclass
class TrainingConfig:
    """Hyperparameters for ridge training."""

    ridge_lambda: float = 0.1
    min_samples: int = 10
    current_season_weight: float = 1.5
    prior_season_weight: float = 1.0
    penalize_intercept: bool = False
    solver: str = "gaussian"  # or "svd"
    on_singular: str = "fallback"  # or "raise"
    pivot_tolerance: float = 1e-10


def _is_valid(sample: TrainingSample) -> bool:
    return sample.features.is_finite() and math.isfinite(sample.target)


class ModelTrainer:
    """Trains weighted ridge models and (optionally) persists them."""

    def __init__(self, store=None, config: Optional[TrainingConfig] = None):
        """
        Initialize trainer.

        Args:
            store: ModelStore receiving trained models (None to skip persistence)
            config: Training configuration (default: TrainingConfig())
        """
        self.store = store
        self.config = config or TrainingConfig()

    def valid_samples(self, samples: Sequence[TrainingSample]) -> List[TrainingSample]:
        """Drop samples with non-finite features or target, logging each one."""
        valid = []
        for sample in samples:
            if _is_valid(sample):
                valid.append(sample)
                continue
            bad = sample.features.non_finite_features()
            if not math.isfinite(sample.target):
                bad.append("target")
            logger.warning(
                "Excluding sample %s %s: non-finite values in %s",
                sample.player_id, sample.game_date, ", ".join(bad),
            )
        return valid

    def sample_weights(self, samples: Sequence[TrainingSample], season: str) -> np.ndarray:
        """Effective weights: sample_weight times the season multiplier."""
        cfg = self.config
        return np.array([
            s.sample_weight * (cfg.current_season_weight if s.season == season else cfg.prior_season_weight)
            for s in samples
        ], dtype=float)

    @staticmethod
    def design_matrix(samples: Sequence[TrainingSample]) -> Tuple[np.ndarray, np.ndarray]:
        """Stack features (with intercept column) and targets."""
        X = np.vstack([s.features.to_array() for s in samples])
        y = np.array([s.target for s in samples], dtype=float)
        return add_intercept(X), y

    def fit(
        self,
        player_scope: str,
        stat_type,
        season: str,
        samples: Sequence[TrainingSample],
        ridge_lambda: Optional[float] = None,
    ) -> RegressionModel:
        """
        Fit a model without persisting it.

        Args:
            player_scope: Player id, or GENERAL for a pooled model
            stat_type: Target stat
            season: Training season; its samples get the current-season weight
            samples: Training samples, pooled across seasons
            ridge_lambda: Override for the configured penalty

        Returns:
            Fitted RegressionModel

        Raises:
            InsufficientDataError: If fewer than ``min_samples`` valid samples remain
        """
        cfg = self.config
        stat_type = StatType.parse(stat_type)
        season = str(season)
        lam = cfg.ridge_lambda if ridge_lambda is None else float(ridge_lambda)

        valid = self.valid_samples(samples)
        if len(valid) < cfg.min_samples:
            raise InsufficientDataError(len(valid), cfg.min_samples)

        X, y = self.design_matrix(valid)
        weights = self.sample_weights(valid, season)
        solution = solve_ridge(
            X,
            y,
            weights=weights,
            ridge_lambda=lam,
            penalize_intercept=cfg.penalize_intercept,
            solver=cfg.solver,
            on_singular=cfg.on_singular,
            pivot_tolerance=cfg.pivot_tolerance,
        )

        fitted = X @ solution.beta
        residuals = y - fitted
        metrics = fit_metrics(y, fitted, n_features=len(FEATURE_NAMES))

        return RegressionModel(
            player_scope=str(player_scope),
            stat_type=stat_type,
            season=season,
            intercept=solution.intercept,
            coefficients=[float(c) for c in solution.coefficients],
            feature_names=list(FEATURE_NAMES),
            metrics=metrics,
            training_data_size=len(valid),
            residual_standard_deviation=residual_standard_deviation(residuals),
            schema_version=FEATURE_SCHEMA_VERSION,
            ridge_lambda=lam,
            penalize_intercept=cfg.penalize_intercept,
        )

    def train(
        self,
        player_scope: str,
        stat_type,
        season: str,
        samples: Sequence[TrainingSample],
        ridge_lambda: Optional[float] = None,
    ) -> RegressionModel:
        """Fit a model and persist it to the store (if one is configured)."""
        model = self.fit(player_scope, stat_type, season, samples, ridge_lambda)
        if self.store is not None:
            self.store.save_model(model)
        logger.info(
            "Trained %s on %d samples: R²=%.3f RMSE=%.3f SE=%.3f",
            model.key, model.training_data_size, model.metrics.r_squared,
            model.metrics.rmse, model.metrics.standard_error,
        )
        return model
