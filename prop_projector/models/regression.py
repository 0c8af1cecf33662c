"""Regression model parameters, metrics and predictions."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, NamedTuple, Optional

import numpy as np

from .game import StatType

GENERAL_SCOPE = "GENERAL"


class ModelKey(NamedTuple):
    """Composite key identifying a persisted model."""

    player_scope: str
    stat_type: StatType
    season: str

    @classmethod
    def create(cls, player_scope: str, stat_type, season) -> "ModelKey":
        return cls(str(player_scope), StatType.parse(stat_type), str(season))

    def __str__(self) -> str:
        return f"{self.player_scope}/{self.stat_type.value}/{self.season}"


@dataclass
class ModelMetrics:
    """In-sample fit metrics recorded at training time."""

    r_squared: float
    adjusted_r_squared: float
    rmse: float
    mae: float
    standard_error: float
    prediction_accuracy: float = 0.0  # share of residuals within one RMSE

    def to_dict(self) -> dict:
        return {
            "r_squared": self.r_squared,
            "adjusted_r_squared": self.adjusted_r_squared,
            "rmse": self.rmse,
            "mae": self.mae,
            "standard_error": self.standard_error,
            "prediction_accuracy": self.prediction_accuracy,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModelMetrics":
        return cls(
            r_squared=data["r_squared"],
            adjusted_r_squared=data["adjusted_r_squared"],
            rmse=data["rmse"],
            mae=data["mae"],
            standard_error=data["standard_error"],
            prediction_accuracy=data.get("prediction_accuracy", 0.0),
        )


@dataclass
class RegressionModel:
    """
    Fitted ridge model for one (player scope, stat type, season).

    ``player_scope`` is a player id, or ``GENERAL`` for a model pooled
    across every player.
    """

    player_scope: str
    stat_type: StatType
    season: str
    intercept: float
    coefficients: List[float]
    feature_names: List[str]
    metrics: ModelMetrics
    training_data_size: int
    residual_standard_deviation: float
    schema_version: str
    last_trained: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ridge_lambda: float = 0.1
    penalize_intercept: bool = False

    def __post_init__(self):
        """Validate coefficient/feature alignment."""
        self.stat_type = StatType.parse(self.stat_type)
        if len(self.coefficients) != len(self.feature_names):
            raise ValueError(
                f"Model has {len(self.coefficients)} coefficients but {len(self.feature_names)} feature names"
            )

    @property
    def key(self) -> ModelKey:
        return ModelKey(self.player_scope, self.stat_type, self.season)

    @property
    def r_squared(self) -> float:
        return self.metrics.r_squared

    @property
    def standard_error(self) -> float:
        return self.metrics.standard_error

    def coefficient_map(self) -> Dict[str, float]:
        return dict(zip(self.feature_names, self.coefficients))

    def point_estimates(self, X) -> np.ndarray:
        """Intercept plus weighted features for each row of X, clamped at 0."""
        X = np.atleast_2d(np.asarray(X, dtype=float))
        return np.maximum(self.intercept + X @ np.asarray(self.coefficients, dtype=float), 0.0)

    def to_dict(self) -> dict:
        """Convert model to a JSON-compatible dictionary."""
        return {
            "player_scope": self.player_scope,
            "stat_type": self.stat_type.value,
            "season": self.season,
            "intercept": self.intercept,
            "coefficients": list(self.coefficients),
            "feature_names": list(self.feature_names),
            "metrics": self.metrics.to_dict(),
            "training_data_size": self.training_data_size,
            "residual_standard_deviation": self.residual_standard_deviation,
            "schema_version": self.schema_version,
            "last_trained": self.last_trained.isoformat(),
            "ridge_lambda": self.ridge_lambda,
            "penalize_intercept": self.penalize_intercept,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RegressionModel":
        """Create model from dictionary."""
        return cls(
            player_scope=data["player_scope"],
            stat_type=StatType.parse(data["stat_type"]),
            season=str(data["season"]),
            intercept=float(data["intercept"]),
            coefficients=[float(c) for c in data["coefficients"]],
            feature_names=list(data["feature_names"]),
            metrics=ModelMetrics.from_dict(data["metrics"]),
            training_data_size=int(data["training_data_size"]),
            residual_standard_deviation=float(data["residual_standard_deviation"]),
            schema_version=str(data["schema_version"]),
            last_trained=datetime.fromisoformat(data["last_trained"]),
            ridge_lambda=float(data.get("ridge_lambda", 0.1)),
            penalize_intercept=bool(data.get("penalize_intercept", False)),
        )


@dataclass(frozen=True)
class Interval:
    """A symmetric interval around a point estimate."""

    lower: float
    upper: float
    confidence: float

    def to_dict(self) -> dict:
        return {"lower": self.lower, "upper": self.upper, "confidence": self.confidence}


@dataclass
class Prediction:
    """Point estimate with uncertainty for a single feature vector."""

    predicted_value: float
    standard_deviation: float
    confidence_interval: Interval
    prediction_interval: Interval
    feature_importance: Dict[str, float]
    model_confidence: float
    residual_standard_error: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "predicted_value": self.predicted_value,
            "standard_deviation": self.standard_deviation,
            "confidence_interval": self.confidence_interval.to_dict(),
            "prediction_interval": self.prediction_interval.to_dict(),
            "feature_importance": dict(self.feature_importance),
            "model_confidence": self.model_confidence,
            "residual_standard_error": self.residual_standard_error,
        }
