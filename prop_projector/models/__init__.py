"""Data model shared by the extractor, trainer, predictor and combiner."""

from .game import GameContext, GameRecord, StatType
from .projection import ProjectionRequest, ProjectionResult, Recommendation, RiskLevel
from .regression import GENERAL_SCOPE, Interval, ModelKey, ModelMetrics, Prediction, RegressionModel

__all__ = [
    "GameContext",
    "GameRecord",
    "StatType",
    "ProjectionRequest",
    "ProjectionResult",
    "Recommendation",
    "RiskLevel",
    "GENERAL_SCOPE",
    "Interval",
    "ModelKey",
    "ModelMetrics",
    "Prediction",
    "RegressionModel",
]
