"""Regression predictor and heuristic/regression ensemble."""

from .ensemble import EnsembleCombiner, EnsembleConfig, EnsembleWeights
from .regression import RegressionPredictor, Z_SCORES, z_score

__all__ = [
    "EnsembleCombiner",
    "EnsembleConfig",
    "EnsembleWeights",
    "RegressionPredictor",
    "Z_SCORES",
    "z_score",
]
