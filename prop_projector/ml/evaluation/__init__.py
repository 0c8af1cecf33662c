"""Fit metrics, chronological splits and cross-validation."""

from .metrics import coverage_within, fit_metrics, prediction_accuracy, residual_standard_deviation
from .validation import (
    CrossValidationResults,
    DataSplit,
    FoldResult,
    ModelEvaluation,
    cross_validate,
    evaluate_model,
    predict_samples,
    time_based_split,
)

__all__ = [
    "coverage_within",
    "fit_metrics",
    "prediction_accuracy",
    "residual_standard_deviation",
    "CrossValidationResults",
    "DataSplit",
    "FoldResult",
    "ModelEvaluation",
    "cross_validate",
    "evaluate_model",
    "predict_samples",
    "time_based_split",
]
