"""
Goodness-of-fit metrics for ridge models.

In-sample metrics are stored with each model; holdout metrics are computed
on unseen samples by the evaluation helpers.
"""

from __future__ import annotations

import math

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from ...models.regression import ModelMetrics


# ---------------------------------------------------------------------------
# Fit metrics
# ---------------------------------------------------------------------------

def fit_metrics(y_true: np.ndarray, y_pred: np.ndarray, n_features: int) -> ModelMetrics:
    """Compute fit metrics over unweighted samples.

    Args:
        y_true: Observed targets, shape (n,).
        y_pred: Fitted values, shape (n,).
        n_features: Number of predictors p (intercept excluded).

    Returns:
        ModelMetrics. When n - p - 1 <= 0 the adjusted R² falls back to R²
        and the standard error to the RMSE.
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    n = len(y_true)
    if n == 0:
        raise ValueError("Cannot compute fit metrics on zero samples")

    residuals = y_true - y_pred
    ss_res = float(np.sum(residuals ** 2))
    ss_tot = float(np.sum((y_true - y_true.mean()) ** 2))

    rmse = math.sqrt(mean_squared_error(y_true, y_pred))
    mae = float(mean_absolute_error(y_true, y_pred))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0

    dof = n - n_features - 1
    if dof > 0:
        adjusted = 1.0 - (1.0 - r_squared) * (n - 1) / dof
        standard_error = math.sqrt(ss_res / dof)
    else:
        adjusted = r_squared
        standard_error = rmse

    return ModelMetrics(
        r_squared=r_squared,
        adjusted_r_squared=adjusted,
        rmse=rmse,
        mae=mae,
        standard_error=standard_error,
        prediction_accuracy=prediction_accuracy(residuals, rmse),
    )


def prediction_accuracy(residuals: np.ndarray, tolerance: float) -> float:
    """Share of residuals whose magnitude is within ``tolerance``."""
    residuals = np.asarray(residuals, dtype=float)
    if residuals.size == 0:
        return 0.0
    return float(np.mean(np.abs(residuals) <= tolerance))


def residual_standard_deviation(residuals: np.ndarray) -> float:
    """Population standard deviation of residuals."""
    residuals = np.asarray(residuals, dtype=float)
    return float(np.std(residuals)) if residuals.size else 0.0


def coverage_within(residuals: np.ndarray, scale: float, multiples=(1, 2, 3)) -> dict:
    """Share of residuals within k·scale for each k.

    A zero scale counts only exact fits as covered.
    """
    residuals = np.abs(np.asarray(residuals, dtype=float))
    coverage = {}
    for k in multiples:
        key = f"within_{k}_sd"
        coverage[key] = float(np.mean(residuals <= k * scale)) if residuals.size else 0.0
    return coverage
