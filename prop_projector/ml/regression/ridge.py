"""
Weighted ridge regression via the normal equations.

Solves (XᵀWX + λD) β = XᵀWy, which minimizes

    Σ wᵢ (yᵢ − xᵢβ)² + λ ‖Dβ‖²

where X carries a leading intercept column and D is the identity with the
intercept entry zeroed (standard ridge) unless ``penalize_intercept`` is set.

Two solvers are available:
- ``gaussian``: Gaussian elimination with partial pivoting on the normal
  equations. A pivot below ``pivot_tolerance`` is reported instead of being
  skipped; the caller either re-solves with SVD or fails.
- ``svd``: least squares on the augmented system [√W X; √λ D] via
  scipy's SVD-based LAPACK driver. Slower, but never squares the condition
  number of X.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import linalg

from ...errors import NumericalInstabilityWarning, SingularSystemError

logger = logging.getLogger(__name__)

SOLVERS = ("gaussian", "svd")
SINGULAR_POLICIES = ("fallback", "raise")


@dataclass
class RidgeSolution:
    """Solved coefficients (intercept first) and how they were obtained."""

    beta: np.ndarray
    solver: str
    singular_pivot: bool = False

    @property
    def intercept(self) -> float:
        return float(self.beta[0])

    @property
    def coefficients(self) -> np.ndarray:
        return self.beta[1:]


def add_intercept(X: np.ndarray) -> np.ndarray:
    """Prepend a column of ones."""
    X = np.asarray(X, dtype=float)
    return np.column_stack([np.ones(X.shape[0]), X])


def penalty_matrix(n_params: int, ridge_lambda: float, penalize_intercept: bool) -> np.ndarray:
    """λD, with D[0, 0] = 0 unless the intercept is penalized."""
    diag = np.full(n_params, float(ridge_lambda))
    if not penalize_intercept:
        diag[0] = 0.0
    return np.diag(diag)


def gaussian_solve(A: np.ndarray, b: np.ndarray, pivot_tolerance: float = 1e-10) -> np.ndarray:
    """
    Solve A x = b by Gaussian elimination with partial pivoting.

    At each step the row with the largest absolute value in the pivot
    column is swapped into the pivot position.

    Args:
        A: Square coefficient matrix (not modified)
        b: Right-hand side (not modified)
        pivot_tolerance: Smallest acceptable absolute pivot

    Returns:
        Solution vector x

    Raises:
        SingularSystemError: If a pivot falls below ``pivot_tolerance``
    """
    A = np.array(A, dtype=float, copy=True)
    b = np.array(b, dtype=float, copy=True)
    n = A.shape[0]
    if A.shape != (n, n) or b.shape != (n,):
        raise ValueError(f"Incompatible shapes for linear solve: A{A.shape}, b{b.shape}")

    for i in range(n):
        pivot_row = i + int(np.argmax(np.abs(A[i:, i])))
        if pivot_row != i:
            A[[i, pivot_row]] = A[[pivot_row, i]]
            b[[i, pivot_row]] = b[[pivot_row, i]]

        pivot = A[i, i]
        if abs(pivot) < pivot_tolerance:
            raise SingularSystemError(
                f"Near-singular pivot {pivot:.3e} in column {i} (tolerance {pivot_tolerance:.1e})"
            )

        factors = A[i + 1:, i] / pivot
        A[i + 1:, i:] -= np.outer(factors, A[i, i:])
        b[i + 1:] -= factors * b[i]

    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = (b[i] - A[i, i + 1:] @ x[i + 1:]) / A[i, i]
    return x


def svd_ridge(
    X: np.ndarray,
    y: np.ndarray,
    weights: np.ndarray,
    ridge_lambda: float,
    penalize_intercept: bool,
) -> np.ndarray:
    """Weighted ridge as least squares on the augmented system, solved by SVD."""
    sqrt_w = np.sqrt(weights)
    n_params = X.shape[1]
    scale = np.sqrt(np.diag(penalty_matrix(n_params, ridge_lambda, penalize_intercept)))
    X_aug = np.vstack([X * sqrt_w[:, None], np.diag(scale)])
    y_aug = np.concatenate([y * sqrt_w, np.zeros(n_params)])
    beta, _, _, _ = linalg.lstsq(X_aug, y_aug, lapack_driver="gelsd")
    return beta


def solve_ridge(
    X: np.ndarray,
    y: np.ndarray,
    weights: Optional[np.ndarray] = None,
    ridge_lambda: float = 0.1,
    penalize_intercept: bool = False,
    solver: str = "gaussian",
    on_singular: str = "fallback",
    pivot_tolerance: float = 1e-10,
) -> RidgeSolution:
    """
    Fit weighted ridge coefficients.

    Args:
        X: Design matrix including the intercept column, shape (n, p + 1)
        y: Targets, shape (n,)
        weights: Non-negative sample weights (default: all ones)
        ridge_lambda: L2 penalty strength
        penalize_intercept: Apply the penalty to the intercept as well
        solver: 'gaussian' or 'svd'
        on_singular: 'fallback' (warn, re-solve with SVD) or 'raise'
        pivot_tolerance: Near-zero pivot threshold for the gaussian solver

    Returns:
        RidgeSolution with intercept at index 0
    """
    if solver not in SOLVERS:
        raise ValueError(f"Unknown solver '{solver}'. Expected one of {SOLVERS}")
    if on_singular not in SINGULAR_POLICIES:
        raise ValueError(f"Unknown singular policy '{on_singular}'. Expected one of {SINGULAR_POLICIES}")
    if ridge_lambda < 0:
        raise ValueError(f"ridge_lambda must be non-negative, got {ridge_lambda}")

    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    w = np.ones(len(y)) if weights is None else np.asarray(weights, dtype=float)
    if np.any(w < 0):
        raise ValueError("Sample weights must be non-negative")

    if solver == "svd":
        return RidgeSolution(svd_ridge(X, y, w, ridge_lambda, penalize_intercept), solver="svd")

    XtW = X.T * w
    A = XtW @ X + penalty_matrix(X.shape[1], ridge_lambda, penalize_intercept)
    b = XtW @ y
    try:
        return RidgeSolution(gaussian_solve(A, b, pivot_tolerance), solver="gaussian")
    except SingularSystemError as exc:
        if on_singular == "raise":
            raise
        logger.warning("%s; re-solving with SVD least squares", exc)
        warnings.warn(
            f"{exc}; solution obtained from the SVD solver instead",
            NumericalInstabilityWarning,
            stacklevel=2,
        )
        beta = svd_ridge(X, y, w, ridge_lambda, penalize_intercept)
        return RidgeSolution(beta, solver="svd", singular_pivot=True)
