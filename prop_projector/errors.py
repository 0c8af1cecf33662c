"""Exceptions and warnings raised by the projection engine."""

from typing import List, Optional

import numpy as np


class InsufficientDataError(ValueError):
    """Raised when too few valid samples remain to fit a model."""

    def __init__(self, n_samples: int, required: int):
        super().__init__(
            f"Insufficient data: {n_samples} valid samples. Need at least {required} for training."
        )
        self.n_samples = n_samples
        self.required = required


class ModelNotFoundError(LookupError):
    """Raised when no persisted model exists for a requested key."""


class InvalidFeatureError(ValueError):
    """Raised when a feature vector contains non-finite values."""

    def __init__(self, message: str, feature_names: Optional[List[str]] = None):
        super().__init__(message)
        self.feature_names = feature_names or []


class FeatureSchemaError(ValueError):
    """Raised when a feature vector does not match the schema a model was trained on."""


class SingularSystemError(np.linalg.LinAlgError):
    """Raised when the normal equations hit a near-singular pivot and fallback is disabled."""


class NumericalInstabilityWarning(RuntimeWarning):
    """Issued when a near-singular pivot is met while solving the normal equations."""
