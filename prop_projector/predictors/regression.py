"""Interval predictions from stored ridge models."""

import logging
from typing import Dict

import numpy as np

from ..data.features.schema import FeatureVector, check_schema
from ..errors import FeatureSchemaError, InvalidFeatureError, ModelNotFoundError
from ..models.regression import Interval, ModelKey, Prediction, RegressionModel
from ..storage.model_store import ModelStore

logger = logging.getLogger(__name__)

# Two-sided normal quantiles for the supported confidence levels.
Z_SCORES = {
    0.90: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}

CONFIDENCE_SATURATION_SAMPLES = 50


def z_score(confidence: float) -> float:
    """Normal quantile for a supported confidence level."""
    for level, z in Z_SCORES.items():
        if abs(level - confidence) < 1e-9:
            return z
    raise ValueError(
        f"Unsupported confidence level {confidence}. Expected one of {sorted(Z_SCORES)}"
    )


def _interval(center: float, half_width: float, confidence: float) -> Interval:
    return Interval(lower=max(0.0, center - half_width), upper=center + half_width, confidence=confidence)


class RegressionPredictor:
    """Applies stored RegressionModels to feature vectors. Read-only."""

    def __init__(self, store: ModelStore):
        """
        Initialize predictor.

        Args:
            store: ModelStore the models are loaded from
        """
        self.name = "regression"
        self.store = store

    def predict(
        self,
        player_scope: str,
        stat_type,
        season: str,
        features: FeatureVector,
        confidence: float = 0.95,
    ) -> Prediction:
        """
        Load the model for a key and predict.

        Raises:
            ModelNotFoundError: If no model is stored for the key
        """
        key = ModelKey.create(player_scope, stat_type, season)
        model = self.store.load_model(key)
        if model is None:
            raise ModelNotFoundError(f"No regression model stored for {key}")
        return self.predict_with_model(model, features, confidence)

    def predict_with_model(
        self,
        model: RegressionModel,
        features: FeatureVector,
        confidence: float = 0.95,
    ) -> Prediction:
        """
        Predict with an already loaded model.

        Args:
            model: Trained model
            features: Feature vector built with the model's schema
            confidence: 0.90, 0.95 or 0.99

        Returns:
            Prediction with confidence and prediction intervals

        Raises:
            FeatureSchemaError: If the vector's schema differs from the model's
            InvalidFeatureError: If any feature is not finite
            ValueError: For an unsupported confidence level
        """
        z = z_score(confidence)
        check_schema(model.feature_names, model.schema_version)
        if str(features.schema_version) != str(model.schema_version):
            raise FeatureSchemaError(
                f"Feature vector schema {features.schema_version} does not match "
                f"model {model.key} schema {model.schema_version}"
            )
        bad = features.non_finite_features()
        if bad:
            raise InvalidFeatureError(f"Non-finite features: {', '.join(bad)}", bad)

        estimate = float(model.point_estimates(features.to_array())[0])

        return Prediction(
            predicted_value=estimate,
            standard_deviation=model.residual_standard_deviation,
            confidence_interval=_interval(estimate, z * model.standard_error, confidence),
            prediction_interval=_interval(estimate, z * model.residual_standard_deviation, confidence),
            feature_importance=self.feature_importance(model),
            model_confidence=self.model_confidence(model),
            residual_standard_error=model.standard_error,
        )

    @staticmethod
    def feature_importance(model: RegressionModel) -> Dict[str, float]:
        """|coef| normalized by the largest |coef|; all zero for a zero model."""
        magnitudes = np.abs(np.asarray(model.coefficients, dtype=float))
        largest = float(magnitudes.max()) if magnitudes.size else 0.0
        if largest == 0.0:
            return {name: 0.0 for name in model.feature_names}
        return {name: float(m / largest) for name, m in zip(model.feature_names, magnitudes)}

    @staticmethod
    def model_confidence(model: RegressionModel) -> float:
        """0.7·max(0, R²) + 0.3·min(1, n/50)."""
        fit = max(0.0, model.metrics.r_squared)
        size = min(1.0, model.training_data_size / CONFIDENCE_SATURATION_SAMPLES)
        return 0.7 * fit + 0.3 * size
