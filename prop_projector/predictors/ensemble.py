"""Ensemble combining the heuristic projection with a regression prediction."""

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

from ..models.projection import ProjectionRequest, ProjectionResult, Recommendation, RiskLevel
from ..models.regression import Prediction

logger = logging.getLogger(__name__)


@dataclass
class EnsembleConfig:
    """Weighting and risk thresholds for the combiner."""

    base_heuristic_weight: float = 0.7
    base_regression_weight: float = 0.3
    high_confidence: float = 0.8
    low_confidence: float = 0.5
    confident_model_weights: tuple = (0.5, 0.5)  # (heuristic, regression)
    weak_model_weights: tuple = (0.8, 0.2)
    heuristic_confidence_shift: float = 0.1
    heuristic_sd_scale: float = 0.3
    heuristic_confidence_share: float = 0.6
    low_risk_uncertainty: float = 2.0
    medium_risk_uncertainty: float = 4.0
    min_edge_ratio: float = 1.0


@dataclass(frozen=True)
class EnsembleWeights:
    heuristic: float
    regression: float


class EnsembleCombiner:
    """
    Blends a heuristic projection with a regression prediction.

    The result carries the combined value, a propagated uncertainty, a
    risk level and an OVER/UNDER/PASS recommendation against the market
    line. ``combine`` never raises: any failure degrades to the heuristic
    projection annotated with a zero regression factor.
    """

    def __init__(self, config: Optional[EnsembleConfig] = None):
        self.name = "ensemble"
        self.config = config or EnsembleConfig()

    def combine(
        self,
        request: ProjectionRequest,
        heuristic: ProjectionResult,
        prediction: Optional[Prediction] = None,
    ) -> ProjectionResult:
        """
        Combine projections for one request.

        Args:
            request: Projection request (carries the market line, if any)
            heuristic: Projection from the heuristic engine
            prediction: Regression prediction, or None when no model applies

        Returns:
            Combined ProjectionResult
        """
        if prediction is None:
            return self.passthrough(request, heuristic)
        try:
            return self._combine(request, heuristic, prediction)
        except Exception:
            logger.exception(
                "Combining projections for %s %s failed; using heuristic projection",
                request.player_name, request.stat_type.value,
            )
            return self.passthrough(request, heuristic)

    def _combine(
        self,
        request: ProjectionRequest,
        heuristic: ProjectionResult,
        prediction: Prediction,
    ) -> ProjectionResult:
        weights = self.calculate_weights(heuristic.confidence_score, prediction.model_confidence)
        value = weights.heuristic * heuristic.projected_value + weights.regression * prediction.predicted_value
        uncertainty = self.combined_uncertainty(heuristic, prediction)
        edge = self.edge(value, request.market_line)

        factors = dict(heuristic.factors)
        factors.update({
            "regression_factor": prediction.model_confidence,
            "heuristic_weight": weights.heuristic,
            "regression_weight": weights.regression,
            "regression_value": prediction.predicted_value,
        })

        logger.debug(
            "Combined %s %s: %.2f x %.2f + %.2f x %.2f = %.2f +/- %.2f",
            request.player_name, request.stat_type.value,
            heuristic.projected_value, weights.heuristic,
            prediction.predicted_value, weights.regression,
            value, uncertainty,
        )

        return ProjectionResult(
            projected_value=value,
            confidence_score=self.combined_confidence(heuristic.confidence_score, prediction.model_confidence),
            risk_level=self.risk_level(uncertainty),
            edge=edge,
            recommendation=self.recommend(edge, uncertainty, request.market_line),
            factors=factors,
            uncertainty=uncertainty,
        )

    def passthrough(self, request: ProjectionRequest, heuristic: ProjectionResult) -> ProjectionResult:
        """Heuristic projection with ``regression_factor = 0``; PASS when no line."""
        result = heuristic.with_factors(regression_factor=0.0)
        if not request.has_market_line:
            result = replace(result, edge=0.0, recommendation=Recommendation.PASS)
        return result

    def calculate_weights(self, heuristic_confidence: float, model_confidence: float) -> EnsembleWeights:
        """
        Blend weights from the two confidence scores.

        Args:
            heuristic_confidence: Confidence score of the heuristic projection
            model_confidence: Confidence of the regression model

        Returns:
            EnsembleWeights summing to 1
        """
        cfg = self.config
        h_weight, r_weight = cfg.base_heuristic_weight, cfg.base_regression_weight
        if model_confidence > cfg.high_confidence:
            h_weight, r_weight = cfg.confident_model_weights
        elif model_confidence < cfg.low_confidence:
            h_weight, r_weight = cfg.weak_model_weights

        if heuristic_confidence > cfg.high_confidence:
            h_weight += cfg.heuristic_confidence_shift
            r_weight -= cfg.heuristic_confidence_shift
        elif heuristic_confidence < cfg.low_confidence:
            h_weight -= cfg.heuristic_confidence_shift
            r_weight += cfg.heuristic_confidence_shift

        total = h_weight + r_weight
        return EnsembleWeights(heuristic=h_weight / total, regression=r_weight / total)

    def combined_uncertainty(self, heuristic: ProjectionResult, prediction: Prediction) -> float:
        """sqrt(SD_h² + SD_r²) with SD_h = (1 - c_h) · h · 0.3."""
        heuristic_sd = (1.0 - heuristic.confidence_score) * heuristic.projected_value * self.config.heuristic_sd_scale
        return math.sqrt(heuristic_sd ** 2 + prediction.standard_deviation ** 2)

    def combined_confidence(self, heuristic_confidence: float, model_confidence: float) -> float:
        share = self.config.heuristic_confidence_share
        return min(1.0, max(0.0, share * heuristic_confidence + (1.0 - share) * model_confidence))

    def risk_level(self, uncertainty: float) -> RiskLevel:
        if uncertainty < self.config.low_risk_uncertainty:
            return RiskLevel.LOW
        if uncertainty < self.config.medium_risk_uncertainty:
            return RiskLevel.MEDIUM
        return RiskLevel.HIGH

    @staticmethod
    def edge(value: float, market_line: Optional[float]) -> float:
        if market_line is None:
            return 0.0
        return value - market_line

    def recommend(self, edge: float, uncertainty: float, market_line: Optional[float]) -> Recommendation:
        """OVER/UNDER when |edge| is at least ``min_edge_ratio`` uncertainties."""
        if market_line is None or edge == 0.0:
            return Recommendation.PASS
        # Zero uncertainty makes any nonzero edge significant.
        if uncertainty > 0 and abs(edge) / uncertainty < self.config.min_edge_ratio:
            return Recommendation.PASS
        return Recommendation.OVER if edge > 0 else Recommendation.UNDER
