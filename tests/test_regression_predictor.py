"""Tests for interval predictions from stored models."""

import math

import pytest

from prop_projector.data.features.schema import FEATURE_DIM, FEATURE_NAMES, FeatureVector
from prop_projector.errors import FeatureSchemaError, InvalidFeatureError, ModelNotFoundError
from prop_projector.models.regression import ModelMetrics, RegressionModel
from prop_projector.predictors.regression import RegressionPredictor, Z_SCORES, z_score
from prop_projector.storage.model_store import InMemoryModelStore


def make_model(intercept=2.0, first_coef=0.5, r_squared=0.5, n=25, schema_version="2", coefficients=None):
    if coefficients is None:
        coefficients = [first_coef] + [0.0] * (FEATURE_DIM - 1)
    return RegressionModel(
        player_scope="p1",
        stat_type="points",
        season="2025",
        intercept=intercept,
        coefficients=coefficients,
        feature_names=list(FEATURE_NAMES),
        metrics=ModelMetrics(
            r_squared=r_squared,
            adjusted_r_squared=r_squared,
            rmse=1.0,
            mae=0.8,
            standard_error=1.0,
        ),
        training_data_size=n,
        residual_standard_deviation=2.0,
        schema_version=schema_version,
    )


def vector(first=10.0, **overrides):
    values = dict.fromkeys(FEATURE_NAMES, 0.0)
    values["recent_form_composite"] = first
    values.update(overrides)
    return FeatureVector.from_mapping(values)


@pytest.fixture
def predictor():
    return RegressionPredictor(InMemoryModelStore())


def test_point_estimate_and_intervals(predictor):
    prediction = predictor.predict_with_model(make_model(), vector())

    assert prediction.predicted_value == pytest.approx(7.0)
    assert prediction.standard_deviation == 2.0
    assert prediction.residual_standard_error == 1.0
    assert prediction.confidence_interval.lower == pytest.approx(7.0 - 1.96)
    assert prediction.confidence_interval.upper == pytest.approx(7.0 + 1.96)
    assert prediction.prediction_interval.lower == pytest.approx(7.0 - 3.92)
    assert prediction.prediction_interval.upper == pytest.approx(7.0 + 3.92)
    assert prediction.confidence_interval.confidence == 0.95


@pytest.mark.parametrize("confidence", sorted(Z_SCORES))
def test_supported_confidence_levels(predictor, confidence):
    prediction = predictor.predict_with_model(make_model(), vector(), confidence)
    half_width = prediction.prediction_interval.upper - prediction.predicted_value
    assert half_width == pytest.approx(Z_SCORES[confidence] * 2.0)


def test_unsupported_confidence_level(predictor):
    with pytest.raises(ValueError, match="Unsupported confidence level"):
        predictor.predict_with_model(make_model(), vector(), confidence=0.8)
    assert z_score(0.99) == 2.576


def test_negative_estimate_clamped_and_lower_bounds_floored(predictor):
    prediction = predictor.predict_with_model(make_model(intercept=-20.0), vector())
    assert prediction.predicted_value == 0.0
    assert prediction.confidence_interval.lower == 0.0
    assert prediction.prediction_interval.lower == 0.0
    assert prediction.prediction_interval.upper == pytest.approx(3.92)


def test_feature_importance_normalized(predictor):
    coefficients = [0.0] * FEATURE_DIM
    coefficients[0] = -4.0
    coefficients[5] = 2.0
    prediction = predictor.predict_with_model(make_model(coefficients=coefficients), vector())

    importance = prediction.feature_importance
    assert importance["recent_form_composite"] == 1.0
    assert importance[FEATURE_NAMES[5]] == 0.5
    assert max(importance.values()) == 1.0
    assert all(0.0 <= v <= 1.0 for v in importance.values())


def test_feature_importance_all_zero_for_zero_model(predictor):
    prediction = predictor.predict_with_model(make_model(coefficients=[0.0] * FEATURE_DIM), vector())
    assert set(prediction.feature_importance.values()) == {0.0}
    assert prediction.predicted_value == 2.0


def test_model_confidence(predictor):
    assert predictor.model_confidence(make_model(r_squared=0.5, n=25)) == pytest.approx(0.5)
    assert predictor.model_confidence(make_model(r_squared=-0.3, n=100)) == pytest.approx(0.3)
    assert predictor.model_confidence(make_model(r_squared=1.0, n=50)) == pytest.approx(1.0)


def test_prediction_is_deterministic(predictor):
    model = make_model()
    first = predictor.predict_with_model(model, vector(first=13.3))
    second = predictor.predict_with_model(model, vector(first=13.3))
    assert first == second


def test_non_finite_feature_rejected(predictor):
    with pytest.raises(InvalidFeatureError, match="shot_volume") as exc_info:
        predictor.predict_with_model(make_model(), vector(shot_volume=math.inf))
    assert exc_info.value.feature_names == ["shot_volume"]


def test_schema_mismatch_rejected(predictor):
    with pytest.raises(FeatureSchemaError):
        predictor.predict_with_model(make_model(schema_version="1"), vector())

    stale_vector = FeatureVector(vector().values, schema_version="1")
    with pytest.raises(FeatureSchemaError, match="does not match"):
        predictor.predict_with_model(make_model(), stale_vector)

    reordered = list(FEATURE_NAMES)
    reordered.reverse()
    model = make_model()
    model.feature_names = reordered
    with pytest.raises(FeatureSchemaError):
        predictor.predict_with_model(model, vector())


def test_predict_loads_from_store():
    store = InMemoryModelStore()
    store.save_model(make_model())
    predictor = RegressionPredictor(store)

    prediction = predictor.predict("p1", "points", "2025", vector())
    assert prediction.predicted_value == pytest.approx(7.0)

    with pytest.raises(ModelNotFoundError, match="p1/rebounds/2025"):
        predictor.predict("p1", "rebounds", "2025", vector())
