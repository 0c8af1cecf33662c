"""Feature schema and extraction from game logs."""

from .feature_engineering import (
    ExtractorConfig,
    FeatureExtractor,
    TrainingSample,
    league_today,
    samples_to_frame,
)
from .schema import FEATURE_DIM, FEATURE_NAMES, FEATURE_SCHEMA_VERSION, FeatureVector, check_schema

__all__ = [
    "ExtractorConfig",
    "FeatureExtractor",
    "TrainingSample",
    "league_today",
    "samples_to_frame",
    "FEATURE_DIM",
    "FEATURE_NAMES",
    "FEATURE_SCHEMA_VERSION",
    "FeatureVector",
    "check_schema",
]
