"""
Versioned feature schema for the regression models.

A model stores the schema version and feature names it was trained on, and
the predictor refuses vectors built under any other schema. Bump
FEATURE_SCHEMA_VERSION whenever FEATURE_NAMES changes order or content.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from ...errors import FeatureSchemaError

FEATURE_SCHEMA_VERSION = "2"

FEATURE_NAMES: Tuple[str, ...] = (
    "recent_form_composite",
    "recent_form_volatility",
    "recent_non_scoring_contributions",
    "season_average",
    "home_away",
    "raw_team_pace",
    "raw_opponent_pace",
    "pace_interaction",
    "is_injured",
    "days_rest_log",
    "opponent_points_allowed_avg",
    "team_points_scored_avg",
    "is_starter",
    "historical_minutes",
    "starter_minutes_interaction",
    "usage_rate",
    "three_point_volume",
    "three_point_efficiency",
    "shot_distribution_ratio",
    "two_point_efficiency",
    "shot_volume",
    "opponent_3pt_defense",
    "opponent_post_defense",
    "player_role_playmaker",
    "assist_to_points_ratio",
    "time_decay_weight",
)

FEATURE_DIM = len(FEATURE_NAMES)

BINARY_FEATURES = ("home_away", "is_injured", "is_starter", "player_role_playmaker")
UNIT_INTERVAL_FEATURES = (
    "usage_rate",
    "three_point_efficiency",
    "shot_distribution_ratio",
    "two_point_efficiency",
    "opponent_3pt_defense",
    "time_decay_weight",
)


@dataclass(frozen=True)
class FeatureVector:
    """Fixed-order feature values tagged with the schema that produced them."""

    values: Tuple[float, ...]
    schema_version: str = FEATURE_SCHEMA_VERSION

    def __post_init__(self):
        values = tuple(float(v) for v in self.values)
        if len(values) != FEATURE_DIM:
            raise FeatureSchemaError(
                f"Feature vector has {len(values)} values, schema {self.schema_version} expects {FEATURE_DIM}"
            )
        object.__setattr__(self, "values", values)

    @property
    def feature_names(self) -> Tuple[str, ...]:
        return FEATURE_NAMES

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, float]) -> "FeatureVector":
        """Build a vector from a name -> value mapping, in schema order."""
        missing = [name for name in FEATURE_NAMES if name not in mapping]
        if missing:
            raise FeatureSchemaError(f"Missing features: {', '.join(missing)}")
        return cls(tuple(mapping[name] for name in FEATURE_NAMES))

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(FEATURE_NAMES, self.values))

    def to_array(self) -> np.ndarray:
        return np.asarray(self.values, dtype=float)

    def non_finite_features(self) -> List[str]:
        """Names of features whose value is NaN or infinite."""
        return [name for name, value in zip(FEATURE_NAMES, self.values) if not math.isfinite(value)]

    def is_finite(self) -> bool:
        return not self.non_finite_features()


def check_schema(feature_names: Sequence[str], schema_version: str) -> None:
    """Raise FeatureSchemaError unless names/version match the current schema."""
    if str(schema_version) != FEATURE_SCHEMA_VERSION:
        raise FeatureSchemaError(
            f"Schema version {schema_version} does not match current version {FEATURE_SCHEMA_VERSION}"
        )
    if tuple(feature_names) != FEATURE_NAMES:
        raise FeatureSchemaError("Feature names do not match the current feature schema order")
