"""Sanity validators for game records and feature vectors."""

from __future__ import annotations

import math
from typing import Iterable, List

from ..models.game import GameRecord
from .features.schema import BINARY_FEATURES, UNIT_INTERVAL_FEATURES, FeatureVector


def validate_game_records(records: Iterable[GameRecord]) -> List[str]:
    """
    Check game records for impossible box-score lines.

    Returns:
        Human-readable error strings (empty when everything is consistent)
    """
    errors: List[str] = []
    seen = set()
    for idx, record in enumerate(records):
        label = f"games[{idx}] ({record.player_id} {record.game_date})"
        key = (record.player_id, record.game_date)
        if key in seen:
            errors.append(f"{label} duplicate player/date row")
        seen.add(key)

        for name in ("minutes", "points", "rebounds", "assists", "turnovers"):
            value = getattr(record, name)
            if value is not None and value < 0:
                errors.append(f"{label} negative {name}")

        pairs = [
            ("field_goals_made", "field_goals_attempted"),
            ("three_points_made", "three_points_attempted"),
            ("free_throws_made", "free_throws_attempted"),
        ]
        for made_name, attempted_name in pairs:
            made = getattr(record, made_name)
            attempted = getattr(record, attempted_name)
            if made is not None and attempted is not None and made > attempted:
                errors.append(f"{label} {made_name} exceeds {attempted_name}")

        if (
            record.three_points_attempted is not None
            and record.field_goals_attempted is not None
            and record.three_points_attempted > record.field_goals_attempted
        ):
            errors.append(f"{label} three_points_attempted exceeds field_goals_attempted")
    return errors


def validate_feature_vector(vector: FeatureVector) -> List[str]:
    """
    Check a feature vector for non-finite and out-of-range values.

    Returns:
        Names of offending features, each with a short reason
    """
    errors: List[str] = []
    values = vector.as_dict()
    for name, value in values.items():
        if not math.isfinite(value):
            errors.append(f"{name}: non-finite value {value}")
            continue
        if name in BINARY_FEATURES and value not in (0.0, 1.0):
            errors.append(f"{name}: expected 0/1, got {value}")
        elif name in UNIT_INTERVAL_FEATURES and not 0.0 <= value <= 1.0:
            errors.append(f"{name}: expected value in [0, 1], got {value}")
    if math.isfinite(values["days_rest_log"]) and values["days_rest_log"] < 0:
        errors.append(f"days_rest_log: negative value {values['days_rest_log']}")
    return errors
