"""Tests for game-log feature extraction."""

import logging
import math
from dataclasses import replace
from datetime import date

import pytest

from prop_projector.data.features.feature_engineering import (
    ExtractorConfig,
    FeatureExtractor,
    samples_to_frame,
)
from prop_projector.data.features.schema import FEATURE_DIM, FEATURE_NAMES, FeatureVector, check_schema
from prop_projector.data.reference import (
    ReferenceTables,
    SeasonAverage,
    TeamDefense,
    TeamStats,
)
from prop_projector.data.validators import validate_feature_vector
from prop_projector.errors import FeatureSchemaError, InsufficientDataError, InvalidFeatureError
from prop_projector.models.game import StatType

TODAY = date(2025, 1, 1)


@pytest.fixture
def extractor():
    return FeatureExtractor(config=ExtractorConfig(today=TODAY))


def _featurize_game(extractor, games, idx, stat_type=StatType.POINTS, current_season=None):
    vector = extractor.featurize("p1", games[:idx], games[idx].context, stat_type, current_season)
    return vector.as_dict()


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

def test_feature_vector_rejects_wrong_length():
    with pytest.raises(FeatureSchemaError, match="expects 26"):
        FeatureVector((1.0, 2.0))


def test_feature_vector_from_mapping_requires_every_feature():
    mapping = {name: 0.0 for name in FEATURE_NAMES[:-1]}
    with pytest.raises(FeatureSchemaError, match="time_decay_weight"):
        FeatureVector.from_mapping(mapping)


def test_check_schema_detects_reordering():
    names = list(FEATURE_NAMES)
    names[0], names[1] = names[1], names[0]
    with pytest.raises(FeatureSchemaError):
        check_schema(names, "2")
    with pytest.raises(FeatureSchemaError, match="version"):
        check_schema(FEATURE_NAMES, "1")


# ---------------------------------------------------------------------------
# Feature values
# ---------------------------------------------------------------------------

def test_recent_form_and_role_features(extractor, history_factory):
    games = history_factory()
    f = _featurize_game(extractor, games, 20)

    # last5 points: 16..20, last15: 15 + (5,6,0,1,2,3,4,5,6,0,1,2,3,4,5)
    assert f["recent_form_composite"] == pytest.approx(0.6 * 18.0 + 0.4 * (15.0 + 47.0 / 15.0))
    assert f["recent_form_volatility"] == pytest.approx(math.sqrt(2.0))
    assert f["recent_non_scoring_contributions"] == pytest.approx(58.0 / 5.0)
    assert f["home_away"] == 1.0
    assert f["days_rest_log"] == pytest.approx(math.log(3))
    assert f["historical_minutes"] == pytest.approx(30.0)
    assert f["is_starter"] == 1.0
    assert f["starter_minutes_interaction"] == pytest.approx(30.0)
    assert f["usage_rate"] == pytest.approx(0.4)  # capped
    assert f["assist_to_points_ratio"] == pytest.approx(29.0 / 90.0)
    assert f["player_role_playmaker"] == 1.0


def test_shooting_profile(extractor, history_factory):
    f = _featurize_game(extractor, history_factory(), 20)
    assert f["three_point_volume"] == pytest.approx(5.0)
    assert f["three_point_efficiency"] == pytest.approx(0.4)
    assert f["shot_distribution_ratio"] == pytest.approx(1.0 / 3.0)
    assert f["two_point_efficiency"] == pytest.approx(0.5)
    assert f["shot_volume"] == pytest.approx(15.0)


def test_shooting_profile_falls_back_to_window_when_recent_games_have_no_shots(extractor, history_factory):
    games = history_factory()
    for i in range(15, 20):
        games[i] = replace(games[i], field_goals_attempted=0.0, field_goals_made=0.0,
                           three_points_attempted=0.0, three_points_made=0.0)
    f = _featurize_game(extractor, games, 20)
    assert f["shot_volume"] == pytest.approx(15.0)
    assert f["three_point_efficiency"] == pytest.approx(0.4)


def test_shooting_profile_zero_without_any_attempts(extractor, history_factory):
    games = [replace(g, field_goals_attempted=None, three_points_attempted=None) for g in history_factory()]
    f = _featurize_game(extractor, games, 20)
    for name in ("three_point_volume", "three_point_efficiency", "shot_distribution_ratio",
                 "two_point_efficiency", "shot_volume"):
        assert f[name] == 0.0


def test_league_average_fallbacks(extractor, history_factory):
    f = _featurize_game(extractor, history_factory(), 20)
    assert f["raw_team_pace"] == 95.0
    assert f["raw_opponent_pace"] == 95.0
    assert f["pace_interaction"] == pytest.approx(9025.0)
    assert f["opponent_points_allowed_avg"] == 82.0
    assert f["team_points_scored_avg"] == 82.0
    assert f["opponent_3pt_defense"] == 0.33
    assert f["opponent_post_defense"] == 40.0
    assert f["season_average"] == 0.0
    assert f["is_injured"] == 0.0


def test_reference_tables_override_fallbacks(history_factory):
    games = history_factory()
    opponent = games[20].opponent
    reference = ReferenceTables(
        team_stats={("MIN", "2024"): TeamStats(pace=100.0)},
        team_defense={(opponent, "2024"): TeamDefense(points_allowed=0.0, three_point_pct_allowed=0.36)},
        injuries={"p1"},
        usage={"p1": 0.25},
        season_averages={("p1", "2024"): SeasonAverage(minutes=20.0, points=22.0, rebounds=6.0, assists=5.0)},
    )
    extractor = FeatureExtractor(reference, ExtractorConfig(today=TODAY))

    f = _featurize_game(extractor, games, 20)
    assert f["raw_team_pace"] == 100.0
    assert f["raw_opponent_pace"] == 95.0
    assert f["pace_interaction"] == pytest.approx(9500.0)
    assert f["opponent_points_allowed_avg"] == 82.0  # zero treated as missing
    assert f["opponent_3pt_defense"] == 0.36
    assert f["is_injured"] == 1.0
    assert f["usage_rate"] == 0.25
    assert f["season_average"] == 22.0
    # Season minutes (20) decide starter status over recent minutes (30).
    assert f["is_starter"] == 0.0
    assert f["starter_minutes_interaction"] == 0.0

    pra = _featurize_game(extractor, games, 20, StatType.POINTS_REBOUNDS_ASSISTS)
    assert pra["season_average"] == 33.0


def test_time_decay_weight(extractor, history_factory):
    games = history_factory()
    f = _featurize_game(extractor, games, 20)
    days = (TODAY - games[20].game_date).days
    assert f["time_decay_weight"] == pytest.approx(math.exp(-0.0025 * days))


def test_current_season_window_is_cut_at_today(history_factory):
    games = history_factory()
    extractor = FeatureExtractor(config=ExtractorConfig(today=games[10].game_date))

    f = _featurize_game(extractor, games, 30, current_season="2024")

    # Only games 0..9 precede "today": last5 points 20,21,15,16,17; last10 mean 17.4
    assert f["recent_form_composite"] == pytest.approx(0.6 * 17.8 + 0.4 * 17.4)
    assert f["time_decay_weight"] == 1.0  # game after today, floored at zero days


def test_historical_season_uses_all_prior_games(history_factory):
    games = history_factory(season="2023")
    extractor = FeatureExtractor(config=ExtractorConfig(today=games[10].game_date))

    historical = _featurize_game(extractor, games, 30, current_season="2024")
    current = _featurize_game(extractor, games, 30, current_season="2023")

    # last5 = games 25..29: 15 + (4,5,6,0,1); last15 = games 15..29
    assert historical["recent_form_composite"] == pytest.approx(0.6 * 18.2 + 0.4 * (15.0 + 43.0 / 15.0))
    assert current["recent_form_composite"] == pytest.approx(0.6 * 17.8 + 0.4 * 17.4)


def test_rest_days_default_without_previous_game(extractor, history_factory):
    games = history_factory()
    f = extractor.featurize("p1", [], games[0].context, StatType.POINTS).as_dict()
    assert f["days_rest_log"] == pytest.approx(math.log(3))
    assert f["historical_minutes"] == 25.0
    assert f["usage_rate"] == 0.2


# ---------------------------------------------------------------------------
# Sample extraction
# ---------------------------------------------------------------------------

def test_training_samples_require_fifteen_prior_games(extractor, history_factory):
    samples = extractor.extract_training_samples("p1", history_factory(), StatType.POINTS)
    assert len(samples) == 25
    assert samples[0].game_date == history_factory()[15].game_date
    assert all(s.player_id == "p1" and s.season == "2024" for s in samples)


def test_training_samples_skip_low_minutes_and_missing_targets(extractor, history_factory):
    games = history_factory()
    games[20] = replace(games[20], minutes=8.0)
    games[25] = replace(games[25], points=None)
    games[26] = replace(games[26], minutes=10.0)  # must exceed 10

    samples = extractor.extract_training_samples("p1", games, StatType.POINTS)
    assert len(samples) == 22


def test_composite_targets_sum_components(extractor, history_factory):
    samples = extractor.extract_training_samples("p1", history_factory(), "pra")
    # game 15: 16 points, 5 rebounds, 7 assists
    assert samples[0].target == 28.0

    games = history_factory()
    games[15] = replace(games[15], rebounds=None)
    samples = extractor.extract_training_samples("p1", games, StatType.POINTS_REBOUNDS_ASSISTS)
    assert len(samples) == 24


def test_non_finite_samples_are_logged_and_skipped(history_factory, caplog):
    reference = ReferenceTables(usage={"p1": float("inf")})
    extractor = FeatureExtractor(reference, ExtractorConfig(today=TODAY))

    with caplog.at_level(logging.WARNING):
        samples = extractor.extract_training_samples("p1", history_factory(), StatType.POINTS)

    assert samples == []
    assert "usage_rate" in caplog.text


def test_pooled_samples_cover_all_players(extractor, history_factory):
    histories = {
        "p1": history_factory("p1"),
        "p2": history_factory("p2", n_games=20),
    }
    samples = extractor.extract_pooled_samples(histories, StatType.REBOUNDS)
    assert len(samples) == 25 + 5
    assert {s.player_id for s in samples} == {"p1", "p2"}


def test_featurize_upcoming(extractor, history_factory):
    games = history_factory()
    context = replace(games[-1].context, game_date=date(2024, 8, 10), opponent="SEA")
    vector = extractor.featurize_upcoming("p1", games, context, StatType.POINTS)
    assert len(vector.values) == FEATURE_DIM
    assert vector.is_finite()
    assert validate_feature_vector(vector) == []


def test_featurize_upcoming_needs_history(extractor, history_factory):
    games = history_factory(n_games=10)
    context = replace(games[-1].context, game_date=date(2024, 8, 10))
    with pytest.raises(InsufficientDataError, match="10 valid samples"):
        extractor.featurize_upcoming("p1", games, context, StatType.POINTS)


def test_featurize_upcoming_rejects_non_finite_features(history_factory):
    reference = ReferenceTables(usage={"p1": float("inf")})
    extractor = FeatureExtractor(reference, ExtractorConfig(today=TODAY))
    games = history_factory()
    context = replace(games[-1].context, game_date=date(2024, 8, 10))

    with pytest.raises(InvalidFeatureError) as exc_info:
        extractor.featurize_upcoming("p1", games, context, StatType.POINTS)
    assert exc_info.value.feature_names == ["usage_rate"]


def test_samples_to_frame(extractor, history_factory):
    samples = extractor.extract_training_samples("p1", history_factory(), StatType.POINTS)
    frame = samples_to_frame(samples)
    assert len(frame) == 25
    assert list(frame.columns[:FEATURE_DIM]) == list(FEATURE_NAMES)
    assert {"target", "sample_weight", "game_date", "season", "player_id"} <= set(frame.columns)


def test_validate_feature_vector_flags_out_of_range_values():
    values = dict.fromkeys(FEATURE_NAMES, 0.0)
    values["home_away"] = 0.5
    values["three_point_efficiency"] = 1.5
    values["days_rest_log"] = -1.0
    values["shot_volume"] = float("nan")

    errors = validate_feature_vector(FeatureVector.from_mapping(values))

    joined = "\n".join(errors)
    assert "home_away" in joined
    assert "three_point_efficiency" in joined
    assert "days_rest_log" in joined
    assert "shot_volume" in joined
