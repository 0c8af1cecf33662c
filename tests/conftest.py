"""Shared fixtures: synthetic game logs and feature samples."""

from datetime import date, timedelta

import numpy as np
import pytest

from prop_projector.data.features.feature_engineering import TrainingSample
from prop_projector.data.features.schema import FEATURE_DIM, FeatureVector
from prop_projector.models.game import GameRecord

OPPONENTS = ["LVA", "NYL", "SEA", "CHI", "IND"]


def build_history(
    player_id="p1",
    n_games=40,
    start=date(2024, 5, 20),
    season="2024",
    team="MIN",
    every_days=2,
    minutes=30.0,
):
    """Deterministic game log: points cycle 15..21, fixed shooting line."""
    games = []
    for i in range(n_games):
        games.append(GameRecord(
            player_id=player_id,
            game_date=start + timedelta(days=every_days * i),
            team=team,
            opponent=OPPONENTS[i % len(OPPONENTS)],
            is_home=(i % 2 == 0),
            season=season,
            minutes=minutes,
            points=15.0 + (i % 7),
            rebounds=5.0 + (i % 3),
            assists=4.0 + (i % 4),
            turnovers=2.0,
            field_goals_attempted=15.0,
            field_goals_made=7.0,
            three_points_attempted=5.0,
            three_points_made=2.0,
            free_throws_attempted=4.0,
            free_throws_made=3.0,
        ))
    return games


@pytest.fixture
def history_factory():
    return build_history


@pytest.fixture
def linear_samples():
    """Factory for samples with y = intercept + x·beta + noise over random features."""

    def make(n=200, season="2025", noise=0.01, seed=7, intercept=3.0):
        rng = np.random.default_rng(seed)
        beta = np.linspace(-1.0, 1.0, FEATURE_DIM)
        samples = []
        for i in range(n):
            x = rng.normal(size=FEATURE_DIM)
            y = intercept + float(x @ beta) + noise * float(rng.normal())
            samples.append(TrainingSample(
                features=FeatureVector(tuple(x)),
                target=y,
                game_date=date(2025, 1, 1) + timedelta(days=i),
                season=season,
                player_id=f"p{i % 4}",
            ))
        return samples, beta

    return make
