"""
Feature extraction from player game logs.

Turns a date-ordered game history into the fixed 26-feature vectors defined
in ``schema.py``:
- Recent form (5/15-game composite, volatility, non-scoring production)
- Matchup context (pace, opponent allowances, home/away, rest)
- Role (starter status, minutes, usage, playmaking)
- Shooting profile (3PT volume/efficiency, 2PT efficiency, shot mix)
- Recency (exponential time-decay weight)

Windows only ever look at games strictly before the game being
featurized. For the current season they are further cut at "today" in the
league's local timezone, so a backfilled log cannot leak future games.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import pytz

from ...errors import InsufficientDataError, InvalidFeatureError
from ...models.game import GameContext, GameRecord, StatType
from ..reference import ReferenceTables
from .schema import FEATURE_NAMES, FeatureVector

logger = logging.getLogger(__name__)


@dataclass
class ExtractorConfig:
    """Windowing and default-value configuration for feature extraction."""

    current_season: Optional[str] = None  # defaults to the latest season in the history
    today: Optional[date] = None  # defaults to the current date in `timezone`
    timezone: str = "America/Chicago"
    min_prior_games: int = 15
    min_minutes: float = 10.0
    short_window: int = 5
    long_window: int = 15
    decay_rate: float = 0.0025  # half-life ~277 days
    starter_minutes: float = 25.0
    default_minutes: float = 25.0
    default_rest_days: int = 2
    default_usage: float = 0.2
    max_usage: float = 0.4
    playmaker_threshold: float = 0.3


@dataclass
class TrainingSample:
    """One (features, target) pair for a played game."""

    features: FeatureVector
    target: float
    game_date: date
    season: str
    player_id: str
    sample_weight: float = 1.0


def league_today(timezone_name: str) -> date:
    """Current calendar date in the given timezone."""
    return datetime.now(pytz.timezone(timezone_name)).date()


def _latest_season(games: Iterable[GameRecord]) -> Optional[str]:
    seasons = {g.season for g in games}
    return max(seasons) if seasons else None


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


def _value(value: Optional[float]) -> float:
    return float(value) if value is not None else 0.0


class FeatureExtractor:
    """
    Builds FeatureVectors and TrainingSamples from game histories.

    The extractor is stateless apart from its reference tables and config,
    so one instance can featurize any number of players.
    """

    def __init__(
        self,
        reference: Optional[ReferenceTables] = None,
        config: Optional[ExtractorConfig] = None,
    ):
        self.reference = reference or ReferenceTables()
        self.config = config or ExtractorConfig()

    @property
    def today(self) -> date:
        return self.config.today or league_today(self.config.timezone)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def extract_training_samples(
        self,
        player_id: str,
        history: Sequence[GameRecord],
        stat_type: StatType,
        current_season: Optional[str] = None,
    ) -> List[TrainingSample]:
        """
        Extract every eligible training sample from one player's history.

        A game is eligible when the player has at least ``min_prior_games``
        earlier games, played more than ``min_minutes`` and has the target
        stat recorded. Games whose features are not all finite are logged
        and skipped.

        Args:
            player_id: Player identifier
            history: The player's game records (any order)
            stat_type: Stat to use as the regression target
            current_season: Season treated as "current" for the today cut

        Returns:
            List of TrainingSample, in date order
        """
        stat_type = StatType.parse(stat_type)
        games = sorted(history, key=lambda g: g.game_date)
        current = current_season or self.config.current_season or _latest_season(games)
        samples: List[TrainingSample] = []
        skipped_invalid = 0

        for idx, game in enumerate(games):
            prior = [g for g in games[:idx] if g.game_date < game.game_date]
            if len(prior) < self.config.min_prior_games:
                continue
            if game.minutes is None or game.minutes <= self.config.min_minutes:
                continue
            target = game.stat_value(stat_type)
            if target is None:
                continue

            vector = self.featurize(player_id, prior, game.context, stat_type, current)
            bad = vector.non_finite_features()
            if bad or not math.isfinite(target):
                skipped_invalid += 1
                logger.warning(
                    "Skipping %s on %s vs %s: non-finite features %s",
                    player_id, game.game_date, game.opponent, bad or ["target"],
                )
                continue

            samples.append(TrainingSample(
                features=vector,
                target=float(target),
                game_date=game.game_date,
                season=game.season,
                player_id=player_id,
            ))

        if samples:
            logger.debug("Extracted %d %s samples for %s (%d invalid skipped)",
                         len(samples), stat_type.value, player_id, skipped_invalid)
        else:
            logger.debug("No eligible %s samples for %s (%d games)", stat_type.value, player_id, len(games))
        return samples

    def extract_pooled_samples(
        self,
        histories: Dict[str, Sequence[GameRecord]],
        stat_type: StatType,
        current_season: Optional[str] = None,
    ) -> List[TrainingSample]:
        """Extract and pool samples across players (for GENERAL models)."""
        if current_season is None and self.config.current_season is None:
            current_season = _latest_season(g for games in histories.values() for g in games)
        pooled: List[TrainingSample] = []
        for player_id in sorted(histories):
            pooled.extend(self.extract_training_samples(
                player_id, histories[player_id], stat_type, current_season,
            ))
        logger.info("Pooled %d %s samples across %d players",
                    len(pooled), StatType.parse(stat_type).value, len(histories))
        return pooled

    def featurize_upcoming(
        self,
        player_id: str,
        history: Sequence[GameRecord],
        context: GameContext,
        stat_type: StatType,
    ) -> FeatureVector:
        """
        Build the feature vector for a game that has not been played yet.

        Raises:
            InsufficientDataError: If fewer than ``min_prior_games`` games precede it
            InvalidFeatureError: If any feature is non-finite
        """
        prior = sorted(
            (g for g in history if g.game_date < context.game_date),
            key=lambda g: g.game_date,
        )
        if len(prior) < self.config.min_prior_games:
            raise InsufficientDataError(len(prior), self.config.min_prior_games)

        current = self.config.current_season or context.season
        vector = self.featurize(player_id, prior, context, stat_type, current)
        bad = vector.non_finite_features()
        if bad:
            raise InvalidFeatureError(
                f"Non-finite features for {player_id} on {context.game_date}: {', '.join(bad)}",
                feature_names=bad,
            )
        return vector

    # ------------------------------------------------------------------
    # Feature construction
    # ------------------------------------------------------------------

    def prior_window(
        self,
        prior_games: Sequence[GameRecord],
        context: GameContext,
        current_season: Optional[str],
    ) -> List[GameRecord]:
        """Games usable for rolling windows: all prior games, cut at today for the current season."""
        if context.season == current_season:
            today = self.today
            return [g for g in prior_games if g.game_date < today]
        return list(prior_games)

    def featurize(
        self,
        player_id: str,
        prior_games: Sequence[GameRecord],
        context: GameContext,
        stat_type: StatType,
        current_season: Optional[str] = None,
    ) -> FeatureVector:
        """
        Compute the feature vector for one game from the games before it.

        Does not validate finiteness; callers decide whether a bad vector
        is skipped (training) or rejected (prediction).
        """
        cfg = self.config
        ref = self.reference
        stat_type = StatType.parse(stat_type)

        window = self.prior_window(prior_games, context, current_season)
        last_short = window[-cfg.short_window:]
        last_long = window[-cfg.long_window:]

        short_points = [_value(g.points) for g in last_short]
        long_points = [_value(g.points) for g in last_long]
        form_short = _mean(short_points)
        form_long = _mean(long_points)
        recent_form_composite = 0.6 * form_short + 0.4 * form_long
        recent_form_volatility = float(np.std(short_points)) if len(short_points) > 1 else 0.0
        non_scoring = _mean([_value(g.assists) + _value(g.rebounds) for g in last_short])

        season_avg_row = ref.season_average(player_id, context.season)
        season_average = season_avg_row.stat_average(stat_type) if season_avg_row else None

        team_pace = ref.team_pace(context.team, context.season)
        opponent_pace = ref.team_pace(context.opponent, context.season)

        rest_days = self._rest_days(prior_games, context)

        historical_minutes = (
            _mean([_value(g.minutes) for g in last_short]) if last_short else cfg.default_minutes
        )
        expected_minutes = historical_minutes
        if season_avg_row and season_avg_row.minutes and season_avg_row.minutes > 0:
            expected_minutes = season_avg_row.minutes
        is_starter = 1.0 if expected_minutes >= cfg.starter_minutes else 0.0

        usage_rate = ref.usage_rate(player_id)
        if usage_rate is None:
            usage_rate = self._approximate_usage(last_short)

        shooting = self._shooting_profile(last_short, window)

        recent_assists = sum(_value(g.assists) for g in last_short)
        recent_points = sum(short_points)
        assist_to_points = recent_assists / recent_points if recent_points > 0 else 0.0

        days_since_game = max(0, (self.today - context.game_date).days)
        time_decay_weight = math.exp(-cfg.decay_rate * days_since_game)

        values = {
            "recent_form_composite": recent_form_composite,
            "recent_form_volatility": recent_form_volatility,
            "recent_non_scoring_contributions": non_scoring,
            "season_average": season_average if season_average is not None else 0.0,
            "home_away": 1.0 if context.is_home else 0.0,
            "raw_team_pace": team_pace,
            "raw_opponent_pace": opponent_pace,
            "pace_interaction": team_pace * opponent_pace,
            "is_injured": 1.0 if ref.is_injured(player_id) else 0.0,
            "days_rest_log": math.log(rest_days + 1),
            "opponent_points_allowed_avg": ref.opponent_points_allowed(context.opponent, context.season),
            "team_points_scored_avg": ref.team_points_scored(context.team, context.season),
            "is_starter": is_starter,
            "historical_minutes": historical_minutes,
            "starter_minutes_interaction": is_starter * historical_minutes,
            "usage_rate": usage_rate,
            "three_point_volume": shooting[0],
            "three_point_efficiency": shooting[1],
            "shot_distribution_ratio": shooting[2],
            "two_point_efficiency": shooting[3],
            "shot_volume": shooting[4],
            "opponent_3pt_defense": ref.opponent_three_point_defense(context.opponent, context.season),
            "opponent_post_defense": ref.opponent_post_defense(context.opponent, context.season),
            "player_role_playmaker": 1.0 if assist_to_points > cfg.playmaker_threshold else 0.0,
            "assist_to_points_ratio": assist_to_points,
            "time_decay_weight": time_decay_weight,
        }
        return FeatureVector.from_mapping(values)

    def _rest_days(self, prior_games: Sequence[GameRecord], context: GameContext) -> int:
        if not prior_games:
            return self.config.default_rest_days
        previous = max(g.game_date for g in prior_games)
        return max(0, (context.game_date - previous).days)

    def _approximate_usage(self, games: Sequence[GameRecord]) -> float:
        """Rough usage proxy from box-score production per minute."""
        cfg = self.config
        if not games:
            return cfg.default_usage
        rates = []
        for g in games:
            minutes = _value(g.minutes)
            if minutes > 0:
                production = _value(g.points) + _value(g.assists) + _value(g.rebounds)
                rates.append(min(cfg.max_usage, production / (minutes * 2)))
            else:
                rates.append(cfg.default_usage)
        return _mean(rates)

    @staticmethod
    def _shooting_profile(
        recent: Sequence[GameRecord],
        window: Sequence[GameRecord],
    ) -> Tuple[float, float, float, float, float]:
        """
        (3PA/game, 3P%, 3PA share of FGA, 2P%, FGA/game).

        Uses the recent games with shot attempts, falling back to every
        game in the window when none of the recent games has any.
        """
        shooters = [g for g in recent if _value(g.field_goals_attempted) > 0]
        if not shooters:
            shooters = [g for g in window if _value(g.field_goals_attempted) > 0]
        if not shooters:
            return 0.0, 0.0, 0.0, 0.0, 0.0

        n = len(shooters)
        fga = sum(_value(g.field_goals_attempted) for g in shooters)
        fgm = sum(_value(g.field_goals_made) for g in shooters)
        tpa = sum(_value(g.three_points_attempted) for g in shooters)
        tpm = sum(_value(g.three_points_made) for g in shooters)
        two_attempts = fga - tpa
        two_made = fgm - tpm

        three_point_volume = tpa / n
        three_point_efficiency = tpm / tpa if tpa > 0 else 0.0
        shot_distribution = tpa / fga
        two_point_efficiency = two_made / two_attempts if two_attempts > 0 else 0.0
        shot_volume = fga / n
        return three_point_volume, three_point_efficiency, shot_distribution, two_point_efficiency, shot_volume


def samples_to_frame(samples: Sequence[TrainingSample]) -> pd.DataFrame:
    """Flatten samples into a DataFrame: one feature column each plus metadata."""
    rows = []
    for sample in samples:
        row = sample.features.as_dict()
        row.update({
            "target": sample.target,
            "sample_weight": sample.sample_weight,
            "game_date": sample.game_date,
            "season": sample.season,
            "player_id": sample.player_id,
        })
        rows.append(row)
    columns = list(FEATURE_NAMES) + ["target", "sample_weight", "game_date", "season", "player_id"]
    return pd.DataFrame(rows, columns=columns)
