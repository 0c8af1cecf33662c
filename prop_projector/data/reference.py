"""League/team/player reference tables consumed by the feature extractor."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set, Tuple

from ..models.game import StatType

logger = logging.getLogger(__name__)


@dataclass
class LeagueAverages:
    """League-average fallbacks used when a team is missing from a table."""

    pace: float = 95.0
    points_allowed: float = 82.0
    points_scored: float = 82.0
    three_point_pct_allowed: float = 0.33
    points_in_paint_allowed: float = 40.0


@dataclass
class TeamStats:
    """Season aggregate offense/tempo numbers for one team."""

    pace: Optional[float] = None
    points_scored: Optional[float] = None


@dataclass
class TeamDefense:
    """Season aggregate defensive allowances for one team."""

    points_allowed: Optional[float] = None
    three_point_pct_allowed: Optional[float] = None
    points_in_paint_allowed: Optional[float] = None


@dataclass
class SeasonAverage:
    """A player's season aggregates (per-game averages)."""

    minutes: Optional[float] = None
    points: Optional[float] = None
    rebounds: Optional[float] = None
    assists: Optional[float] = None

    def stat_average(self, stat_type: StatType) -> Optional[float]:
        total = 0.0
        for component in StatType.parse(stat_type).components:
            value = getattr(self, component)
            if value is None:
                return None
            total += value
        return total


def _positive(value: Optional[float]) -> Optional[float]:
    """Treat zero/negative/missing table values as absent."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


@dataclass
class ReferenceTables:
    """
    Lookup tables keyed by (team, season) or (player, season).

    Every getter resolves the league-average fallback itself, so the
    extractor never sees a missing value.
    """

    team_stats: Dict[Tuple[str, str], TeamStats] = field(default_factory=dict)
    team_defense: Dict[Tuple[str, str], TeamDefense] = field(default_factory=dict)
    injuries: Set[str] = field(default_factory=set)
    usage: Dict[str, float] = field(default_factory=dict)
    season_averages: Dict[Tuple[str, str], SeasonAverage] = field(default_factory=dict)
    league: LeagueAverages = field(default_factory=LeagueAverages)

    def team_pace(self, team: str, season: str) -> float:
        stats = self.team_stats.get((team, season))
        return _positive(stats.pace if stats else None) or self.league.pace

    def team_points_scored(self, team: str, season: str) -> float:
        stats = self.team_stats.get((team, season))
        return _positive(stats.points_scored if stats else None) or self.league.points_scored

    def opponent_points_allowed(self, opponent: str, season: str) -> float:
        defense = self.team_defense.get((opponent, season))
        return _positive(defense.points_allowed if defense else None) or self.league.points_allowed

    def opponent_three_point_defense(self, opponent: str, season: str) -> float:
        defense = self.team_defense.get((opponent, season))
        return (
            _positive(defense.three_point_pct_allowed if defense else None)
            or self.league.three_point_pct_allowed
        )

    def opponent_post_defense(self, opponent: str, season: str) -> float:
        defense = self.team_defense.get((opponent, season))
        return (
            _positive(defense.points_in_paint_allowed if defense else None)
            or self.league.points_in_paint_allowed
        )

    def is_injured(self, player_id: str) -> bool:
        return player_id in self.injuries

    def usage_rate(self, player_id: str) -> Optional[float]:
        return _positive(self.usage.get(player_id))

    def season_average(self, player_id: str, season: str) -> Optional[SeasonAverage]:
        return self.season_averages.get((player_id, season))

    @classmethod
    def from_dict(cls, data: dict) -> "ReferenceTables":
        """
        Build tables from a JSON-style payload.

        Expected top-level keys (all optional): ``team_stats``,
        ``team_defense`` and ``season_averages`` (lists of row objects
        carrying ``team``/``player_id`` and ``season``), ``injuries`` (list of
        player ids), ``usage`` (player id -> rate) and ``league``.
        """
        tables = cls()
        for row in data.get("team_stats", []):
            key = (str(row["team"]), str(row["season"]))
            tables.team_stats[key] = TeamStats(
                pace=row.get("pace"),
                points_scored=row.get("points_scored"),
            )
        for row in data.get("team_defense", []):
            key = (str(row["team"]), str(row["season"]))
            tables.team_defense[key] = TeamDefense(
                points_allowed=row.get("points_allowed"),
                three_point_pct_allowed=row.get("three_point_pct_allowed"),
                points_in_paint_allowed=row.get("points_in_paint_allowed"),
            )
        for row in data.get("season_averages", []):
            key = (str(row["player_id"]), str(row["season"]))
            tables.season_averages[key] = SeasonAverage(
                minutes=row.get("minutes"),
                points=row.get("points"),
                rebounds=row.get("rebounds"),
                assists=row.get("assists"),
            )
        tables.injuries = {str(p) for p in data.get("injuries", [])}
        tables.usage = {str(k): float(v) for k, v in data.get("usage", {}).items()}
        if "league" in data:
            tables.league = LeagueAverages(**data["league"])
        return tables


def load_reference_tables(file_path: Optional[str]) -> ReferenceTables:
    """
    Load reference tables from a JSON file.

    Args:
        file_path: Path to JSON file, or None for empty tables (league
            averages everywhere)

    Returns:
        ReferenceTables instance
    """
    if not file_path:
        return ReferenceTables()
    with open(Path(file_path), "r") as f:
        payload = json.load(f)
    tables = ReferenceTables.from_dict(payload)
    logger.info(
        "Loaded reference tables: %d team stat rows, %d defense rows, %d season averages, %d injuries",
        len(tables.team_stats), len(tables.team_defense), len(tables.season_averages), len(tables.injuries),
    )
    return tables
