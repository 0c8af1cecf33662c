"""Game log records and the stat taxonomy."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class StatType(Enum):
    """Projectable stat types, including composites."""
    POINTS = "points"
    REBOUNDS = "rebounds"
    ASSISTS = "assists"
    POINTS_ASSISTS = "pa"
    POINTS_REBOUNDS = "pr"
    REBOUNDS_ASSISTS = "ra"
    POINTS_REBOUNDS_ASSISTS = "pra"

    @property
    def components(self) -> Tuple[str, ...]:
        """Box-score fields summed to produce this stat."""
        return _STAT_COMPONENTS[self]

    @property
    def is_composite(self) -> bool:
        return len(self.components) > 1

    @classmethod
    def parse(cls, value) -> "StatType":
        """
        Resolve a stat type from a code, a component spelling or an enum.

        Accepts e.g. ``"points"``, ``"pra"``, ``"points+assists"`` and
        ``"PTS+REB+AST"``.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace(" ", "")
        for stat in cls:
            if key == stat.value:
                return stat
        parts = [_COMPONENT_ALIASES.get(p, p) for p in key.split("+") if p]
        for stat in cls:
            if sorted(parts) == sorted(stat.components):
                return stat
        raise ValueError(f"Unknown stat type: {value}")


_STAT_COMPONENTS = {
    StatType.POINTS: ("points",),
    StatType.REBOUNDS: ("rebounds",),
    StatType.ASSISTS: ("assists",),
    StatType.POINTS_ASSISTS: ("points", "assists"),
    StatType.POINTS_REBOUNDS: ("points", "rebounds"),
    StatType.REBOUNDS_ASSISTS: ("rebounds", "assists"),
    StatType.POINTS_REBOUNDS_ASSISTS: ("points", "rebounds", "assists"),
}

_COMPONENT_ALIASES = {
    "pts": "points",
    "point": "points",
    "reb": "rebounds",
    "rebound": "rebounds",
    "trb": "rebounds",
    "ast": "assists",
    "assist": "assists",
}


@dataclass(frozen=True)
class GameContext:
    """Everything known about a game before it is played."""

    game_date: date
    team: str
    opponent: str
    is_home: bool
    season: str


@dataclass(frozen=True)
class GameRecord:
    """One player-game box score line. Missing values are ``None``."""

    player_id: str
    game_date: date
    team: str
    opponent: str
    is_home: bool
    season: str
    minutes: Optional[float] = None
    points: Optional[float] = None
    rebounds: Optional[float] = None
    assists: Optional[float] = None
    turnovers: Optional[float] = None
    field_goals_attempted: Optional[float] = None
    field_goals_made: Optional[float] = None
    three_points_attempted: Optional[float] = None
    three_points_made: Optional[float] = None
    free_throws_attempted: Optional[float] = None
    free_throws_made: Optional[float] = None

    @property
    def context(self) -> GameContext:
        return GameContext(
            game_date=self.game_date,
            team=self.team,
            opponent=self.opponent,
            is_home=self.is_home,
            season=self.season,
        )

    def stat_value(self, stat_type: StatType) -> Optional[float]:
        """
        Value of a (possibly composite) stat for this game.

        Returns:
            Sum of the stat's components, or None if any component is missing
        """
        total = 0.0
        for component in StatType.parse(stat_type).components:
            value = getattr(self, component)
            if value is None:
                return None
            total += float(value)
        return total

    def to_dict(self) -> dict:
        """Convert record to dictionary."""
        return {
            "player_id": self.player_id,
            "game_date": self.game_date.isoformat(),
            "team": self.team,
            "opponent": self.opponent,
            "is_home": self.is_home,
            "season": self.season,
            "minutes": self.minutes,
            "points": self.points,
            "rebounds": self.rebounds,
            "assists": self.assists,
            "turnovers": self.turnovers,
            "field_goals_attempted": self.field_goals_attempted,
            "field_goals_made": self.field_goals_made,
            "three_points_attempted": self.three_points_attempted,
            "three_points_made": self.three_points_made,
            "free_throws_attempted": self.free_throws_attempted,
            "free_throws_made": self.free_throws_made,
        }
