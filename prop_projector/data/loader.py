"""Game log loading from CSV/JSON files."""

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

from ..models.game import GameRecord
from .validators import validate_game_records

logger = logging.getLogger(__name__)

# Source column spellings seen across seasons/providers -> GameRecord field.
COLUMN_ALIASES = {
    "player": "player_id",
    "player_name": "player_id",
    "date": "game_date",
    "gamedate": "game_date",
    "ishome": "is_home",
    "home": "is_home",
    "minutes_played": "minutes",
    "min": "minutes",
    "field_goal_attempted": "field_goals_attempted",
    "field_goal_made": "field_goals_made",
    "three_point_attempted": "three_points_attempted",
    "three_point_made": "three_points_made",
    "free_throw_attempted": "free_throws_attempted",
    "free_throw_made": "free_throws_made",
}

REQUIRED_COLUMNS = ["player_id", "game_date", "team", "opponent", "is_home", "season"]

NUMERIC_COLUMNS = [
    "minutes",
    "points",
    "rebounds",
    "assists",
    "turnovers",
    "field_goals_attempted",
    "field_goals_made",
    "three_points_attempted",
    "three_points_made",
    "free_throws_attempted",
    "free_throws_made",
]


def _parse_home_flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "home", "h", "yes")
    if pd.isna(value):
        return False
    return bool(value)


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _season_tag(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class GameLogLoader:
    """Loads player game logs into GameRecord objects."""

    @staticmethod
    def read_frame(file_path: str) -> pd.DataFrame:
        """
        Read a CSV or JSON game log file into a normalized DataFrame.

        JSON files may be a list of rows or an object with a ``games`` list.
        """
        path = Path(file_path)
        if path.suffix.lower() == ".json":
            with open(path, "r") as f:
                payload = json.load(f)
            rows = payload.get("games", []) if isinstance(payload, dict) else payload
            frame = pd.DataFrame(rows)
        else:
            frame = pd.read_csv(path)
        return GameLogLoader.normalize_frame(frame)

    @staticmethod
    def normalize_frame(frame: pd.DataFrame) -> pd.DataFrame:
        """Rename column aliases and coerce types."""
        renamed = {}
        for column in frame.columns:
            key = str(column).strip().lower()
            renamed[column] = COLUMN_ALIASES.get(key, key)
        frame = frame.rename(columns=renamed)
        frame = frame.loc[:, ~frame.columns.duplicated()]

        missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
        if missing:
            raise ValueError(f"Game log is missing required columns: {', '.join(missing)}")

        frame = frame.copy()
        frame["game_date"] = pd.to_datetime(frame["game_date"]).dt.date
        for column in NUMERIC_COLUMNS:
            if column in frame.columns:
                frame[column] = pd.to_numeric(frame[column], errors="coerce")
            else:
                frame[column] = float("nan")
        return frame.sort_values(["player_id", "game_date"], kind="mergesort").reset_index(drop=True)

    @staticmethod
    def records_from_frame(frame: pd.DataFrame) -> List[GameRecord]:
        records = []
        for row in frame.to_dict(orient="records"):
            records.append(GameRecord(
                player_id=str(row["player_id"]),
                game_date=row["game_date"],
                team=str(row["team"]),
                opponent=str(row["opponent"]),
                is_home=_parse_home_flag(row["is_home"]),
                season=_season_tag(row["season"]),
                **{column: _optional_float(row.get(column)) for column in NUMERIC_COLUMNS},
            ))
        return records

    @staticmethod
    def load(file_path: str, strict: bool = False) -> List[GameRecord]:
        """
        Load game records from a CSV or JSON file.

        Records are checked with ``validate_game_records``; problems are
        logged, or raised when ``strict`` is set.

        Args:
            file_path: Path to the game log file
            strict: Raise ValueError instead of logging validation problems

        Returns:
            GameRecords sorted by player then date
        """
        frame = GameLogLoader.read_frame(file_path)
        records = GameLogLoader.records_from_frame(frame)
        errors = validate_game_records(records)
        if errors and strict:
            raise ValueError(f"Game log validation failed for {file_path}: {errors[:5]}")
        for error in errors:
            logger.warning("Game log %s: %s", file_path, error)
        logger.info("Loaded %d game records for %d players from %s",
                    len(records), frame["player_id"].nunique(), file_path)
        return records


class GameLogRepository:
    """In-memory index of game records by player, each list date-ordered."""

    def __init__(self, records: Iterable[GameRecord] = ()):
        self._by_player: Dict[str, List[GameRecord]] = defaultdict(list)
        for record in records:
            self._by_player[record.player_id].append(record)
        for games in self._by_player.values():
            games.sort(key=lambda g: g.game_date)

    @classmethod
    def from_file(cls, file_path: str, strict: bool = False) -> "GameLogRepository":
        return cls(GameLogLoader.load(file_path, strict))

    def games_for(self, player_id: str) -> List[GameRecord]:
        return list(self._by_player.get(player_id, []))

    def players(self) -> List[str]:
        return sorted(self._by_player)

    def histories(self) -> Dict[str, List[GameRecord]]:
        return {player: list(games) for player, games in self._by_player.items()}

    def __len__(self) -> int:
        return sum(len(games) for games in self._by_player.values())
