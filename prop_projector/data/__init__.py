"""Game log loading, reference tables and feature extraction."""

from .loader import GameLogLoader, GameLogRepository
from .reference import LeagueAverages, ReferenceTables, load_reference_tables

__all__ = [
    "GameLogLoader",
    "GameLogRepository",
    "LeagueAverages",
    "ReferenceTables",
    "load_reference_tables",
]
