"""Projection request/result models exchanged with callers."""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Dict, Optional

from .game import StatType


class RiskLevel(Enum):
    """Risk bucket derived from projection uncertainty."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Recommendation(Enum):
    """Rule-derived market recommendation."""
    OVER = "OVER"
    UNDER = "UNDER"
    PASS = "PASS"


@dataclass
class ProjectionRequest:
    """A caller's request to project one player stat for an upcoming game."""

    player_name: str
    stat_type: StatType
    opponent: str
    is_home: bool
    season: str
    market_line: Optional[float] = None
    team: Optional[str] = None
    game_date: Optional[date] = None

    def __post_init__(self):
        """Normalize the stat type."""
        self.stat_type = StatType.parse(self.stat_type)

    @property
    def has_market_line(self) -> bool:
        return self.market_line is not None


@dataclass
class ProjectionResult:
    """
    Externally visible projection.

    The heuristic projection supplied by the external rules engine uses the
    same shape, so it can be passed through unchanged when no regression
    model is available.
    """

    projected_value: float
    confidence_score: float
    risk_level: RiskLevel = RiskLevel.MEDIUM
    edge: float = 0.0
    recommendation: Recommendation = Recommendation.PASS
    factors: Dict[str, float] = field(default_factory=dict)
    uncertainty: Optional[float] = None

    def with_factors(self, **factors: float) -> "ProjectionResult":
        """Copy of this result with extra factor annotations."""
        merged = dict(self.factors)
        merged.update(factors)
        return replace(self, factors=merged)

    def to_dict(self) -> dict:
        """Convert result to dictionary."""
        return {
            "projected_value": self.projected_value,
            "confidence_score": self.confidence_score,
            "risk_level": self.risk_level.value,
            "edge": self.edge,
            "recommendation": self.recommendation.value,
            "factors": dict(self.factors),
            "uncertainty": self.uncertainty,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectionResult":
        """Create result from dictionary."""
        return cls(
            projected_value=float(data["projected_value"]),
            confidence_score=float(data["confidence_score"]),
            risk_level=RiskLevel(data.get("risk_level", "MEDIUM")),
            edge=float(data.get("edge", 0.0)),
            recommendation=Recommendation(data.get("recommendation", "PASS")),
            factors={k: float(v) for k, v in data.get("factors", {}).items()},
            uncertainty=data.get("uncertainty"),
        )
