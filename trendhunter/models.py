from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

HISTORY_WINDOW = 12


class Platform(str, Enum):
    TIKTOK = "TikTok"
    REDDIT = "Reddit"
    PINTEREST = "Pinterest"
    GOOGLE_SEARCH = "GoogleSearch"
    WILDCHAT = "Wildchat"
    YELP = "Yelp"
    DOORDASH = "DoorDash"
    GOOGLE_PLACES = "GooglePlaces"


class CandidateStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def normalize_term(t: str) -> str:
    # trim + lower + collapse inner whitespace
    return " ".join(str(t).strip().lower().split())


@dataclass(frozen=True)
class SignalSample:
    platform: Platform
    current_intensity: float
    velocity: float
    history: Tuple[Tuple[int, float], ...] = ()

    @classmethod
    def zero(cls, platform: Platform) -> "SignalSample":
        return cls(platform=platform, current_intensity=0, velocity=0, history=())

    @property
    def is_zero(self) -> bool:
        """True for the degraded reading an adapter returns on failure."""
        return self.current_intensity == 0 and self.velocity == 0 and not self.history

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform.value,
            "currentIntensity": self.current_intensity,
            "velocity": self.velocity,
            "history": [{"week": w, "value": v} for (w, v) in self.history],
        }


def history_from_values(values: List[float]) -> Tuple[Tuple[int, float], ...]:
    """Last HISTORY_WINDOW points, renumbered as weeks 1..n."""
    tail = list(values)[-HISTORY_WINDOW:]
    return tuple((i, float(v)) for i, v in enumerate(tail, start=1))


@dataclass(frozen=True)
class TrackedTerm:
    term: str
    category: str
    region: str
    neighborhood: str = ""

    @property
    def key(self) -> str:
        return normalize_term(self.term)


@dataclass(frozen=True)
class Scores:
    demand_score: int
    supply_score: int
    unmet_demand_score: int
    breakout_probability: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "demandScore": self.demand_score,
            "supplyScore": self.supply_score,
            "unmetDemandScore": self.unmet_demand_score,
            "breakoutProbability": self.breakout_probability,
        }


@dataclass
class TrendRecord:
    id: str
    term: TrackedTerm
    signals: List[SignalSample]
    scores: Scores
    predicted_breakout_week: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "term": self.term.term,
            "category": self.term.category,
            "region": self.term.region,
            "neighborhood": self.term.neighborhood,
            "signals": [s.to_dict() for s in self.signals],
            **self.scores.to_dict(),
            "predictedBreakoutWeek": self.predicted_breakout_week,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class DiscoveryCandidate:
    term: str
    source: str
    initial_score: float
    status: CandidateStatus = CandidateStatus.PENDING
    id: Optional[int] = None

    @property
    def key(self) -> str:
        return normalize_term(self.term)
