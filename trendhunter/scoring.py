"""
Scoring engine: a signal set -> demand / supply / unmet demand / breakout.

Pure functions, no I/O. Each formula rounds once, at the end.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Tuple

from trendhunter.models import HISTORY_WINDOW, Platform, Scores, SignalSample

DEMAND = "demand"
SUPPLY = "supply"

# weight, role
PLATFORM_TABLE: Dict[Platform, Tuple[float, str]] = {
    Platform.TIKTOK: (2.0, DEMAND),         # viral potential
    Platform.REDDIT: (1.5, DEMAND),         # community interest
    Platform.PINTEREST: (1.2, DEMAND),      # visual / planning interest
    Platform.GOOGLE_SEARCH: (1.0, DEMAND),  # general interest, also a supply proxy
    Platform.WILDCHAT: (1.0, DEMAND),       # chatbot curiosity
    Platform.YELP: (0.5, SUPPLY),
    Platform.DOORDASH: (0.5, SUPPLY),
    Platform.GOOGLE_PLACES: (0.5, SUPPLY),
}

_missing = set(Platform) - set(PLATFORM_TABLE)
if _missing:
    raise RuntimeError(f"no scoring weight for: {sorted(p.value for p in _missing)}")

PLATFORM_WEIGHTS: Dict[Platform, float] = {p: w for p, (w, _) in PLATFORM_TABLE.items()}
DEMAND_PLATFORMS = frozenset(p for p, (_, role) in PLATFORM_TABLE.items() if role == DEMAND)
SUPPLY_PLATFORMS = frozenset(
    [p for p, (_, role) in PLATFORM_TABLE.items() if role == SUPPLY] + [Platform.GOOGLE_SEARCH]
)

SUPPLY_BASELINE = 10
SUPPLY_DISCOUNT = 0.8
BREAKOUT_BASE = 20
BREAKOUT_VELOCITY_FACTOR = 4


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def clamp(x: float, lo: float = 0, hi: float = 100):
    return max(lo, min(hi, x))


def _weighted_mean(pairs: Iterable[Tuple[float, float]]) -> float:
    total = 0.0
    weight = 0.0
    for value, w in pairs:
        total += value * w
        weight += w
    return total / weight if weight > 0 else 0.0


def demand_score(signals: List[SignalSample]) -> int:
    demand = [s for s in signals if s.platform in DEMAND_PLATFORMS]
    if not demand:
        return 0
    m = _weighted_mean((s.current_intensity, PLATFORM_WEIGHTS[s.platform]) for s in demand)
    return round_half_up(clamp(m))


def supply_score(signals: List[SignalSample]) -> int:
    # zero-value samples carry no reading (failed or unconfigured source);
    # a real zero directory count looks the same and is also treated as no reading
    supply = [s for s in signals if s.platform in SUPPLY_PLATFORMS and not s.is_zero]
    if not supply:
        return SUPPLY_BASELINE
    avg = sum(s.current_intensity for s in supply) / len(supply)
    return round_half_up(clamp(avg))


def unmet_demand_score(demand: float, supply: float) -> int:
    return round_half_up(clamp(demand - supply * SUPPLY_DISCOUNT))


def weighted_velocity(signals: List[SignalSample]) -> float:
    return _weighted_mean((s.velocity, PLATFORM_WEIGHTS[s.platform]) for s in signals)


def breakout_probability(signals: List[SignalSample]) -> int:
    return breakout_from_velocity(weighted_velocity(signals))


def breakout_from_velocity(velocity: float) -> int:
    return round_half_up(clamp(BREAKOUT_BASE + velocity * BREAKOUT_VELOCITY_FACTOR))


def predicted_breakout_week(demand: float, velocity: float) -> int:
    """Weeks until demand would hit 100 at the current velocity; 0 = no breakout ahead."""
    if velocity <= 0 or demand >= 100:
        return 0
    return min(HISTORY_WINDOW, math.ceil((100 - demand) / velocity))


def score_signals(signals: List[SignalSample]) -> Scores:
    signals = list(signals)
    d = demand_score(signals)
    s = supply_score(signals)
    return Scores(
        demand_score=d,
        supply_score=s,
        unmet_demand_score=unmet_demand_score(d, s),
        breakout_probability=breakout_probability(signals),
    )
