"""
Weighting Strategies
Named factor-weight sets that turn MatchFactors into one 0-100 match score

Strategies:
1. Similarity (uniform) - destination 25%, budget 20%, duration 15%,
   activity 15%, group size 10%, dates 5%
2. Preference-weighted - similarity weights nudged by the request's
   flexibility and group size (not re-normalized)
3. Budget-optimized - budget raised to 35%

The fixed tables sum to 0.90: the remaining 0.10 belonged to an
accommodation factor that is no longer scored. A package perfect on every
factor therefore scores 90.
"""

import math
from enum import Enum
from typing import NamedTuple, Optional

from ..schemas import BudgetFlexibility, MatchFactors, TripRequest


class WeightingStrategy(str, Enum):
    SIMILARITY = "similarity"
    PREFERENCE_WEIGHTED = "preference_weighted"
    BUDGET_OPTIMIZED = "budget_optimized"


class FactorWeights(NamedTuple):
    """Weight per match factor"""
    destination_match: float
    budget_match: float
    duration_match: float
    activity_match: float
    group_size_match: float
    date_availability: float

    def total(self) -> float:
        return sum(self)

    def __repr__(self) -> str:
        return (
            f"Weights(dest={self.destination_match:.2f}, "
            f"budget={self.budget_match:.2f}, "
            f"duration={self.duration_match:.2f}, "
            f"activity={self.activity_match:.2f}, "
            f"group={self.group_size_match:.2f}, "
            f"dates={self.date_availability:.2f})"
        )


SIMILARITY_WEIGHTS = FactorWeights(
    destination_match=0.25,
    budget_match=0.20,
    duration_match=0.15,
    activity_match=0.15,
    group_size_match=0.10,
    date_availability=0.05,
)

BUDGET_OPTIMIZED_WEIGHTS = FactorWeights(
    destination_match=0.20,
    budget_match=0.35,
    duration_match=0.15,
    activity_match=0.10,
    group_size_match=0.05,
    date_availability=0.05,
)


def preference_weights(request: TripRequest) -> FactorWeights:
    """
    Build weights adjusted to what this customer cares about

    Adjustments (applied on top of SIMILARITY_WEIGHTS, never re-normalized):
    - rigid budget: budget +0.10, activity -0.05
    - very flexible budget: budget -0.10, activity +0.05
    - flexible dates: dates -0.03, destination +0.03
    - groups above 6: group size +0.05, activity -0.05

    Args:
        request: Trip request whose preferences drive the adjustments

    Returns:
        FactorWeights: Adjusted weights (sum may differ from 1.0)
    """
    weights = SIMILARITY_WEIGHTS._asdict()

    if request.budget_flexibility == BudgetFlexibility.RIGID:
        weights["budget_match"] += 0.10
        weights["activity_match"] -= 0.05
    elif request.budget_flexibility == BudgetFlexibility.VERY_FLEXIBLE:
        weights["budget_match"] -= 0.10
        weights["activity_match"] += 0.05

    if request.flexible_dates:
        weights["date_availability"] -= 0.03
        weights["destination_match"] += 0.03

    if request.group_size > 6:
        weights["group_size_match"] += 0.05
        weights["activity_match"] -= 0.05

    return FactorWeights(**weights)


def weights_for(strategy: WeightingStrategy, request: Optional[TripRequest] = None) -> FactorWeights:
    """
    Resolve a strategy to its weight vector

    Raises:
        ValueError: preference weighting requested without a request
    """
    if strategy == WeightingStrategy.SIMILARITY:
        return SIMILARITY_WEIGHTS
    if strategy == WeightingStrategy.BUDGET_OPTIMIZED:
        return BUDGET_OPTIMIZED_WEIGHTS
    if request is None:
        raise ValueError("Preference weighting needs the trip request")
    return preference_weights(request)


def combine(factors: MatchFactors, weights: FactorWeights) -> int:
    """
    Collapse factors into one integer match score

    Score = round(sum(factor[k] * weight[k])), rounded half up and kept in [0, 100]

    Example:
        >>> combine(perfect_factors, SIMILARITY_WEIGHTS)
        90
    """
    score = sum(
        getattr(factors, name) * weight
        for name, weight in weights._asdict().items()
    )
    return min(100, max(0, round_half_up(score)))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (2.5 -> 3, unlike round())"""
    return int(math.floor(value + 0.5))
