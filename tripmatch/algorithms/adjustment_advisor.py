"""
Adjustment & Probability Advisor
Turns weak match factors into concrete package changes and estimates how
likely a match is to convert into a booking.
"""

from typing import List

from ..schemas import (
    AdjustmentSuggestion,
    AdjustmentType,
    ConfidenceLevel,
    MatchFactors,
    TravelPackage,
    TripRequest,
)
from .weighting import round_half_up

# Cost per extra day when a package has to be extended
EXTRA_DAY_COST = 200
# Cost per extra seat when capacity has to grow
EXTRA_GUEST_COST = 100
ACTIVITY_MODIFICATION_COST = 300


def suggest_adjustments(
    request: TripRequest,
    package: TravelPackage,
    factors: MatchFactors
) -> List[AdjustmentSuggestion]:
    """
    Propose package modifications for weak factors

    Rules:
    - budget < 70 and package above budget: price cut (impact 30)
    - duration < 70: extend or shorten (impact 25, 200/day when extending)
    - group size < 70 and capacity short: raise capacity (impact 20, 100/guest)
    - activity < 60: add requested activities (impact 15, flat 300)

    Returns:
        List[AdjustmentSuggestion]: Sorted by impact, highest first
    """
    suggestions: List[AdjustmentSuggestion] = []

    if factors.budget_match < 70:
        price_diff = package.base_price - request.budget
        if price_diff > 0:
            suggestions.append(AdjustmentSuggestion(
                type=AdjustmentType.PRICE_ADJUSTMENT,
                description=f"Reduzir preço em R$ {price_diff:.2f} para atender orçamento",
                impact=30,
                cost=-price_diff,
            ))

    if factors.duration_match < 70:
        duration_diff = package.duration - request.duration
        if duration_diff != 0:
            if duration_diff > 0:
                description = f"Reduzir duração em {duration_diff} dia(s)"
            else:
                description = f"Estender duração em {abs(duration_diff)} dia(s)"
            suggestions.append(AdjustmentSuggestion(
                type=AdjustmentType.DURATION_EXTENSION,
                description=description,
                impact=25,
                cost=abs(duration_diff) * EXTRA_DAY_COST if duration_diff < 0 else 0,
            ))

    if factors.group_size_match < 70 and package.max_guests < request.group_size:
        suggestions.append(AdjustmentSuggestion(
            type=AdjustmentType.GROUP_SIZE_ADJUSTMENT,
            description=f"Ajustar capacidade para {request.group_size} pessoas",
            impact=20,
            cost=(request.group_size - package.max_guests) * EXTRA_GUEST_COST,
        ))

    if factors.activity_match < 60:
        suggestions.append(AdjustmentSuggestion(
            type=AdjustmentType.ACTIVITY_MODIFICATION,
            description="Adicionar atividades conforme preferências do cliente",
            impact=15,
            cost=ACTIVITY_MODIFICATION_COST,
        ))

    return sorted(suggestions, key=lambda s: s.impact, reverse=True)


def estimate_conversion_probability(match_score: float, factors: MatchFactors) -> int:
    """
    Estimate the chance (0-100) that this match becomes a booking

    Logic:
    - Base: 80% of the match score
    - +10 when budget match > 80
    - +5 when duration matches exactly
    - +8 when activity match > 70
    """
    probability = match_score * 0.8

    if factors.budget_match > 80:
        probability += 10
    if factors.duration_match == 100:
        probability += 5
    if factors.activity_match > 70:
        probability += 8

    return min(100, max(0, round_half_up(probability)))


def confidence_level(score: float) -> ConfidenceLevel:
    """
    Bucket a match score

    Example:
        >>> confidence_level(85)
        <ConfidenceLevel.HIGH: 'high'>
    """
    if score >= 80:
        return ConfidenceLevel.HIGH
    if score >= 60:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW
