"""
Dynamic Pricing Engine
Prices a conversion option from its component costs and the current market

Strategies:
1. cost_plus    - cost * (1 + target margin + partner margin + platform fee)
2. value_based  - scaled by the customer's perceived value and budget headroom
3. competitive  - 25% margin shifted by the competition level
4. seasonal     - seasonal multiplier on a 20% margin
5. demand_based - demand multiplier plus a scarcity premium on a 25% margin
6. dynamic      - margin, season, demand, urgency, value and inventory combined

Every strategy then subtracts group and loyalty discounts.
"""

import math
from datetime import datetime, time
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..schemas import (
    BudgetFlexibility,
    Competition,
    Demand,
    MarketConditions,
    PackageComponent,
    PriceBreakdown,
    PricePointAnalysis,
    PriceRange,
    PricingAlternative,
    PricingFactors,
    PricingResult,
    PricingSensitivityResult,
    PricingStrategy,
    Seasonality,
    TripRequest,
)

TAX_RATE = 0.10
DEFAULT_TARGET_MARGIN = 0.25
# Typical for leisure travel, not estimated from data
PRICE_ELASTICITY = -1.5

_SEASON_BY_MONTH = {
    12: Seasonality.PEAK, 1: Seasonality.PEAK, 2: Seasonality.PEAK,
    7: Seasonality.HIGH, 8: Seasonality.HIGH,
    3: Seasonality.MEDIUM, 4: Seasonality.MEDIUM, 11: Seasonality.MEDIUM,
    5: Seasonality.LOW, 6: Seasonality.LOW, 9: Seasonality.LOW, 10: Seasonality.LOW,
}

SEASONAL_MULTIPLIERS: Dict[Seasonality, float] = {
    Seasonality.PEAK: 1.8,
    Seasonality.HIGH: 1.4,
    Seasonality.MEDIUM: 1.1,
    Seasonality.LOW: 0.9,
    Seasonality.OFF_PEAK: 0.8,
}

DEMAND_MULTIPLIERS: Dict[Demand, float] = {
    Demand.VERY_HIGH: 1.3,
    Demand.HIGH: 1.15,
    Demand.MEDIUM: 1.0,
    Demand.LOW: 0.95,
    Demand.VERY_LOW: 0.85,
}

COMPETITIVE_ADJUSTMENTS: Dict[Competition, float] = {
    Competition.INTENSE: -0.15,
    Competition.MODERATE: -0.05,
    Competition.LIGHT: 0.05,
    Competition.MINIMAL: 0.15,
}

STRATEGY_CONFIDENCE: Dict[PricingStrategy, int] = {
    PricingStrategy.COST_PLUS: 85,
    PricingStrategy.VALUE_BASED: 75,
    PricingStrategy.COMPETITIVE: 80,
    PricingStrategy.SEASONAL: 90,
    PricingStrategy.DEMAND_BASED: 85,
    PricingStrategy.DYNAMIC: 95,
}

_STRATEGY_REASONING: Dict[PricingStrategy, str] = {
    PricingStrategy.COST_PLUS: "Estratégia cost-plus aplicada com margem definida",
    PricingStrategy.VALUE_BASED: "Preço baseado no valor percebido pelo cliente",
    PricingStrategy.COMPETITIVE: "Preço ajustado com base na concorrência",
    PricingStrategy.SEASONAL: "Preço ajustado para sazonalidade atual",
    PricingStrategy.DEMAND_BASED: "Preço baseado na demanda atual",
    PricingStrategy.DYNAMIC: "Estratégia dinâmica considerando múltiplos fatores",
}


# ============================================
# Market & Factors
# ============================================

def market_conditions_for(now: datetime, recent_request_count: int) -> MarketConditions:
    """
    Derive market conditions

    Args:
        now: Current time (drives seasonality)
        recent_request_count: Package requests created in the last 30 days
    """
    if recent_request_count > 50:
        demand = Demand.VERY_HIGH
    elif recent_request_count > 30:
        demand = Demand.HIGH
    elif recent_request_count > 15:
        demand = Demand.MEDIUM
    elif recent_request_count > 5:
        demand = Demand.LOW
    else:
        demand = Demand.VERY_LOW

    return MarketConditions(
        seasonality=_SEASON_BY_MONTH.get(now.month, Seasonality.OFF_PEAK),
        demand=demand,
    )


def calculate_pricing_factors(
    request: TripRequest,
    market: MarketConditions,
    base_cost: float,
    now: datetime,
    returning_customer: bool = False
) -> PricingFactors:
    """
    Calculate the multipliers and discounts for a request

    Logic:
    - Group discount: 8+ people 15%, 6+ 10%, 4+ 5%
    - Value perception: budget > 5000 with 3+ activities 90,
      budget > 2000 with 2+ activities 75, budget < 1000 50, else 70
    - Urgency: trip within 7 days 1.2, 14 days 1.1, 60+ days away 0.95
    - Loyalty: 5% for returning customers
    """
    group_size = request.group_size
    if group_size >= 8:
        group_discount = 0.15
    elif group_size >= 6:
        group_discount = 0.10
    elif group_size >= 4:
        group_discount = 0.05
    else:
        group_discount = 0.0

    activity_count = len(request.activities)
    if request.budget > 5000 and activity_count >= 3:
        value_perception = 90
    elif request.budget > 2000 and activity_count >= 2:
        value_perception = 75
    elif request.budget < 1000:
        value_perception = 50
    else:
        value_perception = 70

    urgency = 1.0
    if request.start_date:
        trip_start = datetime.combine(request.start_date, time.min)
        days_until_trip = math.ceil((trip_start - now).total_seconds() / 86400)
        if days_until_trip <= 7:
            urgency = 1.2
        elif days_until_trip <= 14:
            urgency = 1.1
        elif days_until_trip >= 60:
            urgency = 0.95

    return PricingFactors(
        base_cost=base_cost,
        seasonal_multiplier=SEASONAL_MULTIPLIERS[market.seasonality],
        demand_multiplier=DEMAND_MULTIPLIERS[market.demand],
        value_perception_score=value_perception,
        urgency_factor=urgency,
        group_size_discount=group_discount,
        loyalty_discount=0.05 if returning_customer else 0.0,
    )


def component_cost(components: Sequence[PackageComponent]) -> float:
    return sum(component.base_price * component.quantity for component in components)


def estimate_base_cost(request: TripRequest) -> float:
    """
    Rough cost when no components are priced yet

    60% of the budget for lodging, up to 30% for activities (3 max) and 10%
    for transport if requested, scaled by sqrt(group / 2) for groups above 2.
    Never below 70% of the budget.
    """
    estimated = request.budget * 0.6
    estimated += request.budget * 0.3 * (min(len(request.activities), 3) / 3)
    if request.transportation:
        estimated += request.budget * 0.1

    if request.group_size > 2:
        estimated *= math.sqrt(request.group_size / 2)

    return max(estimated, request.budget * 0.7)


# ============================================
# Strategies
# ============================================

def cost_plus_price(base_cost: float, factors: PricingFactors, target_margin: float) -> float:
    return base_cost * (1 + target_margin + factors.partner_margin + factors.platform_fee)


def value_based_price(base_cost: float, factors: PricingFactors, request: TripRequest) -> float:
    value_multiplier = factors.value_perception_score / 100
    budget_ratio = min(request.budget / base_cost, 2.0) if base_cost > 0 else 2.0
    return base_cost * 1.3 * value_multiplier * math.sqrt(budget_ratio)


def competitive_price(base_cost: float, market: MarketConditions) -> float:
    return base_cost * (1 + 0.25 + COMPETITIVE_ADJUSTMENTS[market.competition])


def seasonal_price(base_cost: float, factors: PricingFactors) -> float:
    return base_cost * factors.seasonal_multiplier * 1.2


def demand_based_price(base_cost: float, factors: PricingFactors, market: MarketConditions) -> float:
    # Up to +30% when inventory runs out
    inventory_factor = 1 + ((100 - market.inventory_level) / 100) * 0.3
    return base_cost * factors.demand_multiplier * inventory_factor * 1.25


def dynamic_price(base_cost: float, factors: PricingFactors, market: MarketConditions) -> float:
    price = base_cost * (1 + factors.partner_margin + factors.platform_fee)

    price *= factors.seasonal_multiplier
    price *= factors.demand_multiplier
    price *= factors.urgency_factor

    # +/-20% at most, centred on the default perception of 70
    value_adjustment = (factors.value_perception_score - 70) / 100
    price *= 1 + value_adjustment * 0.2

    inventory_factor = 1 + ((100 - market.inventory_level) / 100) * 0.15
    return price * inventory_factor


def _strategy_price(
    strategy: PricingStrategy,
    base_cost: float,
    factors: PricingFactors,
    market: MarketConditions,
    request: TripRequest,
    target_margin: float
) -> float:
    if strategy == PricingStrategy.COST_PLUS:
        return cost_plus_price(base_cost, factors, target_margin)
    if strategy == PricingStrategy.VALUE_BASED:
        return value_based_price(base_cost, factors, request)
    if strategy == PricingStrategy.COMPETITIVE:
        return competitive_price(base_cost, market)
    if strategy == PricingStrategy.SEASONAL:
        return seasonal_price(base_cost, factors)
    if strategy == PricingStrategy.DEMAND_BASED:
        return demand_based_price(base_cost, factors, market)
    return dynamic_price(base_cost, factors, market)


# ============================================
# Pricing
# ============================================

def price_option(
    request: TripRequest,
    base_cost: float,
    factors: PricingFactors,
    market: MarketConditions,
    strategy: PricingStrategy = PricingStrategy.DYNAMIC,
    target_margin: float = DEFAULT_TARGET_MARGIN
) -> PricingResult:
    """
    Apply a pricing strategy and build the full pricing result

    Args:
        request: Request being converted
        base_cost: Raw cost of the option
        factors: Output of calculate_pricing_factors
        market: Current market conditions
        strategy: Pricing strategy (default: dynamic)
        target_margin: Extra margin used by cost_plus

    Returns:
        PricingResult: Price, range, breakdown, reasoning and alternatives
    """
    strategy = PricingStrategy(strategy)
    price = _strategy_price(strategy, base_cost, factors, market, request, target_margin)

    discount = price * (factors.group_size_discount + factors.loyalty_discount)
    adjusted = price - discount

    taxes = adjusted * TAX_RATE
    fees = adjusted * factors.platform_fee
    margin = adjusted * factors.partner_margin
    breakdown = PriceBreakdown(
        component_costs=adjusted - taxes - fees - margin,
        taxes=taxes,
        fees=fees,
        margin=margin,
        discounts=discount,
        total=adjusted + taxes + fees,
    )

    reasoning = [_STRATEGY_REASONING[strategy]]
    if factors.seasonal_multiplier > 1.2:
        reasoning.append("Preço aumentado devido à alta temporada")
    if factors.demand_multiplier > 1.1:
        reasoning.append("Preço ajustado devido à alta demanda")
    if factors.group_size_discount > 0:
        reasoning.append(f"Desconto de {factors.group_size_discount * 100:.0f}% aplicado para grupo")
    if factors.loyalty_discount > 0:
        reasoning.append("Desconto de fidelidade aplicado")

    alternatives = [
        PricingAlternative(
            price=cost_plus_price(base_cost, factors, target_margin),
            strategy=PricingStrategy.COST_PLUS,
            description="Preço com margem fixa",
            confidence=STRATEGY_CONFIDENCE[PricingStrategy.COST_PLUS],
        ),
        PricingAlternative(
            price=value_based_price(base_cost, factors, request),
            strategy=PricingStrategy.VALUE_BASED,
            description="Preço baseado em valor",
            confidence=STRATEGY_CONFIDENCE[PricingStrategy.VALUE_BASED],
        ),
        PricingAlternative(
            price=seasonal_price(base_cost, factors),
            strategy=PricingStrategy.SEASONAL,
            description="Preço sazonal",
            confidence=STRATEGY_CONFIDENCE[PricingStrategy.SEASONAL],
        ),
    ]

    logger.debug(f"Priced request {request.id} with {strategy.value}: {base_cost:.2f} -> {adjusted:.2f}")

    return PricingResult(
        original_price=base_cost,
        adjusted_price=adjusted,
        recommended_price=adjusted,
        price_range=PriceRange(minimum=adjusted * 0.85, maximum=adjusted * 1.25, optimal=adjusted),
        factors=factors,
        breakdown=breakdown,
        strategy=strategy,
        confidence=STRATEGY_CONFIDENCE[strategy],
        reasoning=reasoning,
        alternatives=[alt for alt in alternatives if alt.strategy != strategy],
        market_conditions=market,
    )


# ============================================
# Sensitivity
# ============================================

def _conversion_probability_at(budget_ratio: float, flexibility: BudgetFlexibility) -> int:
    if budget_ratio <= 0.8:
        probability = 95
    elif budget_ratio <= 0.9:
        probability = 85
    elif budget_ratio <= 1.0:
        probability = 75
    elif budget_ratio <= 1.1:
        probability = 60
    elif budget_ratio <= 1.2:
        probability = 40
    elif budget_ratio <= 1.3:
        probability = 25
    else:
        probability = 10

    if flexibility == BudgetFlexibility.VERY_FLEXIBLE:
        probability += 15
    elif flexibility == BudgetFlexibility.FLEXIBLE:
        probability += 8

    return min(100, probability)


def _competitive_position(budget_ratio: float) -> str:
    if budget_ratio <= 0.9:
        return "Muito competitivo"
    if budget_ratio <= 1.0:
        return "Competitivo"
    if budget_ratio <= 1.1:
        return "Premium"
    return "Muito caro"


def analyze_price_points(
    request: TripRequest,
    price_points: Sequence[float],
    elasticity: Optional[float] = None
) -> PricingSensitivityResult:
    """
    Estimate conversion and revenue at each candidate price

    The optimal price is the first point with the highest expected revenue.

    Raises:
        ValueError: no price points given
    """
    if not price_points:
        raise ValueError("At least one price point is required")

    analysis: List[PricePointAnalysis] = []
    for price in price_points:
        ratio = price / request.budget
        probability = _conversion_probability_at(ratio, request.budget_flexibility)
        analysis.append(PricePointAnalysis(
            price=price,
            conversion_probability=probability,
            expected_revenue=price * probability / 100,
            competitive_position=_competitive_position(ratio),
        ))

    optimal = analysis[0]
    for point in analysis[1:]:
        if point.expected_revenue > optimal.expected_revenue:
            optimal = point

    return PricingSensitivityResult(
        analysis=analysis,
        optimal_price=optimal.price,
        price_elasticity=PRICE_ELASTICITY if elasticity is None else elasticity,
    )
