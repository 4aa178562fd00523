"""
Matching Algorithms Module
Pure scoring, matching, analysis and pricing code (no I/O)
"""

from .similarity_scorer import score_factors
from .weighting import WeightingStrategy, FactorWeights, weights_for, combine
from .adjustment_advisor import suggest_adjustments, estimate_conversion_probability, confidence_level
from .matching import PackageMatcher, find_matches
from .request_analysis import analyze_package_request, estimate_quick_score, find_conversion_candidates
from .pricing_engine import price_option, analyze_price_points, market_conditions_for, calculate_pricing_factors

__all__ = [
    "score_factors",
    "WeightingStrategy",
    "FactorWeights",
    "weights_for",
    "combine",
    "suggest_adjustments",
    "estimate_conversion_probability",
    "confidence_level",
    "PackageMatcher",
    "find_matches",
    "analyze_package_request",
    "estimate_quick_score",
    "find_conversion_candidates",
    "price_option",
    "analyze_price_points",
    "market_conditions_for",
    "calculate_pricing_factors",
]
