"""
Package Matcher - Request to Package Matching Engine
Ranks catalog packages against one trip request with one of five algorithms:

1. similarity_score    - Scorer + uniform weights over every package
2. preference_weighted - Scorer + weights tuned to the request's preferences
3. budget_optimized    - Only the 50 packages closest in price, budget-heavy weights
4. ml_clustering       - Euclidean distance between normalized feature vectors
5. hybrid              - Ensemble of 1-3 (40% / 35% / 25%) over each one's top 20

Every algorithm drops matches below 40 and sorts by score, highest first.
"""

from collections import defaultdict
from typing import Dict, List, Sequence

import numpy as np
from loguru import logger

from ..schemas import (
    BudgetFlexibility,
    MatchFactors,
    MatchingAlgorithm,
    PackageMatchResult,
    TravelPackage,
    TripRequest,
)
from .adjustment_advisor import confidence_level, estimate_conversion_probability, suggest_adjustments
from .similarity_scorer import score_factors
from .weighting import FactorWeights, WeightingStrategy, combine, round_half_up, weights_for

MATCH_THRESHOLD = 40
BUDGET_CANDIDATE_LIMIT = 50
HYBRID_TOP_N = 20

# Ensemble weights, applied as-is even when a package is missing from a sub-list
HYBRID_ENSEMBLE_WEIGHTS: Dict[MatchingAlgorithm, float] = {
    MatchingAlgorithm.SIMILARITY_SCORE: 0.40,
    MatchingAlgorithm.PREFERENCE_WEIGHTED: 0.35,
    MatchingAlgorithm.BUDGET_OPTIMIZED: 0.25,
}

_BUDGET_FLEXIBILITY_FEATURE = {
    BudgetFlexibility.VERY_FLEXIBLE: 1.0,
    BudgetFlexibility.FLEXIBLE: 0.5,
    BudgetFlexibility.RIGID: 0.0,
}


class PackageMatcher:
    """
    Package matching engine

    Usage:
        matcher = PackageMatcher()
        matches = matcher.match(request, packages, MatchingAlgorithm.HYBRID)
    """

    def __init__(
        self,
        threshold: int = MATCH_THRESHOLD,
        budget_candidate_limit: int = BUDGET_CANDIDATE_LIMIT,
        hybrid_top_n: int = HYBRID_TOP_N
    ):
        """
        Initialize Package Matcher

        Args:
            threshold: Minimum score a match needs to be returned (default: 40)
            budget_candidate_limit: Packages scored by budget_optimized (default: 50)
            hybrid_top_n: Results taken from each hybrid sub-algorithm (default: 20)
        """
        self.threshold = threshold
        self.budget_candidate_limit = budget_candidate_limit
        self.hybrid_top_n = hybrid_top_n

    def match(
        self,
        request: TripRequest,
        packages: Sequence[TravelPackage],
        algorithm: MatchingAlgorithm = MatchingAlgorithm.HYBRID
    ) -> List[PackageMatchResult]:
        """
        Rank packages for a request

        Args:
            request: Customer trip request
            packages: Full catalog
            algorithm: Which matching algorithm to run

        Returns:
            List[PackageMatchResult]: Matches >= threshold, best first
        """
        handlers = {
            MatchingAlgorithm.SIMILARITY_SCORE: self.similarity_matches,
            MatchingAlgorithm.PREFERENCE_WEIGHTED: self.preference_matches,
            MatchingAlgorithm.BUDGET_OPTIMIZED: self.budget_optimized_matches,
            MatchingAlgorithm.ML_CLUSTERING: self.ml_clustering_matches,
            MatchingAlgorithm.HYBRID: self.hybrid_matches,
        }
        matches = handlers[MatchingAlgorithm(algorithm)](request, packages)

        logger.info(
            f"{MatchingAlgorithm(algorithm).value}: {len(matches)} of {len(packages)} "
            f"packages matched request {request.id}"
        )

        return matches

    # ============================================
    # Weighted-score algorithms
    # ============================================

    def similarity_matches(
        self, request: TripRequest, packages: Sequence[TravelPackage]
    ) -> List[PackageMatchResult]:
        weights = weights_for(WeightingStrategy.SIMILARITY)
        return self._weighted_matches(request, packages, weights)

    def preference_matches(
        self, request: TripRequest, packages: Sequence[TravelPackage]
    ) -> List[PackageMatchResult]:
        weights = weights_for(WeightingStrategy.PREFERENCE_WEIGHTED, request)
        logger.debug(f"Preference weights for request {request.id}: {weights!r}")
        return self._weighted_matches(request, packages, weights)

    def budget_optimized_matches(
        self, request: TripRequest, packages: Sequence[TravelPackage]
    ) -> List[PackageMatchResult]:
        """Score only the packages priced closest to the budget"""
        candidates = sorted(packages, key=lambda p: abs(p.base_price - request.budget))
        weights = weights_for(WeightingStrategy.BUDGET_OPTIMIZED)
        return self._weighted_matches(request, candidates[:self.budget_candidate_limit], weights)

    def _weighted_matches(
        self,
        request: TripRequest,
        packages: Sequence[TravelPackage],
        weights: FactorWeights
    ) -> List[PackageMatchResult]:
        matches = []
        for package in packages:
            factors = score_factors(request, package)
            score = combine(factors, weights)
            if score >= self.threshold:
                matches.append(_build_match(request, package, score, factors))

        return _ranked(matches)

    # ============================================
    # Feature-vector algorithm
    # ============================================

    def ml_clustering_matches(
        self, request: TripRequest, packages: Sequence[TravelPackage]
    ) -> List[PackageMatchResult]:
        """
        Distance-based matching over normalized feature vectors

        Not a trained model: score = 100 - 10 * euclidean distance, floored at 0.
        """
        request_vector = request_feature_vector(request)
        matches = []

        for package in packages:
            distance = euclidean_distance(request_vector, package_feature_vector(package))
            score = min(100, max(0, round_half_up(100 - distance * 10)))

            if score >= self.threshold:
                factors = score_factors(request, package)
                matches.append(_build_match(request, package, score, factors))

        return _ranked(matches)

    # ============================================
    # Ensemble
    # ============================================

    def hybrid_matches(
        self, request: TripRequest, packages: Sequence[TravelPackage]
    ) -> List[PackageMatchResult]:
        """
        Combine the top results of three algorithms

        hybrid = 0.40 * similarity + 0.35 * preference + 0.25 * budget, where a
        package absent from a sub-algorithm's top N gets nothing from it.
        """
        contributions = defaultdict(list)
        for algorithm, weight in HYBRID_ENSEMBLE_WEIGHTS.items():
            for match in self.match(request, packages, algorithm)[:self.hybrid_top_n]:
                contributions[match.package_id].append((weight, match))

        combined = []
        for package_id, weighted in contributions.items():
            hybrid_score = sum(weight * match.match_score for weight, match in weighted)
            score = round_half_up(hybrid_score)
            if score < self.threshold:
                logger.debug(f"Hybrid dropped {package_id}: {hybrid_score:.2f}")
                continue

            base = weighted[0][1]
            combined.append(base.model_copy(update={
                "match_score": score,
                "confidence_level": confidence_level(score),
                "conversion_probability": estimate_conversion_probability(score, base.match_factors),
            }))

        return _ranked(combined)


# ============================================
# Feature Vectors
# ============================================

def request_feature_vector(request: TripRequest) -> List[float]:
    """7-dim normalized description of what the customer asked for"""
    return [
        request.budget / 10000,
        request.duration / 30,
        request.group_size / 20,
        len(request.activities) / 10,
        len(request.accommodation_types) / 5,
        1.0 if request.flexible_dates else 0.0,
        _BUDGET_FLEXIBILITY_FEATURE[request.budget_flexibility],
    ]


def package_feature_vector(package: TravelPackage) -> List[float]:
    """7-dim normalized description of a package, aligned with request_feature_vector"""
    return [
        package.base_price / 10000,
        package.duration / 30,
        package.max_guests / 20,
        len(package.highlights) / 10,
        1.0 if package.accommodation_id else 0.0,
        1.0 if package.is_featured else 0.0,
        (package.discount_percentage or 0) / 100,
    ]


def euclidean_distance(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    return float(np.linalg.norm(np.asarray(vec1, dtype=float) - np.asarray(vec2, dtype=float)))


# ============================================
# Helpers
# ============================================

def _build_match(
    request: TripRequest,
    package: TravelPackage,
    score: int,
    factors: MatchFactors
) -> PackageMatchResult:
    return PackageMatchResult(
        package_id=package.id,
        match_score=score,
        confidence_level=confidence_level(score),
        match_factors=factors,
        adjustment_suggestions=suggest_adjustments(request, package, factors),
        conversion_probability=estimate_conversion_probability(score, factors),
    )


def _ranked(matches: List[PackageMatchResult]) -> List[PackageMatchResult]:
    # Stable sort: ties keep catalog order
    return sorted(matches, key=lambda m: m.match_score, reverse=True)


def find_matches(
    request: TripRequest,
    packages: Sequence[TravelPackage],
    algorithm: MatchingAlgorithm = MatchingAlgorithm.HYBRID
) -> List[PackageMatchResult]:
    """Convenience function: run one algorithm with default settings"""
    return PackageMatcher().match(request, packages, algorithm)
