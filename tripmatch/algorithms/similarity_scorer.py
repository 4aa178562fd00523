"""
Similarity Scorer
Computes how compatible one trip request is with one package (each factor 0-100)

Factors:
1. Destination Match - category/name containment, then keyword overlap
2. Budget Match - relative distance between package price and budget
3. Duration Match - absolute difference in days
4. Activity Match - requested activities found in description/highlights
5. Group Size Match - package capacity vs group size
6. Date Availability - proxy until real inventory checks exist

Pure function: no side effects, same inputs give the same factors.
"""

from typing import List

from loguru import logger

from ..schemas import MatchFactors, TravelPackage, TripRequest


def score_factors(request: TripRequest, package: TravelPackage) -> MatchFactors:
    """
    Calculate the six match factors for a (request, package) pair

    Args:
        request: Customer trip request
        package: Catalog package

    Returns:
        MatchFactors: Independent sub-scores, each clamped to [0, 100]

    Example:
        >>> factors = score_factors(request, package)
        >>> factors.budget_match
        100.0
    """
    factors = MatchFactors(
        destination_match=_clamp(_calculate_destination_match(request, package)),
        budget_match=_clamp(_calculate_budget_match(package.base_price, request.budget)),
        duration_match=_clamp(_calculate_duration_match(package.duration, request.duration)),
        activity_match=_clamp(_calculate_activity_match(request.activities, package)),
        group_size_match=_clamp(_calculate_group_size_match(package.max_guests, request.group_size)),
        date_availability=_clamp(_calculate_date_availability(request)),
    )

    logger.debug(f"Factors for request {request.id} / package {package.id}: {factors}")

    return factors


def _calculate_destination_match(request: TripRequest, package: TravelPackage) -> float:
    """
    Calculate destination match (0-100)

    Logic:
    - Category contains destination (or the reverse), or name contains destination: 100
    - Otherwise: share of destination words found among category words, scaled to 80
    """
    request_dest = request.destination.strip().lower()
    category = package.category.strip().lower()
    name = package.name.lower()

    if request_dest in category or category in request_dest or request_dest in name:
        return 100.0

    dest_words = request_dest.split()
    if not dest_words:
        return 0.0

    category_words = category.split()
    matching_words = [word for word in dest_words if word in category_words]

    return (len(matching_words) / len(dest_words)) * 80


def _calculate_budget_match(package_price: float, budget: float) -> float:
    """
    Calculate budget match (0-100)

    Logic (d = |price - budget| / budget):
    - d <= 5%: 100
    - d <= 10%: 90
    - d <= 20%: 75
    - d <= 30%: 60
    - d <= 50%: 40
    - otherwise: 30 - d * 50, floored at 0
    """
    diff_ratio = abs(package_price - budget) / budget

    if diff_ratio <= 0.05:
        return 100.0
    elif diff_ratio <= 0.10:
        return 90.0
    elif diff_ratio <= 0.20:
        return 75.0
    elif diff_ratio <= 0.30:
        return 60.0
    elif diff_ratio <= 0.50:
        return 40.0
    else:
        return max(0.0, 30 - diff_ratio * 50)


def _calculate_duration_match(package_duration: int, requested_duration: int) -> float:
    """
    Calculate duration match (0-100)

    Logic:
    - Same length: 100
    - 1 day off: 85, 2 days: 70, 3 days: 55
    - More: 40 - diff * 10, floored at 0
    """
    diff = abs(package_duration - requested_duration)

    if diff == 0:
        return 100.0
    elif diff <= 1:
        return 85.0
    elif diff <= 2:
        return 70.0
    elif diff <= 3:
        return 55.0
    else:
        return max(0.0, 40 - diff * 10)


def _calculate_activity_match(activities: List[str], package: TravelPackage) -> float:
    """
    Calculate activity match (0-100)

    Logic:
    - No requested activities: 50 (neutral)
    - Otherwise: share of activities found (case-insensitive substring)
      in description + highlights
    """
    if not activities:
        return 50.0

    package_content = (package.description + " " + " ".join(package.highlights)).lower()
    found = sum(1 for activity in activities if activity.lower() in package_content)

    return (found / len(activities)) * 100


def _calculate_group_size_match(max_guests: int, group_size: int) -> float:
    """Full score when the package fits the group, minus 20 per missing seat from 50 otherwise"""
    if max_guests >= group_size:
        return 100.0

    return max(0.0, 50 - (group_size - max_guests) * 20)


def _calculate_date_availability(request: TripRequest) -> float:
    # No inventory lookup yet: a fixed start date is simply easier to confirm
    return 80.0 if request.start_date else 60.0


def _clamp(value: float) -> float:
    return min(100.0, max(0.0, float(value)))
