"""
Request Analysis
Quick additive pre-screen of a request against the catalog, run when a
conversion starts. Independent from the weighted matching algorithms: it
explains matches in plain words and recommends how far a conversion can be
automated.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger

from ..schemas import (
    AutoConversionRecommendation,
    AvailabilityStatus,
    BudgetFlexibility,
    ConversionCandidate,
    PackageMatchAnalysis,
    RequestAnalysisResult,
    TravelPackage,
    TripRequest,
)

# Packages at or below this score are not worth listing
MIN_ANALYSIS_SCORE = 20
TOP_MATCHES = 5

QUICK_SCORE_BASE = 50


def analyze_package_request(
    request: TripRequest,
    packages: Sequence[TravelPackage],
    now: Optional[datetime] = None
) -> RequestAnalysisResult:
    """
    Analyze a request against every catalog package

    Args:
        request: Customer trip request
        packages: Full catalog
        now: Analysis timestamp (default: utcnow)

    Returns:
        RequestAnalysisResult: Top 5 matches, overall score, recommendation and notes
    """
    now = now or datetime.utcnow()

    analyzed = [analyze_package_match(request, package) for package in packages]
    candidates = [match for match in analyzed if match.match_score > MIN_ANALYSIS_SCORE]
    candidates.sort(key=lambda m: m.match_score, reverse=True)
    top_matches = candidates[:TOP_MATCHES]

    overall_score = _calculate_overall_score(request, top_matches)
    recommendation = _determine_recommendation(request, overall_score, top_matches)

    logger.info(
        f"Analyzed request {request.id}: {len(top_matches)} candidate(s), "
        f"overall {overall_score}, {recommendation.value}"
    )

    return RequestAnalysisResult(
        request_id=request.id,
        analysis_date=now,
        overall_score=overall_score,
        top_matches=top_matches,
        auto_conversion_recommendation=recommendation,
        analysis_notes=_generate_notes(request, top_matches, overall_score, now),
    )


def analyze_package_match(request: TripRequest, package: TravelPackage) -> PackageMatchAnalysis:
    """
    Score one package with simple additive rules

    Logic:
    - Destination containment: +30
    - Duration: exact +20, within 2 days +15, within 5 days +10
    - Capacity fits the group: +15, otherwise -10
    - Price vs budget: within 10% +20, 20% +15, 50% +10, else -5
    - Activities covered: 80% +15, 50% +10, 30% +5
    - Accommodation wanted and included: +5
    - Both dates given: +10 (and availability "available")
    """
    score = 0
    reasons: List[str] = []
    modifications: List[str] = []

    destination = request.destination.lower()
    category = package.category.lower()
    if category in destination or destination in category:
        score += 30
        reasons.append("Destino compatível")

    duration_diff = abs(package.duration - request.duration)
    if duration_diff == 0:
        score += 20
        reasons.append("Duração exata")
    elif duration_diff <= 2:
        score += 15
        reasons.append("Duração similar")
        if package.duration < request.duration:
            modifications.append(f"Estender pacote por {duration_diff} dia(s)")
        else:
            modifications.append(f"Reduzir pacote por {duration_diff} dia(s)")
    elif duration_diff <= 5:
        score += 10
        reasons.append("Duração aproximada")

    if package.max_guests >= request.group_size:
        score += 15
        reasons.append("Comporta o grupo")
    else:
        score -= 10
        modifications.append(f"Ajustar para {request.group_size} pessoas")

    budget_diff = package.base_price - request.budget
    budget_ratio = abs(budget_diff) / request.budget
    if budget_ratio <= 0.1:
        score += 20
        reasons.append("Preço muito próximo ao orçamento")
    elif budget_ratio <= 0.2:
        score += 15
        reasons.append("Preço próximo ao orçamento")
    elif budget_ratio <= 0.5:
        score += 10
        reasons.append("Preço razoável")
    else:
        score -= 5
        if budget_diff > 0:
            modifications.append("Reduzir custos para atingir orçamento")

    if request.activities:
        package_content = (package.description + " " + " ".join(package.highlights)).lower()
        found = sum(1 for activity in request.activities if activity.lower() in package_content)
        coverage = found / len(request.activities)
        if coverage >= 0.8:
            score += 15
            reasons.append("Atividades muito compatíveis")
        elif coverage >= 0.5:
            score += 10
            reasons.append("Atividades compatíveis")
        elif coverage >= 0.3:
            score += 5
            reasons.append("Algumas atividades compatíveis")

    if request.accommodation_types and package.accommodation_id:
        score += 5
        reasons.append("Possui hospedagem")

    availability = AvailabilityStatus.NEEDS_CHECK
    if request.start_date and request.end_date:
        availability = AvailabilityStatus.AVAILABLE
        score += 10
        reasons.append("Disponível nas datas solicitadas")

    return PackageMatchAnalysis(
        package_id=package.id,
        package_name=package.name,
        match_score=min(100, max(0, score)),
        match_reasons=reasons,
        price_difference=budget_diff,
        availability_status=availability,
        suggested_modifications=modifications,
    )


def _calculate_overall_score(request: TripRequest, matches: List[PackageMatchAnalysis]) -> int:
    if not matches:
        return 20

    score = matches[0].match_score
    if request.start_date and request.end_date:
        score += 10
    if request.budget > 500:
        score += 5
    if request.budget_flexibility == BudgetFlexibility.VERY_FLEXIBLE:
        score += 5
    elif request.budget_flexibility == BudgetFlexibility.RIGID:
        score -= 5

    return min(100, max(0, score))


def _determine_recommendation(
    request: TripRequest,
    overall_score: int,
    matches: List[PackageMatchAnalysis]
) -> AutoConversionRecommendation:
    """
    Decide how much of the conversion can be automated

    Logic:
    - high_confidence: overall >= 80, top >= 80 and top within 15% of budget
    - medium_confidence: overall >= 60 and top >= 60
    - low_confidence: overall >= 40
    """
    if not matches:
        return AutoConversionRecommendation.NOT_RECOMMENDED

    top = matches[0]
    if (overall_score >= 80 and top.match_score >= 80
            and abs(top.price_difference) / request.budget <= 0.15):
        return AutoConversionRecommendation.HIGH_CONFIDENCE
    if overall_score >= 60 and top.match_score >= 60:
        return AutoConversionRecommendation.MEDIUM_CONFIDENCE
    if overall_score >= 40:
        return AutoConversionRecommendation.LOW_CONFIDENCE

    return AutoConversionRecommendation.NOT_RECOMMENDED


def _generate_notes(
    request: TripRequest,
    matches: List[PackageMatchAnalysis],
    overall_score: int,
    now: datetime
) -> List[str]:
    notes = [
        f"Analisado em {now.strftime('%d/%m/%Y')}",
        f"Score geral de conversão: {overall_score}%",
    ]

    if matches:
        notes.append(f"{len(matches)} pacote(s) compatível(eis) encontrado(s)")
        notes.append(f"Melhor match: {matches[0].package_name} ({matches[0].match_score}% compatibilidade)")
    else:
        notes.append("Nenhum pacote existente é compatível - requer pacote personalizado")

    if request.budget < 500:
        notes.append("Orçamento baixo - opções limitadas")
    elif request.budget > 5000:
        notes.append("Orçamento alto - muitas opções premium disponíveis")

    if request.flexible_dates:
        notes.append("Datas flexíveis facilitam disponibilidade")
    if request.budget_flexibility == BudgetFlexibility.VERY_FLEXIBLE:
        notes.append("Flexibilidade de orçamento permite ajustes")

    return notes


# ============================================
# Conversion Candidates
# ============================================

def estimate_quick_score(request: TripRequest) -> int:
    """
    Catalog-free readiness score for a pending request

    Logic:
    - Base: 50
    - Budget: >= 1000 +20, >= 500 +10
    - Both dates given: +15
    - Two or more activities: +10
    - Accommodation types given: +5
    - Budget not rigid: +10
    """
    score = QUICK_SCORE_BASE

    if request.budget >= 1000:
        score += 20
    elif request.budget >= 500:
        score += 10

    if request.start_date and request.end_date:
        score += 15

    if len(request.activities) >= 2:
        score += 10
    if request.accommodation_types:
        score += 5

    if request.budget_flexibility != BudgetFlexibility.RIGID:
        score += 10

    return min(100, score)


def _quick_recommendation(score: int) -> AutoConversionRecommendation:
    if score >= 80:
        return AutoConversionRecommendation.HIGH_CONFIDENCE
    if score >= 60:
        return AutoConversionRecommendation.MEDIUM_CONFIDENCE
    return AutoConversionRecommendation.LOW_CONFIDENCE


def find_conversion_candidates(
    requests: Sequence[TripRequest],
    packages: Sequence[TravelPackage],
    min_score: int = 60,
    limit: int = 20
) -> List[ConversionCandidate]:
    """
    Rank pending requests by quick score

    Args:
        requests: Pending requests to screen
        packages: Catalog used to name each candidate's best package
        min_score: Lowest quick score kept
        limit: Maximum number of candidates returned

    Returns:
        List[ConversionCandidate]: Highest score first; ties keep input order
    """
    candidates = []
    for request in requests:
        score = estimate_quick_score(request)
        if score < min_score:
            continue

        matches = [analyze_package_match(request, package) for package in packages]
        best = max(matches, key=lambda m: m.match_score, default=None)

        candidates.append(ConversionCandidate(
            request_id=request.id,
            customer_email=request.customer_email,
            destination=request.destination,
            budget=request.budget,
            analysis_score=score,
            top_match_name=best.package_name if best and best.match_score > MIN_ANALYSIS_SCORE else None,
            recommendation_type=_quick_recommendation(score),
            created_at=request.created_at,
        ))

    candidates.sort(key=lambda c: c.analysis_score, reverse=True)

    logger.info(f"{len(candidates)} conversion candidate(s) at quick score >= {min_score}")
    return candidates[:limit]
