"""
Matching Service - executeMatching
Loads the request and catalog, runs one algorithm and packages the result
with metrics and recommendations.
"""

import time
from typing import List, Optional

from loguru import logger

from ..algorithms.matching import PackageMatcher
from ..errors import InvalidRequestError, NotFoundError
from ..interfaces.catalog import PackageCatalog
from ..schemas import (
    ConfidenceLevel,
    MatchingAlgorithm,
    MatchingSessionResult,
    PackageMatchResult,
    PerformanceMetrics,
    PriceRangeFilter,
)


class MatchingService:
    """
    Matching orchestrator

    Usage:
        service = MatchingService(catalog)
        result = service.execute_matching("req_1", MatchingAlgorithm.HYBRID, max_results=5)
    """

    def __init__(
        self,
        catalog: PackageCatalog,
        matcher: Optional[PackageMatcher] = None,
        default_algorithm: MatchingAlgorithm = MatchingAlgorithm.HYBRID,
        default_max_results: int = 10,
        default_min_score: int = 40
    ):
        self.catalog = catalog
        self.matcher = matcher or PackageMatcher()
        self.default_algorithm = default_algorithm
        self.default_max_results = default_max_results
        self.default_min_score = default_min_score

    def execute_matching(
        self,
        request_id: str,
        algorithm: Optional[MatchingAlgorithm] = None,
        max_results: Optional[int] = None,
        min_score: Optional[int] = None,
        price_range: Optional[PriceRangeFilter] = None
    ) -> MatchingSessionResult:
        """
        Match one request against the whole catalog

        Args:
            request_id: Package request to match
            algorithm: Matching algorithm (default: hybrid)
            max_results: Upper bound on returned matches, >= 1 (default: 10)
            min_score: Lower bound on match score, 0-100 (default: 40)
            price_range: Keep only packages whose base price falls inside it

        Returns:
            MatchingSessionResult: Matches with score >= min_score, at most max_results

        Raises:
            InvalidRequestError: bounds out of range or unknown algorithm
            NotFoundError: request does not exist
        """
        algorithm = self.default_algorithm if algorithm is None else algorithm
        max_results = self.default_max_results if max_results is None else max_results
        min_score = self.default_min_score if min_score is None else min_score

        if not 0 <= min_score <= 100:
            raise InvalidRequestError("min_score deve estar entre 0 e 100")
        if max_results < 1:
            raise InvalidRequestError("max_results deve ser pelo menos 1")
        try:
            algorithm = MatchingAlgorithm(algorithm)
        except ValueError:
            raise InvalidRequestError(f"Algoritmo desconhecido: {algorithm}")

        start = time.perf_counter()

        request = self.catalog.get_package_request_details(request_id)
        if request is None:
            raise NotFoundError("Solicitação de pacote não encontrada.")

        packages = self.catalog.get_all_packages()
        ranked = self.matcher.match(request, packages, algorithm)
        matches = [m for m in ranked if m.match_score >= min_score]

        if price_range is not None:
            prices = {p.id: p.base_price for p in packages}
            matches = [m for m in matches if price_range.min <= prices[m.package_id] <= price_range.max]

        matches = matches[:max_results]

        elapsed_ms = (time.perf_counter() - start) * 1000
        metrics = PerformanceMetrics(
            processing_time_ms=elapsed_ms,
            matches_found=len(matches),
            average_match_score=sum(m.match_score for m in matches) / len(matches) if matches else 0,
            high_confidence_matches=sum(1 for m in matches if m.confidence_level == ConfidenceLevel.HIGH),
        )

        logger.info(
            f"execute_matching {request_id} [{algorithm.value}]: {len(matches)} match(es) "
            f"from {len(packages)} packages in {elapsed_ms:.1f}ms"
        )

        return MatchingSessionResult(
            request_id=request_id,
            algorithm=algorithm,
            execution_time=elapsed_ms,
            total_packages_analyzed=len(packages),
            matches=matches,
            performance_metrics=metrics,
            recommendations=generate_recommendations(matches, metrics),
        )


def generate_recommendations(matches: List[PackageMatchResult], metrics: PerformanceMetrics) -> List[str]:
    """Admin-facing advice for a matching run (pt-BR)"""
    if not matches:
        return [
            "Nenhum pacote compatível encontrado - considere criar pacote personalizado",
            "Revise os critérios de busca ou orçamento do cliente",
        ]

    recommendations = [f"{len(matches)} pacote(s) compatível(eis) encontrado(s)"]

    if metrics.high_confidence_matches > 0:
        recommendations.append(f"{metrics.high_confidence_matches} pacote(s) com alta confiança de conversão")

    if metrics.average_match_score > 80:
        recommendations.append("Excelente compatibilidade - proceder com conversão automática")
    elif metrics.average_match_score > 60:
        recommendations.append("Boa compatibilidade - revisar sugestões de ajuste")
    else:
        recommendations.append("Compatibilidade moderada - personalização pode ser necessária")

    top = matches[0]
    if top.match_factors.budget_match < 60:
        recommendations.append("Considere negociar preço ou ofertar opções mais econômicas")
    if top.match_factors.duration_match < 70:
        recommendations.append("Ajustar duração do pacote pode melhorar a satisfação")

    return recommendations
