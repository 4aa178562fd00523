"""
Pricing Service
Feeds the pricing engine with market data read from the catalog
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ..algorithms import pricing_engine
from ..errors import InvalidRequestError, NotFoundError
from ..interfaces.catalog import PackageCatalog
from ..schemas import (
    PackageComponent,
    PricingResult,
    PricingSensitivityResult,
    PricingStrategy,
    TripRequest,
)

DEMAND_WINDOW = timedelta(days=30)


class PricingService:
    """
    Dynamic pricing for package requests

    Usage:
        service = PricingService(catalog)
        pricing = service.calculate_dynamic_pricing("req_1", components, PricingStrategy.DYNAMIC)
    """

    def __init__(
        self,
        catalog: PackageCatalog,
        target_margin: float = pricing_engine.DEFAULT_TARGET_MARGIN,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.catalog = catalog
        self.target_margin = target_margin
        self.clock = clock

    def _load_request(self, request_id: str) -> TripRequest:
        request = self.catalog.get_package_request_details(request_id)
        if request is None:
            raise NotFoundError("Solicitação de pacote não encontrada.")
        return request

    def calculate_dynamic_pricing(
        self,
        request_id: str,
        components: Optional[Sequence[PackageComponent]] = None,
        strategy: PricingStrategy = PricingStrategy.DYNAMIC,
        target_margin: Optional[float] = None
    ) -> PricingResult:
        """
        Price a set of components for a request

        Args:
            request_id: Request being converted
            components: Priced components; None estimates the cost from the request
            strategy: Pricing strategy (default: dynamic)
            target_margin: Extra margin for cost_plus (default: configured margin)

        Raises:
            NotFoundError: request does not exist
            InvalidRequestError: components given but empty
        """
        request = self._load_request(request_id)
        if components is not None and len(components) == 0:
            raise InvalidRequestError("Informe ao menos um componente para precificar.")

        now = self.clock()
        market = pricing_engine.market_conditions_for(
            now, self.catalog.count_recent_requests(now - DEMAND_WINDOW)
        )

        if components is None:
            base_cost = pricing_engine.estimate_base_cost(request)
        else:
            base_cost = pricing_engine.component_cost(components)

        returning_customer = bool(
            request.customer_email
            and self.catalog.count_requests_by_email(request.customer_email) > 1
        )
        factors = pricing_engine.calculate_pricing_factors(
            request, market, base_cost, now, returning_customer
        )

        result = pricing_engine.price_option(
            request,
            base_cost,
            factors,
            market,
            strategy=strategy,
            target_margin=self.target_margin if target_margin is None else target_margin,
        )

        logger.info(
            f"Pricing {request_id} [{result.strategy.value}]: base {base_cost:.2f}, "
            f"recommended {result.recommended_price:.2f} ({market.seasonality.value}/{market.demand.value})"
        )
        return result

    def calculate_pricing_sensitivity(
        self,
        request_id: str,
        price_points: List[float]
    ) -> PricingSensitivityResult:
        """
        Conversion probability and expected revenue at each price point

        Raises:
            NotFoundError: request does not exist
            InvalidRequestError: no price points, or a non-positive one
        """
        if not price_points:
            raise InvalidRequestError("Informe ao menos um preço para análise.")
        if any(price <= 0 for price in price_points):
            raise InvalidRequestError("Os preços devem ser positivos.")

        request = self._load_request(request_id)
        return pricing_engine.analyze_price_points(request, price_points)
