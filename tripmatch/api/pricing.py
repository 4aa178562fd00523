# api/pricing.py
"""
Pricing API
Dynamic pricing and price sensitivity for a package request.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from loguru import logger

from ..errors import ConversionError
from ..schemas import (
    Caller,
    ConversionPricingResponse,
    DynamicPricingRequest,
    PricingSensitivityRequest,
    PricingSensitivityResponse,
)
from ..services import PricingService, authorize
from .deps import get_caller, get_pricing_service

router = APIRouter(prefix="/api/packages/requests", tags=["pricing"])


@router.post("/{request_id}/pricing", response_model=ConversionPricingResponse)
def calculate_pricing(
    request_id: str,
    body: DynamicPricingRequest = DynamicPricingRequest(),
    caller: Optional[Caller] = Depends(get_caller),
    service: PricingService = Depends(get_pricing_service)
):
    """
    Price a request.

    Without components the cost is estimated from the request itself.
    """
    try:
        authorize(caller)
        pricing = service.calculate_dynamic_pricing(
            request_id, body.components, body.strategy, body.target_margin
        )
    except ConversionError as e:
        logger.warning(f"Pricing for {request_id} failed: {e.message}")
        return ConversionPricingResponse(success=False, message=e.message)
    except Exception as e:
        logger.exception(f"Pricing for {request_id} crashed")
        return ConversionPricingResponse(success=False, message=f"Erro ao calcular preços: {e}")

    return ConversionPricingResponse(success=True, pricing=pricing, message="Preços calculados com sucesso.")


@router.post("/{request_id}/pricing/sensitivity", response_model=PricingSensitivityResponse)
def pricing_sensitivity(
    request_id: str,
    body: PricingSensitivityRequest,
    caller: Optional[Caller] = Depends(get_caller),
    service: PricingService = Depends(get_pricing_service)
):
    """Expected conversion and revenue at each candidate price."""
    try:
        authorize(caller)
        sensitivity = service.calculate_pricing_sensitivity(request_id, body.price_points)
    except ConversionError as e:
        logger.warning(f"Sensitivity for {request_id} failed: {e.message}")
        return PricingSensitivityResponse(success=False, message=e.message)
    except Exception as e:
        logger.exception(f"Sensitivity for {request_id} crashed")
        return PricingSensitivityResponse(success=False, message=f"Erro ao analisar sensibilidade de preço: {e}")

    return PricingSensitivityResponse(
        success=True,
        sensitivity=sensitivity,
        message=f"Preço ótimo: R$ {sensitivity.optimal_price:.2f}",
    )
