# api/conversions.py
"""
Conversions API
Request-to-booking workflow: start, match, price, select, book.

Workflow steps answer with `{success, message, ...}` envelopes (HTTP 200);
lookups answer 404 when the session does not exist.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..errors import UnauthorizedError
from ..schemas import (
    AutoConversionMarkResponse,
    BookingConversionResponse,
    Caller,
    ConversionAnalytics,
    ConversionCandidate,
    ConversionPricingRequest,
    ConversionPricingResponse,
    ConversionSession,
    ExecuteBookingRequest,
    MarkAutoConversionRequest,
    PackageMatchingRequest,
    PackageMatchingResponse,
    SelectOptionRequest,
    SelectOptionResponse,
    StartConversionRequest,
    StartConversionResponse,
    TimeRange,
)
from ..services import ConversionService
from .deps import get_caller, get_conversion_service

router = APIRouter(prefix="/api/packages/conversions", tags=["conversions"])


@router.post("", response_model=StartConversionResponse)
def start_conversion(
    body: StartConversionRequest,
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    """
    Start converting a package request.

    Calling it again for the same request returns the existing session.
    """
    return service.start_conversion_process(caller, body.request_id, body.conversion_type)


# Fixed paths are declared before /{session_id} so they are not taken for a session id
@router.get("/analytics", response_model=ConversionAnalytics)
def conversion_analytics(
    time_range: TimeRange = Query(TimeRange.LAST_30_DAYS),
    partner_id: Optional[str] = Query(None),
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    """Conversion totals, rate, timing and revenue for the last 7/30/90 days."""
    try:
        return service.get_conversion_analytics(caller, time_range, partner_id)
    except UnauthorizedError as e:
        raise HTTPException(status_code=403, detail=e.message)


@router.get("/candidates", response_model=List[ConversionCandidate])
def conversion_candidates(
    min_score: int = Query(60, ge=0, le=100),
    limit: int = Query(20, ge=1, le=100),
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    """Pending requests that look ready for automatic conversion, best first."""
    try:
        return service.get_conversion_candidates(caller, min_score, limit)
    except UnauthorizedError as e:
        raise HTTPException(status_code=403, detail=e.message)


@router.post("/auto-conversion", response_model=AutoConversionMarkResponse)
def mark_for_auto_conversion(
    body: MarkAutoConversionRequest,
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    return service.mark_for_auto_conversion(
        caller, body.request_id, body.selected_package_id, body.conversion_notes
    )


@router.get("/by-request/{request_id}", response_model=ConversionSession)
def get_conversion_by_request(
    request_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    return _session_or_404(service, caller, request_id=request_id)


@router.get("/{session_id}", response_model=ConversionSession)
def get_conversion(
    session_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    return _session_or_404(service, caller, session_id=session_id)


def _session_or_404(
    service: ConversionService,
    caller: Optional[Caller],
    session_id: Optional[str] = None,
    request_id: Optional[str] = None
) -> ConversionSession:
    try:
        session = service.get_conversion_status(caller, session_id=session_id, request_id=request_id)
    except UnauthorizedError as e:
        raise HTTPException(status_code=403, detail=e.message)

    if session is None:
        raise HTTPException(status_code=404, detail="Sessão de conversão não encontrada.")
    return session


@router.post("/{session_id}/matching", response_model=PackageMatchingResponse)
def execute_package_matching(
    session_id: str,
    body: PackageMatchingRequest = PackageMatchingRequest(),
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    """Re-run matching with score, size and price-range filters."""
    return service.execute_package_matching(caller, session_id, body.algorithm, body.filters)


@router.post("/{session_id}/pricing", response_model=ConversionPricingResponse)
def calculate_conversion_pricing(
    session_id: str,
    body: ConversionPricingRequest,
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    return service.calculate_conversion_pricing(caller, session_id, body.option, body.pricing_strategy)


@router.post("/{session_id}/selection", response_model=SelectOptionResponse)
def select_conversion_option(
    session_id: str,
    body: SelectOptionRequest,
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    return service.select_conversion_option(caller, session_id, body.selected_option)


@router.post("/{session_id}/booking", response_model=BookingConversionResponse)
def execute_conversion_to_booking(
    session_id: str,
    body: ExecuteBookingRequest,
    caller: Optional[Caller] = Depends(get_caller),
    service: ConversionService = Depends(get_conversion_service)
):
    """
    Book the selected option once the customer answered.

    `customer_approval: false` cancels without touching anything.
    """
    return service.execute_conversion_to_booking(
        caller, session_id, body.customer_approval, body.payment_method
    )
