# api/matching.py
"""
Matching API
Runs one matching algorithm for a package request.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from loguru import logger

from ..errors import ConversionError
from ..schemas import Caller, ExecuteMatchingRequest, MatchingResponse
from ..services import MatchingService, authorize
from .deps import get_caller, get_matching_service

router = APIRouter(prefix="/api/packages/requests", tags=["matching"])


@router.post("/{request_id}/matches", response_model=MatchingResponse)
def execute_matching(
    request_id: str,
    body: ExecuteMatchingRequest = ExecuteMatchingRequest(),
    caller: Optional[Caller] = Depends(get_caller),
    service: MatchingService = Depends(get_matching_service)
):
    """
    Rank catalog packages for a request.

    Available algorithms: similarity_score, preference_weighted,
    budget_optimized, ml_clustering, hybrid (default).
    """
    try:
        authorize(caller)
        result = service.execute_matching(
            request_id,
            body.algorithm,
            max_results=body.max_results,
            min_score=body.min_score,
        )
    except ConversionError as e:
        logger.warning(f"Matching for {request_id} failed: {e.message}")
        return MatchingResponse(success=False, message=e.message)
    except Exception as e:
        logger.exception(f"Matching for {request_id} crashed")
        return MatchingResponse(success=False, message=f"Erro ao executar correspondência: {e}")

    return MatchingResponse(
        success=True,
        message=f"{len(result.matches)} correspondências encontradas.",
        result=result,
    )
