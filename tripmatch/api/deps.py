# api/deps.py
"""
Shared FastAPI dependencies
Caller identity comes from the upstream gateway headers; services live on app.state.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request

from ..schemas import Caller, Role
from ..services import ConversionService, MatchingService, PricingService


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> Optional[Caller]:
    """
    Resolve the caller from X-User-Id / X-User-Role

    Returns None for anonymous calls; the services decide whether that is allowed.
    """
    if not x_user_id or not x_user_role:
        return None
    try:
        role = Role(x_user_role.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_user_role}")
    return Caller(user_id=x_user_id, role=role)


def get_matching_service(request: Request) -> MatchingService:
    return request.app.state.matching_service


def get_pricing_service(request: Request) -> PricingService:
    return request.app.state.pricing_service


def get_conversion_service(request: Request) -> ConversionService:
    return request.app.state.conversion_service
