# api/__init__.py
"""
API Endpoints Package

Contains all FastAPI routers for the service:
- matching: executeMatching for one request
- pricing: Dynamic pricing and price sensitivity
- conversions: Conversion workflow and analytics
"""

from .matching import router as matching_router
from .pricing import router as pricing_router
from .conversions import router as conversions_router

__all__ = [
    "matching_router",
    "pricing_router",
    "conversions_router",
]
