"""
Services Module
Orchestration over the pure algorithms and the external interfaces
"""

from .authorization import ADMIN_ROLES, authorize, authorize_session_owner
from .matching_service import MatchingService
from .pricing_service import PricingService
from .conversion_service import ConversionService, TRANSITIONS, transition

__all__ = [
    "ADMIN_ROLES",
    "authorize",
    "authorize_session_owner",
    "MatchingService",
    "PricingService",
    "ConversionService",
    "TRANSITIONS",
    "transition",
]
