# schemas/__init__.py
"""
Pydantic Schemas Package

Contains all Pydantic v2 models for:
- Catalog inputs (requests, packages)
- Match, analysis and pricing results
- Conversion sessions and API envelopes
"""

from .conversion_schemas import (
    # Enums
    AdjustmentType, AutoConversionRecommendation, AvailabilityStatus,
    BookingTrend, BudgetFlexibility, Competition, ConfidenceLevel,
    ConversionStatus, ConversionType, Demand, MatchingAlgorithm, OptionType,
    PaymentMethod, PricingStrategy, RequestStatus, Role, Seasonality, TimeRange,
    # Catalog
    Caller, TravelPackage, TripRequest,
    # Matching
    AdjustmentSuggestion, MatchFactors, MatchingSessionResult,
    PackageMatchResult, PerformanceMetrics,
    # Analysis
    ConversionCandidate, PackageMatchAnalysis, RequestAnalysisResult,
    # Pricing
    MarketConditions, PackageComponent, PriceBreakdown, PricePointAnalysis,
    PriceRange, PricingAlternative, PricingFactors, PricingResult,
    PricingSensitivityResult,
    # Conversion
    BookingConfirmation, ConversionOption, ConversionSession, MatchingFilters,
    PriceRangeFilter, SelectedOption, TimelineEvent,
    # Envelopes
    AutoConversionMarkResponse, BookingConversionResponse, ConversionAnalytics, ConversionPricingResponse,
    ConversionsByType, MatchingResponse, PackageMatchingResponse,
    PricingSensitivityResponse, SelectOptionResponse, StartConversionResponse,
    TopPerformingMatch,
    # Request bodies
    ConversionPricingRequest, DynamicPricingRequest, ExecuteBookingRequest,
    ExecuteMatchingRequest, MarkAutoConversionRequest, PackageMatchingRequest, PricingSensitivityRequest,
    SelectOptionRequest, StartConversionRequest,
)

__all__ = [
    # Enums
    "AdjustmentType", "AutoConversionRecommendation", "AvailabilityStatus",
    "BookingTrend", "BudgetFlexibility", "Competition", "ConfidenceLevel",
    "ConversionStatus", "ConversionType", "Demand", "MatchingAlgorithm", "OptionType",
    "PaymentMethod", "PricingStrategy", "RequestStatus", "Role", "Seasonality", "TimeRange",
    # Catalog
    "Caller", "TravelPackage", "TripRequest",
    # Matching
    "AdjustmentSuggestion", "MatchFactors", "MatchingSessionResult",
    "PackageMatchResult", "PerformanceMetrics",
    # Analysis
    "ConversionCandidate", "PackageMatchAnalysis", "RequestAnalysisResult",
    # Pricing
    "MarketConditions", "PackageComponent", "PriceBreakdown", "PricePointAnalysis",
    "PriceRange", "PricingAlternative", "PricingFactors", "PricingResult",
    "PricingSensitivityResult",
    # Conversion
    "BookingConfirmation", "ConversionOption", "ConversionSession", "MatchingFilters",
    "PriceRangeFilter", "SelectedOption", "TimelineEvent",
    # Envelopes
    "AutoConversionMarkResponse", "BookingConversionResponse", "ConversionAnalytics", "ConversionPricingResponse",
    "ConversionsByType", "MatchingResponse", "PackageMatchingResponse",
    "PricingSensitivityResponse", "SelectOptionResponse", "StartConversionResponse",
    "TopPerformingMatch",
    # Request bodies
    "ConversionPricingRequest", "DynamicPricingRequest", "ExecuteBookingRequest",
    "ExecuteMatchingRequest", "MarkAutoConversionRequest", "PackageMatchingRequest", "PricingSensitivityRequest",
    "SelectOptionRequest", "StartConversionRequest",
]
