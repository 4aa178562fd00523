# schemas/conversion_schemas.py
"""
Pydantic v2 schemas for the matching, pricing and conversion service
Covers catalog inputs, match results, pricing results and conversion sessions
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================
# Enums
# ============================================

class BudgetFlexibility(str, Enum):
    RIGID = "rigid"
    FLEXIBLE = "flexible"
    VERY_FLEXIBLE = "very_flexible"


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ConfidenceLevel(str, Enum):
    HIGH = "high"      # 80+
    MEDIUM = "medium"  # 60-79
    LOW = "low"        # 40-59


class AdjustmentType(str, Enum):
    PRICE_ADJUSTMENT = "price_adjustment"
    DATE_CHANGE = "date_change"
    GROUP_SIZE_ADJUSTMENT = "group_size_adjustment"
    ACTIVITY_MODIFICATION = "activity_modification"
    ACCOMMODATION_UPGRADE = "accommodation_upgrade"
    DURATION_EXTENSION = "duration_extension"


class MatchingAlgorithm(str, Enum):
    SIMILARITY_SCORE = "similarity_score"
    ML_CLUSTERING = "ml_clustering"
    PREFERENCE_WEIGHTED = "preference_weighted"
    BUDGET_OPTIMIZED = "budget_optimized"
    HYBRID = "hybrid"


class ConversionType(str, Enum):
    AUTOMATIC = "automatic"
    ASSISTED = "assisted"
    MANUAL = "manual"


class ConversionStatus(str, Enum):
    ANALYSIS_PENDING = "analysis_pending"
    ANALYSIS_COMPLETE = "analysis_complete"
    MATCHING_IN_PROGRESS = "matching_in_progress"
    MATCHES_FOUND = "matches_found"
    CUSTOM_PACKAGE_REQUIRED = "custom_package_required"
    PRICING_CALCULATED = "pricing_calculated"
    READY_FOR_CONVERSION = "ready_for_conversion"
    CUSTOMER_APPROVAL_PENDING = "customer_approval_pending"
    CUSTOMER_APPROVED = "customer_approved"
    CUSTOMER_REJECTED = "customer_rejected"
    CONVERSION_IN_PROGRESS = "conversion_in_progress"
    CONVERSION_COMPLETE = "conversion_complete"
    CONVERSION_FAILED = "conversion_failed"


class OptionType(str, Enum):
    EXISTING_PACKAGE = "existing_package"
    CUSTOM_PACKAGE = "custom_package"
    MODIFIED_PACKAGE = "modified_package"


class PaymentMethod(str, Enum):
    CARD = "card"
    PIX = "pix"
    TRANSFER = "transfer"
    CASH = "cash"


class PricingStrategy(str, Enum):
    COST_PLUS = "cost_plus"
    VALUE_BASED = "value_based"
    COMPETITIVE = "competitive"
    DYNAMIC = "dynamic"
    SEASONAL = "seasonal"
    DEMAND_BASED = "demand_based"


class Seasonality(str, Enum):
    PEAK = "peak"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    OFF_PEAK = "off_peak"


class Demand(str, Enum):
    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


class Competition(str, Enum):
    INTENSE = "intense"
    MODERATE = "moderate"
    LIGHT = "light"
    MINIMAL = "minimal"


class BookingTrend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    PARTIALLY_AVAILABLE = "partially_available"
    UNAVAILABLE = "unavailable"
    NEEDS_CHECK = "needs_check"


class AutoConversionRecommendation(str, Enum):
    HIGH_CONFIDENCE = "high_confidence"      # Can auto-convert
    MEDIUM_CONFIDENCE = "medium_confidence"  # Needs admin review
    LOW_CONFIDENCE = "low_confidence"        # Requires custom package
    NOT_RECOMMENDED = "not_recommended"


class Role(str, Enum):
    MASTER = "master"
    PARTNER = "partner"
    EMPLOYEE = "employee"
    TRAVELER = "traveler"


class TimeRange(str, Enum):
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"


# ============================================
# Catalog Inputs (read-only to the engine)
# ============================================

class TripRequest(BaseModel):
    """Customer's free-form package request"""
    id: str
    destination: str = Field(..., min_length=1)
    budget: float = Field(..., gt=0)
    duration: int = Field(..., gt=0)  # days
    group_size: int = Field(1, ge=1)
    budget_flexibility: BudgetFlexibility = BudgetFlexibility.FLEXIBLE
    flexible_dates: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    activities: List[str] = Field(default_factory=list)
    accommodation_types: List[str] = Field(default_factory=list)
    transportation: List[str] = Field(default_factory=list)
    customer_email: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    admin_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("destination")
    @classmethod
    def destination_not_blank(cls, value: str) -> str:
        # A blank destination would be contained in every category
        value = value.strip()
        if not value:
            raise ValueError("destination must not be blank")
        return value


class TravelPackage(BaseModel):
    """Existing catalog package"""
    id: str
    name: str
    category: str = Field(..., min_length=1)  # coarse destination proxy
    base_price: float = Field(..., gt=0)
    duration: int = Field(..., ge=1)
    max_guests: int = Field(..., ge=1)
    description: str = ""
    highlights: List[str] = Field(default_factory=list)
    is_featured: bool = False
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    accommodation_id: Optional[str] = None

    @field_validator("category")
    @classmethod
    def category_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("category must not be blank")
        return value


class Caller(BaseModel):
    """Identity resolved by the upstream gateway"""
    user_id: str
    role: Role


# ============================================
# Match Results
# ============================================

class MatchFactors(BaseModel):
    """Six independent compatibility sub-scores (0-100)"""
    model_config = ConfigDict(frozen=True)

    destination_match: float = Field(..., ge=0, le=100)
    budget_match: float = Field(..., ge=0, le=100)
    duration_match: float = Field(..., ge=0, le=100)
    activity_match: float = Field(..., ge=0, le=100)
    group_size_match: float = Field(..., ge=0, le=100)
    date_availability: float = Field(..., ge=0, le=100)


class AdjustmentSuggestion(BaseModel):
    """Concrete package change that would raise the match"""
    model_config = ConfigDict(frozen=True)

    type: AdjustmentType
    description: str
    impact: int  # expected score improvement
    cost: float  # additional cost, negative for price cuts


class PackageMatchResult(BaseModel):
    """One package scored against one request"""
    model_config = ConfigDict(frozen=True)

    package_id: str
    match_score: int = Field(..., ge=0, le=100)
    confidence_level: ConfidenceLevel
    match_factors: MatchFactors
    adjustment_suggestions: List[AdjustmentSuggestion] = Field(default_factory=list)
    conversion_probability: int = Field(..., ge=0, le=100)


class PerformanceMetrics(BaseModel):
    processing_time_ms: float
    matches_found: int
    average_match_score: float
    high_confidence_matches: int


class MatchingSessionResult(BaseModel):
    """Output of one executeMatching run"""
    model_config = ConfigDict(frozen=True)

    request_id: str
    algorithm: MatchingAlgorithm
    execution_time: float  # ms
    total_packages_analyzed: int
    matches: List[PackageMatchResult]
    performance_metrics: PerformanceMetrics
    recommendations: List[str]


# ============================================
# Request Analysis
# ============================================

class PackageMatchAnalysis(BaseModel):
    package_id: str
    package_name: str
    match_score: int = Field(..., ge=0, le=100)
    match_reasons: List[str] = Field(default_factory=list)
    price_difference: float  # package price minus budget
    availability_status: AvailabilityStatus
    suggested_modifications: List[str] = Field(default_factory=list)


class RequestAnalysisResult(BaseModel):
    request_id: str
    analysis_date: datetime
    overall_score: int = Field(..., ge=0, le=100)
    top_matches: List[PackageMatchAnalysis]
    auto_conversion_recommendation: AutoConversionRecommendation
    analysis_notes: List[str]


class ConversionCandidate(BaseModel):
    """Pending request that looks ready for automatic conversion"""
    request_id: str
    customer_email: Optional[str] = None
    destination: str
    budget: float
    analysis_score: int = Field(..., ge=0, le=100)
    top_match_name: Optional[str] = None
    recommendation_type: AutoConversionRecommendation
    created_at: datetime


# ============================================
# Pricing
# ============================================

class PackageComponent(BaseModel):
    """Priced building block of a package"""
    type: str
    base_price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)


class MarketConditions(BaseModel):
    seasonality: Seasonality
    demand: Demand
    competition: Competition = Competition.MODERATE
    inventory_level: float = Field(75, ge=0, le=100)
    booking_trend: BookingTrend = BookingTrend.STABLE


class PricingFactors(BaseModel):
    base_cost: float
    seasonal_multiplier: float = 1.0      # 0.8 - 1.8
    demand_multiplier: float = 1.0        # 0.85 - 1.3
    competitive_adjustment: float = 0.0
    value_perception_score: float = 70    # 0-100
    urgency_factor: float = 1.0           # 0.95 - 1.2
    group_size_discount: float = 0.0      # 0% - 15%
    loyalty_discount: float = 0.0         # 0% - 5%
    partner_margin: float = 0.20
    platform_fee: float = 0.06


class PriceRange(BaseModel):
    minimum: float
    maximum: float
    optimal: float


class PriceBreakdown(BaseModel):
    component_costs: float
    taxes: float
    fees: float
    margin: float
    discounts: float
    total: float


class PricingAlternative(BaseModel):
    price: float
    strategy: PricingStrategy
    description: str
    confidence: int


class PricingResult(BaseModel):
    original_price: float
    adjusted_price: float
    recommended_price: float
    price_range: PriceRange
    factors: PricingFactors
    breakdown: PriceBreakdown
    strategy: PricingStrategy
    confidence: int = Field(..., ge=0, le=100)
    reasoning: List[str]
    alternatives: List[PricingAlternative]
    market_conditions: MarketConditions


class PricePointAnalysis(BaseModel):
    price: float
    conversion_probability: int
    expected_revenue: float
    competitive_position: str


class PricingSensitivityResult(BaseModel):
    analysis: List[PricePointAnalysis]
    optimal_price: float
    price_elasticity: float


# ============================================
# Conversion Workflow
# ============================================

class PriceRangeFilter(BaseModel):
    min: float = Field(0, ge=0)
    max: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "PriceRangeFilter":
        if self.min > self.max:
            raise ValueError("price_range.min must not exceed price_range.max")
        return self


class MatchingFilters(BaseModel):
    min_score: int = Field(40, ge=0, le=100)
    max_results: int = Field(10, ge=1)
    price_range: Optional[PriceRangeFilter] = None


class ConversionOption(BaseModel):
    """Option being priced"""
    type: OptionType
    package_id: Optional[str] = None
    custom_components: Optional[List[PackageComponent]] = None
    modifications: Optional[List[str]] = None


class SelectedOption(BaseModel):
    """Option the admin settled on"""
    type: OptionType
    package_id: Optional[str] = None
    custom_package_id: Optional[str] = None
    final_price: float = Field(..., ge=0)
    adjustments: List[str] = Field(default_factory=list)
    admin_notes: Optional[str] = None


class TimelineEvent(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    event: str
    description: str
    user_id: Optional[str] = None


class ConversionSession(BaseModel):
    """Persisted state of one request's conversion"""
    id: str
    request_id: str
    admin_id: str
    conversion_type: ConversionType = ConversionType.ASSISTED
    status: ConversionStatus = ConversionStatus.ANALYSIS_PENDING
    analysis_result: Optional[RequestAnalysisResult] = None
    matching_result: Optional[MatchingSessionResult] = None
    pricing_result: Optional[PricingResult] = None
    custom_package_id: Optional[str] = None
    selected_option: Optional[SelectedOption] = None
    booking_id: Optional[str] = None
    confirmation_code: Optional[str] = None
    timeline: List[TimelineEvent] = Field(default_factory=list)

    # Optimistic concurrency: bumped by the store on every save
    revision: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class BookingConfirmation(BaseModel):
    booking_id: str
    confirmation_code: str


# ============================================
# Response Envelopes
# ============================================

class MatchingResponse(BaseModel):
    success: bool
    message: str
    result: Optional[MatchingSessionResult] = None


class StartConversionResponse(BaseModel):
    success: bool
    session_id: Optional[str] = None
    status: ConversionStatus = ConversionStatus.ANALYSIS_PENDING
    next_steps: List[str] = Field(default_factory=list)
    estimated_completion_time: Optional[str] = None
    message: str


class PackageMatchingResponse(BaseModel):
    success: bool
    matches: Optional[List[PackageMatchResult]] = None
    metrics: Optional[PerformanceMetrics] = None
    message: str


class ConversionPricingResponse(BaseModel):
    success: bool
    pricing: Optional[PricingResult] = None
    message: str


class SelectOptionResponse(BaseModel):
    success: bool
    next_step: Optional[str] = None
    message: str


class BookingConversionResponse(BaseModel):
    success: bool
    booking_id: Optional[str] = None
    confirmation_code: Optional[str] = None
    message: str


class ConversionsByType(BaseModel):
    existing_package: int = 0
    custom_package: int = 0
    modified_package: int = 0


class TopPerformingMatch(BaseModel):
    package_id: str
    package_name: str
    conversions: int
    conversion_rate: float


class ConversionAnalytics(BaseModel):
    total_conversions: int
    conversion_rate: float  # percent of sessions that reached conversion_complete
    average_conversion_time: float  # hours
    revenue_generated: float
    conversions_by_type: ConversionsByType
    top_performing_matches: List[TopPerformingMatch]
    sessions_by_status: Dict[str, int] = Field(default_factory=dict)


class PricingSensitivityResponse(BaseModel):
    success: bool
    sensitivity: Optional[PricingSensitivityResult] = None
    message: str


class AutoConversionMarkResponse(BaseModel):
    success: bool
    message: str
    conversion_id: Optional[str] = None


# ============================================
# API Request Bodies
# ============================================

class ExecuteMatchingRequest(BaseModel):
    # Unset fields fall back to the configured matching defaults
    algorithm: Optional[MatchingAlgorithm] = None
    max_results: Optional[int] = Field(None, ge=1)
    min_score: Optional[int] = Field(None, ge=0, le=100)


class DynamicPricingRequest(BaseModel):
    components: Optional[List[PackageComponent]] = None
    strategy: PricingStrategy = PricingStrategy.DYNAMIC
    target_margin: Optional[float] = Field(None, ge=0, le=1)


class PricingSensitivityRequest(BaseModel):
    price_points: List[float] = Field(..., min_length=1)


class StartConversionRequest(BaseModel):
    request_id: str
    conversion_type: ConversionType = ConversionType.ASSISTED


class PackageMatchingRequest(BaseModel):
    algorithm: MatchingAlgorithm = MatchingAlgorithm.HYBRID
    filters: MatchingFilters = Field(default_factory=MatchingFilters)


class ConversionPricingRequest(BaseModel):
    option: ConversionOption
    pricing_strategy: PricingStrategy = PricingStrategy.DYNAMIC


class SelectOptionRequest(BaseModel):
    selected_option: SelectedOption


class ExecuteBookingRequest(BaseModel):
    customer_approval: bool
    payment_method: PaymentMethod = PaymentMethod.CARD


class MarkAutoConversionRequest(BaseModel):
    request_id: str
    selected_package_id: str
    conversion_notes: Optional[str] = None
