# tripmatch/__init__.py
"""
Package Request Matching & Conversion Service

Turns free-form customer trip requests into bookings:
- Similarity scoring of a request against the package catalog
- Five matching algorithms (including a hybrid ensemble)
- Adjustment suggestions and conversion probability
- Dynamic pricing for conversion options
- Session-based conversion workflow (analysis -> booking)
"""

__version__ = "1.0.0"

# Package structure:
# tripmatch/
# ├── __init__.py           <- This file
# ├── main.py               <- FastAPI application entry
# ├── config.py             <- Configuration settings
# ├── errors.py             <- Error taxonomy
# │
# ├── algorithms/           <- Pure scoring code
# │   ├── similarity_scorer.py  <- Per-factor compatibility
# │   ├── weighting.py          <- Factor weight strategies
# │   ├── adjustment_advisor.py <- Suggestions + conversion probability
# │   ├── matching.py           <- The five matching algorithms
# │   ├── request_analysis.py   <- Pre-matching request analysis
# │   └── pricing_engine.py     <- Dynamic pricing strategies
# │
# ├── services/             <- Orchestration
# │   ├── authorization.py      <- Role checks
# │   ├── matching_service.py   <- executeMatching
# │   ├── pricing_service.py    <- Pricing with market data
# │   └── conversion_service.py <- Conversion workflow state machine
# │
# ├── interfaces/           <- External collaborators
# │   ├── catalog.py            <- Package requests + packages
# │   ├── session_store.py      <- Conversion session persistence
# │   └── booking_gateway.py    <- Booking creation
# │
# ├── schemas/              <- Pydantic Models
# │   └── conversion_schemas.py
# │
# └── api/                  <- FastAPI Routers
#     ├── deps.py
#     ├── matching.py       <- /api/packages/requests/{id}/matches
#     ├── pricing.py        <- /api/packages/requests/{id}/pricing
#     └── conversions.py    <- /api/packages/conversions
