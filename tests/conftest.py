"""
Shared fixtures: in-memory catalog, session store and booking gateway wired
into the real services, with a fixed clock.
"""

from datetime import datetime

import pytest

from tripmatch.interfaces import ConversionSessionStore, MemoryBookingGateway, MemoryCatalog
from tripmatch.schemas import Caller, Role, TravelPackage, TripRequest
from tripmatch.services import ConversionService, MatchingService, PricingService

NOW = datetime(2026, 10, 19, 12, 0, 0)


def make_request(**overrides) -> TripRequest:
    fields = dict(
        id="req_1",
        destination="Noronha",
        budget=2000,
        duration=4,
        group_size=2,
        activities=["mergulho"],
        customer_email="ana@example.com",
        created_at=NOW,
    )
    fields.update(overrides)
    return TripRequest(**fields)


def make_package(**overrides) -> TravelPackage:
    fields = dict(
        id="pkg_match",
        name="Pacote Fernando de Noronha Completo",
        category="Fernando de Noronha Completo",
        base_price=2000,
        duration=4,
        max_guests=4,
        description="mergulho e trilhas",
    )
    fields.update(overrides)
    return TravelPackage(**fields)


def praia_package(**overrides) -> TravelPackage:
    fields = dict(
        id="pkg_praia",
        name="Praia Paradise",
        category="Praia",
        base_price=5000,
        duration=10,
        max_guests=1,
        description="",
    )
    fields.update(overrides)
    return TravelPackage(**fields)


@pytest.fixture
def noronha_request() -> TripRequest:
    return make_request()


@pytest.fixture
def noronha_package() -> TravelPackage:
    return make_package()


@pytest.fixture
def catalog() -> MemoryCatalog:
    return MemoryCatalog(
        requests=[
            make_request(),
            make_request(
                id="req_amazonia",
                destination="Manaus",
                budget=900,
                duration=12,
                group_size=12,
                activities=["pesca esportiva"],
                customer_email="joao@example.com",
            ),
        ],
        packages=[
            make_package(),
            praia_package(),
            make_package(
                id="pkg_recife",
                name="Recife Cultural",
                category="Recife",
                base_price=1800,
                duration=3,
                max_guests=6,
                description="city tour e gastronomia",
            ),
        ],
    )


@pytest.fixture
def session_store() -> ConversionSessionStore:
    return ConversionSessionStore(ttl_hours=24)


@pytest.fixture
def booking_gateway() -> MemoryBookingGateway:
    return MemoryBookingGateway()


@pytest.fixture
def matching_service(catalog) -> MatchingService:
    return MatchingService(catalog)


@pytest.fixture
def pricing_service(catalog) -> PricingService:
    return PricingService(catalog, clock=lambda: NOW)


@pytest.fixture
def conversion_service(catalog, session_store, matching_service, pricing_service, booking_gateway) -> ConversionService:
    return ConversionService(
        catalog,
        session_store,
        matching_service,
        pricing_service,
        booking_gateway,
        clock=lambda: NOW,
    )


@pytest.fixture
def admin() -> Caller:
    return Caller(user_id="admin_1", role=Role.PARTNER)


@pytest.fixture
def master() -> Caller:
    return Caller(user_id="master_1", role=Role.MASTER)


@pytest.fixture
def traveler() -> Caller:
    return Caller(user_id="traveler_1", role=Role.TRAVELER)
