# interfaces/__init__.py
"""
Interfaces Package

Contains the service's external collaborators:
- catalog: Package requests and catalog packages
- session_store: Conversion session persistence
- booking_gateway: Booking creation
"""

from .catalog import PackageCatalog, MemoryCatalog, MongoCatalog
from .session_store import ConversionSessionStore, build_session_store
from .booking_gateway import BookingGateway, MemoryBookingGateway, MongoBookingGateway

__all__ = [
    "PackageCatalog",
    "MemoryCatalog",
    "MongoCatalog",
    "ConversionSessionStore",
    "build_session_store",
    "BookingGateway",
    "MemoryBookingGateway",
    "MongoBookingGateway",
]
