# interfaces/booking_gateway.py
"""
Booking Gateway - Booking Creation
One routine per option type:
- existing_package -> PKG_ booking
- custom_package   -> CUSTOM_ booking
- modified_package -> MOD_ booking
Each returns a booking id and a CONF_ confirmation code.
"""

import secrets
import string
import time
from abc import ABC, abstractmethod
from datetime import datetime
from threading import Lock
from typing import Any, Dict, List

from loguru import logger
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from ..errors import UpstreamFailureError
from ..schemas import BookingConfirmation, ConversionSession, PaymentMethod

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


def generate_confirmation_code() -> str:
    return "CONF_" + "".join(secrets.choice(_CODE_ALPHABET) for _ in range(8))


class BookingGateway(ABC):
    """Abstract interface for turning a selected option into a booking"""

    @abstractmethod
    def create_package_booking(
        self, session: ConversionSession, payment_method: PaymentMethod
    ) -> BookingConfirmation:
        """Book an existing catalog package as-is"""
        pass

    @abstractmethod
    def create_custom_package_booking(
        self, session: ConversionSession, payment_method: PaymentMethod
    ) -> BookingConfirmation:
        """Materialize a custom package and book it"""
        pass

    @abstractmethod
    def create_modified_package_booking(
        self, session: ConversionSession, payment_method: PaymentMethod
    ) -> BookingConfirmation:
        """Book a catalog package with the agreed adjustments"""
        pass

    @staticmethod
    def _booking_record(
        booking: BookingConfirmation,
        session: ConversionSession,
        payment_method: PaymentMethod
    ) -> Dict[str, Any]:
        option = session.selected_option
        return {
            "booking_id": booking.booking_id,
            "confirmation_code": booking.confirmation_code,
            "session_id": session.id,
            "request_id": session.request_id,
            "admin_id": session.admin_id,
            "option_type": option.type.value if option else None,
            "package_id": option.package_id if option else None,
            "custom_package_id": option.custom_package_id if option else None,
            "final_price": option.final_price if option else None,
            "adjustments": option.adjustments if option else [],
            "payment_method": PaymentMethod(payment_method).value,
            "created_at": datetime.utcnow(),
        }


class MemoryBookingGateway(BookingGateway):
    """Keeps bookings in a list (local development and tests)"""

    def __init__(self):
        self.bookings: List[Dict[str, Any]] = []
        self._lock = Lock()

    def _create(self, prefix: str, session: ConversionSession, payment_method: PaymentMethod) -> BookingConfirmation:
        booking = BookingConfirmation(
            booking_id=generate_booking_id(prefix),
            confirmation_code=generate_confirmation_code(),
        )
        with self._lock:
            self.bookings.append(self._booking_record(booking, session, payment_method))

        logger.info(f"Booking {booking.booking_id} created for session {session.id}")
        return booking

    def create_package_booking(self, session, payment_method):
        return self._create("PKG", session, payment_method)

    def create_custom_package_booking(self, session, payment_method):
        return self._create("CUSTOM", session, payment_method)

    def create_modified_package_booking(self, session, payment_method):
        return self._create("MOD", session, payment_method)


class MongoBookingGateway(BookingGateway):
    """Writes bookings to the `package_bookings` collection"""

    def __init__(self, mongo_uri: str, db_name: str):
        self.mongo_client = MongoClient(mongo_uri)
        self.collection = self.mongo_client[db_name]["package_bookings"]
        logger.info(f"MongoBookingGateway connected to {db_name}")

    def _create(self, prefix: str, session: ConversionSession, payment_method: PaymentMethod) -> BookingConfirmation:
        booking = BookingConfirmation(
            booking_id=generate_booking_id(prefix),
            confirmation_code=generate_confirmation_code(),
        )
        record = self._booking_record(booking, session, payment_method)
        record["_id"] = booking.booking_id
        try:
            self.collection.insert_one(record)
        except PyMongoError as e:
            raise UpstreamFailureError(f"Falha ao registrar reserva: {e}")

        logger.info(f"Booking {booking.booking_id} stored for session {session.id}")
        return booking

    def create_package_booking(self, session, payment_method):
        return self._create("PKG", session, payment_method)

    def create_custom_package_booking(self, session, payment_method):
        return self._create("CUSTOM", session, payment_method)

    def create_modified_package_booking(self, session, payment_method):
        return self._create("MOD", session, payment_method)
