# interfaces/catalog.py
"""
Package Catalog - Request & Package Access
Defines the contract for reading package requests and catalog packages

Implementations:
- MemoryCatalog: JSON seed file, used for local development and tests
- MongoCatalog: MongoDB collections `package_requests` and `packages`
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from pymongo import MongoClient

from ..schemas import RequestStatus, TravelPackage, TripRequest


class PackageCatalog(ABC):
    """
    Abstract interface over the package request and package collections

    The engine only reads from the catalog, except for request status updates
    made by the conversion workflow.
    """

    # ============================================
    # Requests
    # ============================================

    @abstractmethod
    def get_package_request_details(self, request_id: str) -> Optional[TripRequest]:
        """
        Fetch one package request

        Returns:
            Optional[TripRequest]: None when the request does not exist
        """
        pass

    @abstractmethod
    def update_package_request_status(
        self,
        request_id: str,
        status: RequestStatus,
        admin_notes: Optional[str] = None
    ) -> None:
        """
        Change a request's status

        Raises:
            KeyError: unknown request
        """
        pass

    @abstractmethod
    def list_package_requests(
        self,
        status: Optional[RequestStatus] = None,
        limit: Optional[int] = None
    ) -> List[TripRequest]:
        """Requests, oldest first, optionally narrowed to one status"""
        pass

    @abstractmethod
    def count_recent_requests(self, since: datetime) -> int:
        """Number of requests created at or after `since`"""
        pass

    @abstractmethod
    def count_requests_by_email(self, email: str) -> int:
        """Number of requests sent from one customer email"""
        pass

    # ============================================
    # Packages
    # ============================================

    @abstractmethod
    def get_all_packages(self) -> List[TravelPackage]:
        """Every catalog package, in a stable order"""
        pass

    @abstractmethod
    def get_package_by_id(self, package_id: str) -> Optional[TravelPackage]:
        pass

    def health_check(self) -> bool:
        return True


class MemoryCatalog(PackageCatalog):
    """
    In-memory catalog

    Usage:
        catalog = MemoryCatalog.from_json("data/mock/catalog.json")
        catalog = MemoryCatalog(requests=[...], packages=[...])
    """

    def __init__(
        self,
        requests: Optional[Iterable[TripRequest]] = None,
        packages: Optional[Iterable[TravelPackage]] = None
    ):
        self._requests: Dict[str, TripRequest] = {r.id: r for r in requests or []}
        self._packages: Dict[str, TravelPackage] = {p.id: p for p in packages or []}
        self._lock = Lock()

        logger.info(
            f"MemoryCatalog initialized: {len(self._requests)} requests, "
            f"{len(self._packages)} packages"
        )

    @classmethod
    def from_json(cls, path: str) -> "MemoryCatalog":
        """
        Load a catalog seed file

        Expected shape: {"requests": [...], "packages": [...]}
        """
        seed_path = Path(path)
        if not seed_path.exists():
            logger.warning(f"Catalog seed not found at {seed_path}, starting empty")
            return cls()

        with open(seed_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return cls(
            requests=[TripRequest(**item) for item in data.get("requests", [])],
            packages=[TravelPackage(**item) for item in data.get("packages", [])],
        )

    def add_request(self, request: TripRequest) -> None:
        with self._lock:
            self._requests[request.id] = request

    def add_package(self, package: TravelPackage) -> None:
        with self._lock:
            self._packages[package.id] = package

    def get_package_request_details(self, request_id: str) -> Optional[TripRequest]:
        return self._requests.get(request_id)

    def update_package_request_status(
        self,
        request_id: str,
        status: RequestStatus,
        admin_notes: Optional[str] = None
    ) -> None:
        with self._lock:
            request = self._requests.get(request_id)
            if request is None:
                raise KeyError(request_id)

            update: Dict[str, Any] = {"status": status}
            if admin_notes is not None:
                update["admin_notes"] = admin_notes
            self._requests[request_id] = request.model_copy(update=update)

        logger.info(f"Request {request_id} -> {RequestStatus(status).value}")

    def list_package_requests(
        self,
        status: Optional[RequestStatus] = None,
        limit: Optional[int] = None
    ) -> List[TripRequest]:
        with self._lock:
            requests = [r for r in self._requests.values() if status is None or r.status == status]
        requests.sort(key=lambda r: r.created_at)
        return requests[:limit] if limit is not None else requests

    def count_recent_requests(self, since: datetime) -> int:
        return sum(1 for r in self._requests.values() if r.created_at >= since)

    def count_requests_by_email(self, email: str) -> int:
        return sum(1 for r in self._requests.values() if r.customer_email == email)

    def get_all_packages(self) -> List[TravelPackage]:
        return list(self._packages.values())

    def get_package_by_id(self, package_id: str) -> Optional[TravelPackage]:
        return self._packages.get(package_id)


class MongoCatalog(PackageCatalog):
    """MongoDB-backed catalog (documents keyed by string `_id`)"""

    def __init__(self, mongo_uri: str, db_name: str):
        self.mongo_client = MongoClient(mongo_uri)
        self.mongo_db = self.mongo_client[db_name]
        self.requests = self.mongo_db["package_requests"]
        self.packages = self.mongo_db["packages"]
        logger.info(f"MongoCatalog connected to {db_name}")

    @staticmethod
    def _to_fields(doc: Dict[str, Any]) -> Dict[str, Any]:
        fields = dict(doc)
        fields["id"] = str(fields.pop("_id"))
        return fields

    def get_package_request_details(self, request_id: str) -> Optional[TripRequest]:
        doc = self.requests.find_one({"_id": request_id})
        return TripRequest(**self._to_fields(doc)) if doc else None

    def update_package_request_status(
        self,
        request_id: str,
        status: RequestStatus,
        admin_notes: Optional[str] = None
    ) -> None:
        update: Dict[str, Any] = {"status": RequestStatus(status).value}
        if admin_notes is not None:
            update["admin_notes"] = admin_notes

        result = self.requests.update_one({"_id": request_id}, {"$set": update})
        if result.matched_count == 0:
            raise KeyError(request_id)

        logger.info(f"Request {request_id} -> {update['status']}")

    def list_package_requests(
        self,
        status: Optional[RequestStatus] = None,
        limit: Optional[int] = None
    ) -> List[TripRequest]:
        query = {"status": RequestStatus(status).value} if status is not None else {}
        cursor = self.requests.find(query).sort("created_at", 1)
        if limit is not None:
            cursor = cursor.limit(limit)
        return [TripRequest(**self._to_fields(doc)) for doc in cursor]

    def count_recent_requests(self, since: datetime) -> int:
        return self.requests.count_documents({"created_at": {"$gte": since}})

    def count_requests_by_email(self, email: str) -> int:
        return self.requests.count_documents({"customer_email": email})

    def get_all_packages(self) -> List[TravelPackage]:
        return [TravelPackage(**self._to_fields(doc)) for doc in self.packages.find().sort("_id", 1)]

    def get_package_by_id(self, package_id: str) -> Optional[TravelPackage]:
        doc = self.packages.find_one({"_id": package_id})
        return TravelPackage(**self._to_fields(doc)) if doc else None

    def health_check(self) -> bool:
        try:
            self.mongo_client.admin.command("ping")
            return True
        except Exception as e:
            logger.error(f"Mongo health check failed: {e}")
            return False
