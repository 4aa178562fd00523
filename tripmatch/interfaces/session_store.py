# interfaces/session_store.py
"""
Conversion Session Persistence
One session per package request, shared by every admin working on it

Concurrency:
- create() is atomic per request: a second start returns the existing session
- save() is optimistic: it only succeeds if the stored revision still equals
  the revision the caller loaded, then bumps it
"""

import uuid
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, List, Optional, Tuple

import redis
from loguru import logger

from ..errors import NotFoundError, SessionConflictError
from ..schemas import ConversionSession


class ConversionSessionStore:
    """
    Stores conversion sessions in Redis, or in memory when no client is given

    Usage:
        store = ConversionSessionStore(redis.Redis.from_url(url), ttl_hours=720)
        session, created = store.create(ConversionSession(...))
        session = store.save(session.model_copy(update={"status": ...}))
    """

    SESSION_PREFIX = "conversion:session:"
    REQUEST_PREFIX = "conversion:request:"

    def __init__(self, redis_client: Optional[redis.Redis] = None, ttl_hours: int = 720):
        self.redis_client = redis_client
        self.ttl_seconds = ttl_hours * 3600
        self._memory_store: Dict[str, Tuple[str, datetime]] = {}
        self._request_index: Dict[str, str] = {}
        self._lock = Lock()

        backend = "Redis" if redis_client is not None else "memory"
        logger.info(f"ConversionSessionStore using {backend} backend (ttl {ttl_hours}h)")

    @staticmethod
    def new_session_id() -> str:
        return f"conv_{uuid.uuid4().hex[:12]}"

    def _session_key(self, session_id: str) -> str:
        return f"{self.SESSION_PREFIX}{session_id}"

    def _request_key(self, request_id: str) -> str:
        return f"{self.REQUEST_PREFIX}{request_id}"

    # ============================================
    # Create
    # ============================================

    def create(self, session: ConversionSession) -> Tuple[ConversionSession, bool]:
        """
        Persist a new session unless the request already has one

        Returns:
            (session, created): the stored session and whether it is new
        """
        if self.redis_client is not None:
            return self._create_redis(session)

        with self._lock:
            existing_id = self._request_index.get(session.request_id)
            if existing_id:
                existing = self._load_memory(existing_id)
                if existing is not None:
                    return existing, False

            self._write_memory(session)
            self._request_index[session.request_id] = session.id

        logger.info(f"Created conversion session {session.id} for request {session.request_id}")
        return session, True

    def _create_redis(self, session: ConversionSession) -> Tuple[ConversionSession, bool]:
        session_key = self._session_key(session.id)
        self.redis_client.setex(session_key, self.ttl_seconds, session.model_dump_json())

        claimed = self.redis_client.set(
            self._request_key(session.request_id), session.id, nx=True, ex=self.ttl_seconds
        )
        if claimed:
            logger.info(f"Created conversion session {session.id} for request {session.request_id}")
            return session, True

        # Lost the race: drop our copy and hand back the winner's session
        self.redis_client.delete(session_key)
        existing = self.find_by_request(session.request_id)
        if existing is None:
            raise SessionConflictError("Sessão de conversão sendo criada por outro administrador")
        return existing, False

    # ============================================
    # Read
    # ============================================

    def load(self, session_id: str) -> Optional[ConversionSession]:
        if self.redis_client is not None:
            raw = self.redis_client.get(self._session_key(session_id))
            return ConversionSession.model_validate_json(raw) if raw else None

        with self._lock:
            return self._load_memory(session_id)

    def find_by_request(self, request_id: str) -> Optional[ConversionSession]:
        if self.redis_client is not None:
            session_id = self.redis_client.get(self._request_key(request_id))
            if not session_id:
                return None
            if isinstance(session_id, bytes):
                session_id = session_id.decode()
            return self.load(session_id)

        with self._lock:
            session_id = self._request_index.get(request_id)
            return self._load_memory(session_id) if session_id else None

    def list_sessions(self) -> List[ConversionSession]:
        if self.redis_client is not None:
            keys = list(self.redis_client.scan_iter(match=f"{self.SESSION_PREFIX}*"))
            if not keys:
                return []
            return [
                ConversionSession.model_validate_json(raw)
                for raw in self.redis_client.mget(keys)
                if raw
            ]

        with self._lock:
            sessions = [self._load_memory(session_id) for session_id in list(self._memory_store)]
        return [session for session in sessions if session is not None]

    # ============================================
    # Save
    # ============================================

    def save(self, session: ConversionSession) -> ConversionSession:
        """
        Write a session loaded at `session.revision`

        Returns:
            ConversionSession: the stored copy, with revision bumped

        Raises:
            NotFoundError: session expired or never existed
            SessionConflictError: someone saved since this copy was loaded
        """
        updated = session.model_copy(update={
            "revision": session.revision + 1,
            "updated_at": datetime.utcnow(),
        })

        if self.redis_client is not None:
            self._save_redis(session.revision, updated)
        else:
            with self._lock:
                stored = self._load_memory(session.id)
                if stored is None:
                    raise NotFoundError("Sessão de conversão não encontrada")
                if stored.revision != session.revision:
                    raise SessionConflictError(
                        "Sessão alterada por outro administrador - recarregue e tente novamente"
                    )
                self._write_memory(updated)

        logger.debug(f"Saved session {updated.id} rev {updated.revision} ({updated.status.value})")
        return updated

    def _save_redis(self, expected_revision: int, updated: ConversionSession) -> None:
        key = self._session_key(updated.id)
        with self.redis_client.pipeline() as pipe:
            try:
                pipe.watch(key)
                raw = pipe.get(key)
                if raw is None:
                    raise NotFoundError("Sessão de conversão não encontrada")
                if ConversionSession.model_validate_json(raw).revision != expected_revision:
                    raise SessionConflictError(
                        "Sessão alterada por outro administrador - recarregue e tente novamente"
                    )
                pipe.multi()
                pipe.setex(key, self.ttl_seconds, updated.model_dump_json())
                # The request index must outlive the session it points to
                pipe.expire(self._request_key(updated.request_id), self.ttl_seconds)
                pipe.execute()
            except redis.WatchError:
                raise SessionConflictError(
                    "Sessão alterada por outro administrador - recarregue e tente novamente"
                )

    # ============================================
    # Memory backend
    # ============================================

    def _write_memory(self, session: ConversionSession) -> None:
        expires_at = datetime.utcnow() + timedelta(seconds=self.ttl_seconds)
        self._memory_store[session.id] = (session.model_dump_json(), expires_at)

    def _load_memory(self, session_id: str) -> Optional[ConversionSession]:
        entry = self._memory_store.get(session_id)
        if entry is None:
            return None

        raw, expires_at = entry
        if expires_at <= datetime.utcnow():
            self._expire_memory(session_id)
            return None

        return ConversionSession.model_validate_json(raw)

    def _expire_memory(self, session_id: str) -> None:
        raw, _ = self._memory_store.pop(session_id)
        request_id = ConversionSession.model_validate_json(raw).request_id
        if self._request_index.get(request_id) == session_id:
            del self._request_index[request_id]
        logger.info(f"Conversion session {session_id} expired")

    def health_check(self) -> bool:
        if self.redis_client is None:
            return True
        try:
            return bool(self.redis_client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False


def build_session_store(settings) -> ConversionSessionStore:
    """
    Build the store selected by SESSION_BACKEND

    Falls back to memory when Redis is configured but unreachable.
    """
    if settings.SESSION_BACKEND == "redis":
        try:
            client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
            client.ping()
            logger.info(f"Session store connected to Redis at {settings.redis_url}")
            return ConversionSessionStore(client, ttl_hours=settings.SESSION_TTL_HOURS)
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed, using in-memory session store: {e}")

    return ConversionSessionStore(ttl_hours=settings.SESSION_TTL_HOURS)
