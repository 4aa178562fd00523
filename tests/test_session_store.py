"""
Tests for the conversion session store (memory backend, plus the Redis
backend over a small in-process stand-in for the client)
"""

import pytest

from tripmatch.errors import NotFoundError, SessionConflictError
from tripmatch.interfaces import ConversionSessionStore
from tripmatch.schemas import ConversionSession, ConversionStatus


class FakeRedis:
    """Just enough of redis.Redis for the session store: values plus TTLs"""

    def __init__(self):
        self.values = {}
        self.ttls = {}

    def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl
        return True

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.values:
            return None
        self.values[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    def get(self, key):
        return self.values.get(key)

    def delete(self, key):
        self.values.pop(key, None)
        self.ttls.pop(key, None)

    def expire(self, key, ttl):
        if key not in self.values:
            return False
        self.ttls[key] = ttl
        return True

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """WATCH/MULTI pipeline: reads run immediately, writes wait for execute()"""

    def __init__(self, client):
        self.client = client
        self.queued = []

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def watch(self, key):
        pass

    def get(self, key):
        return self.client.get(key)

    def multi(self):
        self.queued = []

    def setex(self, *args):
        self.queued.append(("setex", args))

    def expire(self, *args):
        self.queued.append(("expire", args))

    def execute(self):
        return [getattr(self.client, name)(*args) for name, args in self.queued]


def _session(store, request_id="req_1", admin_id="admin_1"):
    return ConversionSession(id=store.new_session_id(), request_id=request_id, admin_id=admin_id)


def test_session_ids_are_prefixed(session_store):
    session_id = session_store.new_session_id()
    assert session_id.startswith("conv_")
    assert len(session_id) == len("conv_") + 12


def test_create_and_load(session_store):
    session, created = session_store.create(_session(session_store))

    assert created
    assert session_store.load(session.id) == session
    assert session_store.find_by_request("req_1") == session


def test_second_create_returns_existing_session(session_store):
    first, _ = session_store.create(_session(session_store))
    second, created = session_store.create(_session(session_store, admin_id="admin_2"))

    assert not created
    assert second.id == first.id
    assert second.admin_id == "admin_1"
    assert len(session_store.list_sessions()) == 1


def test_save_bumps_revision(session_store):
    session, _ = session_store.create(_session(session_store))
    saved = session_store.save(session.model_copy(update={"status": ConversionStatus.ANALYSIS_COMPLETE}))

    assert saved.revision == 1
    assert session_store.load(session.id).status == ConversionStatus.ANALYSIS_COMPLETE


def test_stale_save_conflicts(session_store):
    session, _ = session_store.create(_session(session_store))
    session_store.save(session.model_copy(update={"status": ConversionStatus.ANALYSIS_COMPLETE}))

    with pytest.raises(SessionConflictError):
        session_store.save(session.model_copy(update={"status": ConversionStatus.MATCHING_IN_PROGRESS}))

    assert session_store.load(session.id).status == ConversionStatus.ANALYSIS_COMPLETE


def test_save_unknown_session(session_store):
    with pytest.raises(NotFoundError):
        session_store.save(_session(session_store))


def test_missing_lookups_return_none(session_store):
    assert session_store.load("conv_missing") is None
    assert session_store.find_by_request("req_missing") is None


def test_sessions_expire():
    store = ConversionSessionStore(ttl_hours=0)
    session, _ = store.create(_session(store))

    assert store.load(session.id) is None
    assert store.find_by_request("req_1") is None
    # The request can be converted again once its session expired
    _, created = store.create(_session(store))
    assert created


def test_memory_store_is_healthy(session_store):
    assert session_store.health_check()


class TestRedisBackend:

    def test_create_claims_request_index(self):
        client = FakeRedis()
        store = ConversionSessionStore(client, ttl_hours=1)
        session, created = store.create(_session(store))

        assert created
        assert client.values["conversion:request:req_1"] == session.id
        assert client.ttls["conversion:request:req_1"] == 3600

        _, created_again = store.create(_session(store, admin_id="admin_2"))
        assert not created_again

    def test_save_refreshes_request_index_ttl(self):
        client = FakeRedis()
        store = ConversionSessionStore(client, ttl_hours=1)
        session, _ = store.create(_session(store))

        # Index key close to expiring while the session is still being worked on
        client.ttls["conversion:request:req_1"] = 5
        store.save(session.model_copy(update={"status": ConversionStatus.ANALYSIS_COMPLETE}))

        assert client.ttls["conversion:request:req_1"] == 3600
        assert client.ttls[f"conversion:session:{session.id}"] == 3600
        assert store.find_by_request("req_1").status == ConversionStatus.ANALYSIS_COMPLETE

    def test_stale_save_conflicts(self):
        client = FakeRedis()
        store = ConversionSessionStore(client, ttl_hours=1)
        session, _ = store.create(_session(store))
        store.save(session.model_copy(update={"status": ConversionStatus.ANALYSIS_COMPLETE}))

        with pytest.raises(SessionConflictError):
            store.save(session.model_copy(update={"status": ConversionStatus.MATCHING_IN_PROGRESS}))

        assert store.load(session.id).revision == 1
