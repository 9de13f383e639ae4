from datetime import timedelta

import pytest

from accu_lifecycle.core.errors import ConflictError
from accu_lifecycle.core.time import now_utc
from accu_lifecycle.models.entities import IdempotencyKey
from accu_lifecycle.services.idempotency import (
    cleanup_expired_keys,
    request_scope,
    resolve_cached_response,
    store_response,
)
from accu_lifecycle.utils.hashing import stable_request_hash


def test_request_hash_ignores_key_order():
    assert stable_request_hash({"a": 1, "b": 2}) == stable_request_hash({"b": 2, "a": 1})


def test_scope_separates_methods_on_same_path():
    assert request_scope("put", "/v1/applications/a1") != request_scope("DELETE", "/v1/applications/a1")


def test_replay_returns_stored_response(db_session):
    scope = request_scope("POST", "/v1/applications")
    assert resolve_cached_response(db_session, "k1", scope, {"units": "10"}) is None

    store_response(db_session, "k1", scope, {"units": "10"}, {"id": "app-1"})
    db_session.commit()

    assert resolve_cached_response(db_session, "k1", scope, {"units": "10"}) == {"id": "app-1"}
    with pytest.raises(ConflictError):
        resolve_cached_response(db_session, "k1", scope, {"units": "11"})


def test_same_key_in_another_scope_is_independent(db_session):
    store_response(db_session, "k2", request_scope("PUT", "/v1/applications/a1"), {}, {"id": "a1"})
    db_session.commit()

    assert resolve_cached_response(db_session, "k2", request_scope("DELETE", "/v1/applications/a1"), {}) is None


def test_duplicate_store_raises_conflict(db_session):
    scope = request_scope("POST", "/v1/applications")
    store_response(db_session, "k3", scope, {}, {"id": "a"})
    db_session.commit()

    with pytest.raises(ConflictError):
        store_response(db_session, "k3", scope, {}, {"id": "b"})


def test_cleanup_removes_only_expired_keys(db_session):
    db_session.add_all(
        [
            IdempotencyKey(key="old", endpoint="POST /x", request_hash="h", created_at=now_utc() - timedelta(hours=200)),
            IdempotencyKey(key="fresh", endpoint="POST /x", request_hash="h"),
        ]
    )
    db_session.commit()

    assert cleanup_expired_keys(db_session, ttl_hours=168) == 1
    db_session.commit()
    assert [row.key for row in db_session.query(IdempotencyKey).all()] == ["fresh"]
