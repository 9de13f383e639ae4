import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accu_lifecycle.core.errors import ConflictError
from accu_lifecycle.core.time import now_utc
from accu_lifecycle.models.entities import IdempotencyKey
from accu_lifecycle.utils.hashing import stable_request_hash

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


def request_scope(method: str, path: str) -> str:
    """Keys are unique per method and path, so DELETE and PUT on one application never share a slot."""
    return f"{method.upper()} {path}"


def resolve_cached_response(db: Session, key: str, scope: str, payload: dict) -> dict | None:
    existing = (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.key == key, IdempotencyKey.endpoint == scope)
        .one_or_none()
    )
    if existing is None:
        return None
    if existing.request_hash != stable_request_hash(payload):
        raise ConflictError(
            "Idempotency key reused with different payload",
            details={"key": key, "endpoint": scope},
        )
    logger.info("Replaying stored response key=%s scope=%s", key, scope)
    return existing.response_json


def store_response(db: Session, key: str, scope: str, payload: dict, response_json: dict) -> None:
    db.add(
        IdempotencyKey(
            key=key,
            endpoint=scope,
            request_hash=stable_request_hash(payload),
            response_json=response_json,
        )
    )
    try:
        db.flush()
    except IntegrityError as exc:
        # A concurrent request with the same key committed first.
        db.rollback()
        raise ConflictError(
            "Idempotency key is already in use by a concurrent request",
            details={"key": key, "endpoint": scope},
        ) from exc


def cleanup_expired_keys(db: Session, ttl_hours: int) -> int:
    cutoff = now_utc() - timedelta(hours=ttl_hours)
    return (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.created_at < cutoff)
        .delete(synchronize_session=False)
    )
