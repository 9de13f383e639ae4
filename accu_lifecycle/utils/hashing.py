import hashlib
import json


def sha256_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def stable_request_hash(payload: dict) -> str:
    # Decimals and datetimes from request models hash by their string form.
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return sha256_text(body)
