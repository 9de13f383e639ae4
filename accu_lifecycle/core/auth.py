from fastapi import HTTPException, Request

from accu_lifecycle.core.config import get_settings


AUTH_HEADER = "X-API-Key"
ACTOR_HEADER = "X-Actor-Id"
SYSTEM_ACTOR = "system"


def enforce_api_auth(request: Request) -> None:
    settings = get_settings()
    if not settings.api_auth_enabled:
        return

    token = request.headers.get(AUTH_HEADER)
    if not token or token != settings.api_auth_token:
        raise HTTPException(status_code=401, detail="Unauthorized")


def resolve_actor(request: Request) -> str:
    return request.headers.get(ACTOR_HEADER) or SYSTEM_ACTOR
