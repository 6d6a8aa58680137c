"""Dependency injection for FastAPI endpoints.

Usage in controllers:
    from datepoll.dependencies import Store, CurrentUser

    @router.post("/things")
    async def create_thing(store: Store, user: CurrentUser):
        ...
"""

import json
import logging
from typing import Annotated

from fastapi import Depends, Header

from datepoll import state
from datepoll.access import User
from datepoll.bus import EventBus
from datepoll.errors import ServiceUnavailableError, UnauthorizedError
from datepoll.store import DocumentStore

logger = logging.getLogger("datepoll.auth")

SESSION_KEY_PREFIX = "session:"


def get_optional_event_bus() -> EventBus | None:
    """Get the EventBus if available, or None."""
    return state.event_bus


def get_store() -> DocumentStore:
    """Get the document store.

    Raises:
        ServiceUnavailableError: If the store is not initialized.
    """
    if state.store is None:
        raise ServiceUnavailableError(detail="Database not initialized")
    return state.store


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> User | None:
    """Resolve the bearer token against the session store, or None.

    Sessions are written by the auth service as JSON under ``session:<token>``.
    """
    token = _bearer_token(authorization)
    if token is None or state.redis_client is None:
        return None
    raw = await state.redis_client.get(f"{SESSION_KEY_PREFIX}{token}")
    if not raw:
        return None
    try:
        data = json.loads(raw)
        return User(id=str(data["id"]), email=data.get("email"), roles=tuple(data.get("roles") or ()))
    except (ValueError, KeyError, TypeError):
        logger.warning("Malformed session payload for token %s...", token[:6])
        return None


async def get_current_user(user: Annotated[User | None, Depends(get_optional_user)]) -> User:
    """Require a signed-in user.

    Raises:
        UnauthorizedError: If no valid session accompanies the request.
    """
    if user is None:
        raise UnauthorizedError()
    return user


OptionalBus = Annotated[EventBus | None, Depends(get_optional_event_bus)]
Store = Annotated[DocumentStore, Depends(get_store)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
CurrentUser = Annotated[User, Depends(get_current_user)]
