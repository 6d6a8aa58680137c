"""Who may do what to events and participations.

Events are public to read, created by signed-in users and changed only by
their creator. Participations are public to read and create; updating them is
a deployment switch and deleting them is never allowed.
"""

from dataclasses import dataclass, field
from typing import Any

from datepoll.errors import ForbiddenError, UnauthorizedError
from datepoll.store import EVENTS, PARTICIPATIONS


@dataclass(frozen=True)
class User:
    id: str
    email: str | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)


def can_create(collection: str, user: User | None) -> bool:
    if collection == EVENTS:
        return user is not None
    return collection == PARTICIPATIONS


def can_update(
    collection: str,
    user: User | None,
    doc: dict[str, Any],
    *,
    participation_updates: bool = False,
) -> bool:
    if collection == EVENTS:
        return user is not None and doc.get("creator") == user.id
    if collection == PARTICIPATIONS:
        return participation_updates
    return False


def require_create(collection: str, user: User | None) -> None:
    if not can_create(collection, user):
        raise UnauthorizedError(detail=f"Sign in to create {collection}")


def require_update(
    collection: str,
    user: User | None,
    doc: dict[str, Any],
    *,
    participation_updates: bool = False,
) -> None:
    if can_update(collection, user, doc, participation_updates=participation_updates):
        return
    if collection == EVENTS and user is None:
        raise UnauthorizedError()
    raise ForbiddenError(
        detail=f"Not allowed to update this {collection} document",
        resource_type=collection,
        resource_id=doc.get("id"),
    )
