import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Query

from datepoll.access import User, require_create, require_update
from datepoll.config import get_settings
from datepoll.dependencies import CurrentUser, OptionalBus, OptionalUser, Store
from datepoll.errors import BadRequestError, DatabaseError, NotFoundError
from datepoll.models.polls import (
    CreateEventRequest,
    EventDocument,
    EventListResponse,
    EventPageResponse,
    LookupResponse,
    ParticipationDocument,
    TallyResponse,
    UpdateEventRequest,
)
from datepoll.producers.participation_producer import build_event_updated, compute_tally, publish
from datepoll.resolver import resolve_participation
from datepoll.store import EVENTS, DocumentStore, StoreError, Where

logger = logging.getLogger("datepoll.events")
router = APIRouter(prefix="/api/events", tags=["events"])

SLUG_ALPHABET = string.ascii_letters + string.digits + "_-"
SLUG_ATTEMPTS = 10


def _generate_slug(length: int) -> str:
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))


def _to_document(event: dict[str, Any], user: Optional[User] = None) -> EventDocument:
    doc = EventDocument(**event)
    if user is not None and event.get("creator") == user.id:
        doc.share_url = get_settings().voting.share_url(event["slug"])
    return doc


async def get_event_or_404(store: DocumentStore, event_id: str) -> dict[str, Any]:
    event = await store.get(EVENTS, event_id)
    if not event:
        logger.warning("Event not found: %s", event_id)
        raise NotFoundError(detail="Event not found", resource_type="event", resource_id=event_id)
    return event


@router.post("", status_code=201, response_model=EventDocument)
async def create_event(req: CreateEventRequest, store: Store, user: CurrentUser) -> EventDocument:
    logger.info("POST /api/events name=%s dates=%d creator=%s", req.name, len(req.date_options), user.id)
    require_create(EVENTS, user)
    slug_length = get_settings().voting.slug_length
    for _ in range(SLUG_ATTEMPTS):
        try:
            event = await store.create(
                EVENTS,
                {
                    "name": req.name,
                    "description": req.description,
                    "slug": _generate_slug(slug_length),
                    "date_options": req.date_options,
                    "creator": user.id,
                },
            )
        except StoreError as e:
            if e.status_code == 409:
                logger.info("Slug collision, retrying")
                continue
            raise
        logger.info("Created event id=%s slug=%s", event["id"], event["slug"])
        return _to_document(event, user)
    raise DatabaseError(detail="Failed to generate unique event slug")


@router.get("", response_model=EventListResponse)
async def find_events(
    store: Store,
    user: OptionalUser,
    id: Optional[str] = None,
    slug: Optional[str] = None,
    creator: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    sort: str = "-created_at",
) -> EventListResponse:
    clauses = {
        k: v for k, v in (("id", id), ("slug", slug), ("creator", creator)) if v is not None
    }
    events = await store.find(EVENTS, Where(**clauses), limit=limit, sort=sort)
    return EventListResponse(docs=[_to_document(e, user) for e in events])


@router.get("/mine", response_model=EventListResponse)
async def list_my_events(store: Store, user: CurrentUser) -> EventListResponse:
    events = await store.find(EVENTS, Where(creator=user.id), sort="-created_at")
    logger.info("GET /api/events/mine user=%s count=%d", user.id, len(events))
    return EventListResponse(docs=[_to_document(e, user) for e in events])


@router.get("/by-slug/{slug}", response_model=EventPageResponse)
async def get_event_page(slug: str, store: Store, user: OptionalUser) -> EventPageResponse:
    """Everything the voting page shows: event, responses and the tally."""
    events = await store.find(EVENTS, Where(slug=slug), limit=1)
    if not events:
        logger.warning("Event slug not found: %s", slug)
        raise NotFoundError(detail="Event not found", resource_type="event", slug=slug)
    event = events[0]
    participations, tally = await compute_tally(store, event)
    logger.info("GET /api/events/by-slug/%s responses=%d best=%s", slug, tally.response_count, tally.best_dates)
    return EventPageResponse(
        event=_to_document(event, user),
        participations=[ParticipationDocument(**p) for p in participations],
        tally=TallyResponse.from_tally(tally),
        is_creator=user is not None and event["creator"] == user.id,
        is_closed=bool(event.get("closed_at")),
    )


@router.get("/{event_id}", response_model=EventDocument)
async def get_event(event_id: str, store: Store, user: OptionalUser) -> EventDocument:
    return _to_document(await get_event_or_404(store, event_id), user)


@router.patch("/{event_id}", response_model=EventDocument)
async def update_event(
    event_id: str,
    req: UpdateEventRequest,
    store: Store,
    user: CurrentUser,
    bus: OptionalBus,
) -> EventDocument:
    event = await get_event_or_404(store, event_id)
    require_update(EVENTS, user, event)
    changes: dict[str, Any] = {}
    if req.name is not None:
        changes["name"] = req.name
    if "description" in req.model_fields_set:
        changes["description"] = req.description
    if req.closed is not None:
        changes["closed_at"] = _closed_at(event, req.closed)
    if not changes:
        raise BadRequestError(detail="Nothing to update")
    updated = await store.update(EVENTS, event_id, changes)
    logger.info("Updated event %s fields=%s", event_id, sorted(changes))
    if "closed_at" in changes:
        await publish(bus, event_id, build_event_updated(updated))
    return _to_document(updated, user)


def _closed_at(event: dict[str, Any], closed: bool) -> Optional[str]:
    if not closed:
        return None
    # Closing twice keeps the first timestamp.
    return event.get("closed_at") or datetime.now(timezone.utc).isoformat()


@router.post("/{event_id}/close", response_model=EventDocument)
async def close_event(event_id: str, store: Store, user: CurrentUser, bus: OptionalBus) -> EventDocument:
    return await update_event(event_id, UpdateEventRequest(closed=True), store, user, bus)


@router.post("/{event_id}/reopen", response_model=EventDocument)
async def reopen_event(event_id: str, store: Store, user: CurrentUser, bus: OptionalBus) -> EventDocument:
    return await update_event(event_id, UpdateEventRequest(closed=False), store, user, bus)


@router.get("/{event_id}/tally", response_model=TallyResponse)
async def get_tally(event_id: str, store: Store) -> TallyResponse:
    event = await get_event_or_404(store, event_id)
    _, tally = await compute_tally(store, event)
    return TallyResponse.from_tally(tally)


@router.get("/{event_id}/participations/lookup", response_model=LookupResponse)
async def lookup_participation(event_id: str, store: Store, name: str = "") -> LookupResponse:
    await get_event_or_404(store, event_id)
    match = await resolve_participation(
        store, event_id, name, min_chars=get_settings().voting.min_lookup_chars
    )
    logger.info("Lookup event=%s name=%r found=%s", event_id, name.strip(), match is not None)
    return LookupResponse(participation=ParticipationDocument(**match) if match else None)
