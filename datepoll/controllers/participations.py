import logging
from typing import Any, Optional

from fastapi import APIRouter, Query

from datepoll.access import require_create, require_update
from datepoll.config import get_settings
from datepoll.controllers.events import get_event_or_404
from datepoll.dependencies import OptionalBus, OptionalUser, Store
from datepoll.errors import BadRequestError, ConflictError, NotFoundError
from datepoll.models.polls import (
    ParticipationDocument,
    ParticipationListResponse,
    ParticipationRequest,
    ParticipationUpdateRequest,
)
from datepoll.producers.participation_producer import build_participations_changed, publish
from datepoll.store import PARTICIPATIONS, Where

logger = logging.getLogger("datepoll.participations")
router = APIRouter(prefix="/api/event-participations", tags=["participations"])


def _ensure_open(event: dict[str, Any]) -> None:
    if event.get("closed_at"):
        logger.warning("Vote rejected, event %s is closed", event["id"])
        raise ConflictError(
            detail="Voting is closed for this event",
            error_code="EVENT_CLOSED",
            event_id=event["id"],
        )


def _log_unknown_dates(event: dict[str, Any], selected: list[str]) -> None:
    unknown = set(selected) - set(event.get("date_options") or [])
    if unknown:
        logger.info("Participation for %s selects non-option dates %s; they will not be counted", event["id"], sorted(unknown))


@router.get("", response_model=ParticipationListResponse)
async def find_participations(
    store: Store,
    id: Optional[str] = None,
    event: Optional[str] = None,
    participant_name: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    sort: str = "created_at",
) -> ParticipationListResponse:
    clauses = {
        k: v
        for k, v in (("id", id), ("event", event), ("participant_name", participant_name))
        if v is not None
    }
    docs = await store.find(PARTICIPATIONS, Where(**clauses), limit=limit, sort=sort)
    return ParticipationListResponse(docs=docs)


@router.get("/{participation_id}", response_model=ParticipationDocument)
async def get_participation(participation_id: str, store: Store) -> ParticipationDocument:
    doc = await store.get(PARTICIPATIONS, participation_id)
    if not doc:
        raise NotFoundError(detail="Participation not found", resource_id=participation_id)
    return ParticipationDocument(**doc)


@router.post("", status_code=201, response_model=ParticipationDocument)
async def create_participation(
    req: ParticipationRequest,
    store: Store,
    user: OptionalUser,
    bus: OptionalBus,
) -> ParticipationDocument:
    logger.info(
        "POST /api/event-participations event=%s participant=%s dates=%d",
        req.event, req.participant_name, len(req.selected_dates),
    )
    require_create(PARTICIPATIONS, user)
    event = await get_event_or_404(store, req.event)
    _ensure_open(event)
    _log_unknown_dates(event, req.selected_dates)
    doc = await store.create(PARTICIPATIONS, req.model_dump())
    logger.info("Created participation id=%s for event %s", doc["id"], req.event)
    await publish(bus, req.event, build_participations_changed(req.event, doc["id"], "created"))
    return ParticipationDocument(**doc)


@router.patch("/{participation_id}", response_model=ParticipationDocument)
async def update_participation(
    participation_id: str,
    req: ParticipationUpdateRequest,
    store: Store,
    user: OptionalUser,
    bus: OptionalBus,
) -> ParticipationDocument:
    existing = await store.get(PARTICIPATIONS, participation_id)
    if not existing:
        raise NotFoundError(detail="Participation not found", resource_id=participation_id)
    require_update(
        PARTICIPATIONS,
        user,
        existing,
        participation_updates=get_settings().features.participation_updates,
    )
    event = await get_event_or_404(store, existing["event"])
    _ensure_open(event)

    changes = req.model_dump(include=req.model_fields_set)
    if changes.get("selected_dates", ...) is None:
        raise BadRequestError(detail="selected_dates cannot be null")
    if not changes:
        raise BadRequestError(detail="Nothing to update")
    if "selected_dates" in changes:
        _log_unknown_dates(event, changes["selected_dates"])
    doc = await store.update(PARTICIPATIONS, participation_id, changes)
    logger.info("Updated participation id=%s fields=%s", participation_id, sorted(changes))
    await publish(bus, event["id"], build_participations_changed(event["id"], participation_id, "updated"))
    return ParticipationDocument(**doc)
