import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

import redis.asyncio as redis

from datepoll.bus import EventBus
from datepoll.config import get_settings
from datepoll.events import EventUpdatedEvent, ParticipationsChangedEvent
from datepoll.store import PARTICIPATIONS, DocumentStore, Where
from datepoll.tally import AvailabilityTally, tally_availability

logger = logging.getLogger("datepoll.producers")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_participations_changed(
    event_id: str, participation_id: str, action: Literal["created", "updated"]
) -> ParticipationsChangedEvent:
    return {
        "type": "participations_changed",
        "event_id": event_id,
        "participation_id": participation_id,
        "action": action,
        "timestamp": _now_iso(),
    }


def build_event_updated(event: dict[str, Any]) -> EventUpdatedEvent:
    return {
        "type": "event_updated",
        "event_id": event["id"],
        "closed": bool(event.get("closed_at")),
        "timestamp": _now_iso(),
    }


async def publish(event_bus: Optional[EventBus], event_id: str, message) -> None:
    if event_bus is None:
        return
    try:
        await event_bus.publish_event(event_id, message)
    except redis.RedisError as e:
        # The write already succeeded; live viewers catch up on next load.
        logger.warning("Failed to publish %s for event %s: %s", message["type"], event_id, e)


async def load_participations(store: DocumentStore, event_id: str) -> list[dict[str, Any]]:
    return await store.find(
        PARTICIPATIONS,
        Where(event=event_id),
        sort="created_at",
        limit=get_settings().voting.participations_limit,
    )


async def compute_tally(store: DocumentStore, event: dict[str, Any]) -> tuple[list[dict[str, Any]], AvailabilityTally]:
    participations = await load_participations(store, event["id"])
    return participations, tally_availability(event.get("date_options") or [], participations)
