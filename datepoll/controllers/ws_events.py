import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from datepoll import state
from datepoll.bus import EventBus
from datepoll.config import get_settings
from datepoll.models.polls import TallyResponse
from datepoll.producers.participation_producer import compute_tally
from datepoll.store import EVENTS

logger = logging.getLogger("datepoll.ws.events")
router = APIRouter()

CLOSE_NOT_FOUND = 4404
CLOSE_UNAVAILABLE = 4503


async def _tally_message(event_id: str) -> str | None:
    event = await state.store.get(EVENTS, event_id)
    if not event:
        return None
    _, tally = await compute_tally(state.store, event)
    return json.dumps({
        "type": "tally",
        "event_id": event_id,
        "is_closed": bool(event.get("closed_at")),
        "tally": TallyResponse.from_tally(tally).model_dump(),
    })


@router.websocket("/ws/events/{event_id}")
async def websocket_event_tally(websocket: WebSocket, event_id: str):
    """Push the event's tally on connect and after every change to it."""
    await websocket.accept()
    if state.store is None or state.redis_client is None:
        await websocket.close(code=CLOSE_UNAVAILABLE)
        return

    initial = await _tally_message(event_id)
    if initial is None:
        await websocket.close(code=CLOSE_NOT_FOUND)
        return
    await websocket.send_text(initial)

    channel = EventBus.event_channel(event_id)
    pubsub = state.redis_client.pubsub()
    await pubsub.subscribe(channel)
    logger.info("ws subscribe event=%s", event_id)

    async def send_updates():
        async for message in pubsub.listen():
            if message["type"] != "message":
                continue
            payload = await _tally_message(event_id)
            if payload is not None:
                await websocket.send_text(payload)

    async def heartbeat():
        interval = get_settings().voting.heartbeat_sec
        while True:
            await asyncio.sleep(interval)
            await websocket.send_text(json.dumps({"type": "ping"}))

    update_task = asyncio.create_task(send_updates())
    heartbeat_task = asyncio.create_task(heartbeat())

    try:
        while True:
            # Clients only listen; reading detects the disconnect.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        update_task.cancel()
        heartbeat_task.cancel()
        await pubsub.unsubscribe(channel)
        if hasattr(pubsub, "aclose"):
            await pubsub.aclose()
        else:
            await pubsub.close()
        logger.info("ws unsubscribe event=%s", event_id)
