"""
Event bus for the API, backed by Redis pub/sub.
"""
import json
from typing import Final, Union

import redis.asyncio as redis

from datepoll.events import EventUpdatedEvent, ParticipationsChangedEvent

CHANNEL_EVENT_PREFIX: Final[str] = "event:"


class EventBus:
    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    @staticmethod
    def event_channel(event_id: str) -> str:
        return f"{CHANNEL_EVENT_PREFIX}{event_id}"

    async def publish_event(
        self, event_id: str, message: Union[ParticipationsChangedEvent, EventUpdatedEvent]
    ) -> None:
        await self.redis_client.publish(self.event_channel(event_id), json.dumps(message))
