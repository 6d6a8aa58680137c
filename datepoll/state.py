from typing import Optional

import redis.asyncio as redis

from datepoll.bus import EventBus
from datepoll.store import DocumentStore

# Global runtime state initialized in lifespan
redis_client: Optional[redis.Redis] = None
event_bus: Optional[EventBus] = None
store: Optional[DocumentStore] = None
