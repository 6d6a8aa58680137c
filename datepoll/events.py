from typing import Literal, TypedDict


class ParticipationsChangedEvent(TypedDict):
    type: Literal["participations_changed"]
    event_id: str
    participation_id: str
    action: Literal["created", "updated"]
    timestamp: str


class EventUpdatedEvent(TypedDict):
    type: Literal["event_updated"]
    event_id: str
    closed: bool
    timestamp: str
