"""Participation lookup by (event, participant name).

``resolve_participation`` is the one-shot query used by the API.
``ParticipationResolver`` wraps it with a debounce so that a name field can
call ``schedule`` on every keystroke while only the last value within the
quiescence window reaches the store. The window and the minimum name length
default to ``VOTING_DEBOUNCE_SEC`` and ``VOTING_MIN_LOOKUP_CHARS``.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Final

from datepoll.config import get_settings
from datepoll.store import PARTICIPATIONS, DocumentStore, StoreError, Where

logger = logging.getLogger("datepoll.resolver")

MIN_LOOKUP_CHARS: Final[int] = 2


def normalize_name(name: str | None) -> str:
    return (name or "").strip()


async def resolve_participation(
    store: DocumentStore,
    event_id: str,
    name: str | None,
    *,
    min_chars: int = MIN_LOOKUP_CHARS,
) -> dict[str, Any] | None:
    """Return the earliest participation for ``event_id`` under this exact name.

    Names shorter than ``min_chars`` after trimming are never looked up.
    """
    trimmed = normalize_name(name)
    if len(trimmed) < min_chars:
        return None
    docs = await store.find(
        PARTICIPATIONS,
        Where(event=event_id, participant_name=trimmed),
        limit=1,
        sort="created_at",
    )
    return docs[0] if docs else None


class ParticipationResolver:
    """Debounced name lookup driving edit-vs-create mode.

    Each ``schedule`` call cancels the pending timer and starts a new one, so
    at most one lookup fires per quiet period. ``on_resolved`` receives the
    matching participation or ``None``. Lookup failures are logged and
    reported as ``None``. A result for a name that has since been replaced by
    a newer ``schedule`` call is dropped.
    """

    def __init__(
        self,
        store: DocumentStore,
        event_id: str,
        on_resolved: Callable[[dict[str, Any] | None], None],
        *,
        delay: float | None = None,
        min_chars: int | None = None,
    ) -> None:
        voting = get_settings().voting
        self.store = store
        self.event_id = event_id
        self.delay = voting.debounce_sec if delay is None else delay
        self.min_chars = voting.min_lookup_chars if min_chars is None else min_chars
        self._on_resolved = on_resolved
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._latest: str | None = None
        self.lookups = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self, name: str | None) -> None:
        self._latest = normalize_name(name)
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire, self._latest)

    def cancel(self) -> None:
        """Drop the pending timer; an in-flight lookup's result is discarded."""
        self._latest = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait_idle(self) -> None:
        """Wait for the in-flight lookup, if any, to deliver its result."""
        task = self._task
        if task is not None and not task.done():
            await task

    def _fire(self, name: str) -> None:
        self._timer = None
        if len(name) < self.min_chars:
            self._on_resolved(None)
            return
        self._task = asyncio.create_task(self._lookup(name))

    async def _lookup(self, name: str) -> None:
        self.lookups += 1
        try:
            match = await resolve_participation(
                self.store, self.event_id, name, min_chars=self.min_chars
            )
        except StoreError as e:
            logger.warning("Participation lookup failed event=%s name=%r: %s", self.event_id, name, e)
            match = None
        if name != self._latest:
            logger.debug("Dropping stale lookup for %r (current %r)", name, self._latest)
            return
        self._on_resolved(match)
