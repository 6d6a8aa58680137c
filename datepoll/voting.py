"""Participant-side voting form state.

A ``VotingSession`` owns what a voter has typed and ticked for one event. The
name field feeds a ``ParticipationResolver``; a match switches the session to
edit mode and loads the stored answer, no match switches it back to create
mode. ``submit`` validates locally before touching the store.
"""

import logging
from typing import Any

from datepoll.resolver import ParticipationResolver, normalize_name
from datepoll.store import PARTICIPATIONS, DocumentStore, StoreError
from datepoll.tally import sort_dates

logger = logging.getLogger("datepoll.voting")

ERR_CLOSED = "Voting is closed for this event."
ERR_NAME_REQUIRED = "Please enter your name"
ERR_DATES_REQUIRED = "Please select at least one date"
ERR_SUBMIT_FAILED = "Failed to submit vote"


class VotingSession:
    def __init__(
        self,
        store: DocumentStore,
        event: dict[str, Any],
        *,
        delay: float | None = None,
        min_lookup_chars: int | None = None,
    ) -> None:
        self.store = store
        self.event = event
        self.date_options: list[str] = sort_dates(event.get("date_options") or [])
        self.name = ""
        self.comment = ""
        self.selected_dates: list[str] = []
        self.existing_participation_id: str | None = None
        self.error: str | None = None
        self.success = False
        self.loading = False
        self.resolver = ParticipationResolver(
            store,
            event["id"],
            self._apply_resolution,
            delay=delay,
            min_chars=min_lookup_chars,
        )

    @property
    def is_closed(self) -> bool:
        return bool(self.event.get("closed_at"))

    @property
    def is_edit_mode(self) -> bool:
        return self.existing_participation_id is not None

    def set_name(self, name: str) -> None:
        self.name = name
        self.resolver.schedule(name)

    def set_comment(self, comment: str) -> None:
        self.comment = comment

    def toggle_date(self, day: str) -> None:
        if day in self.selected_dates:
            self.selected_dates = [d for d in self.selected_dates if d != day]
        else:
            self.selected_dates = [*self.selected_dates, day]

    def select_all(self) -> None:
        """Select every option, or clear the selection if all are selected."""
        if len(self.selected_dates) == len(self.date_options):
            self.selected_dates = []
        else:
            self.selected_dates = list(self.date_options)

    def _apply_resolution(self, match: dict[str, Any] | None) -> None:
        if match is None:
            if self.is_edit_mode:
                logger.debug("Leaving edit mode for event=%s", self.event["id"])
            self.existing_participation_id = None
            self.selected_dates = []
            self.comment = ""
            return
        logger.debug("Editing participation %s for event=%s", match.get("id"), self.event["id"])
        self.existing_participation_id = match["id"]
        self.selected_dates = list(match.get("selected_dates") or [])
        self.comment = match.get("comment") or ""

    def _validate(self) -> str | None:
        if self.is_closed:
            return ERR_CLOSED
        if not normalize_name(self.name):
            return ERR_NAME_REQUIRED
        if not self.selected_dates:
            return ERR_DATES_REQUIRED
        return None

    def payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "event": self.event["id"],
            "participant_name": normalize_name(self.name),
            "selected_dates": list(self.selected_dates),
        }
        comment = self.comment.strip()
        if comment:
            data["comment"] = comment
        return data

    async def submit(self) -> dict[str, Any] | None:
        """Create or update the participation; returns the stored document."""
        self.error = None
        self.success = False
        problem = self._validate()
        if problem:
            self.error = problem
            return None

        self.loading = True
        try:
            if self.is_edit_mode:
                data = self.payload()
                data.pop("event")
                data.pop("participant_name")
                data.setdefault("comment", None)
                doc = await self.store.update(PARTICIPATIONS, self.existing_participation_id, data)
            else:
                doc = await self.store.create(PARTICIPATIONS, self.payload())
        except StoreError as e:
            logger.warning("Vote submission failed for event=%s: %s", self.event["id"], e)
            self.error = e.message or ERR_SUBMIT_FAILED
            return None
        finally:
            self.loading = False

        self.resolver.cancel()
        self.success = True
        self.name = ""
        self.comment = ""
        self.selected_dates = []
        self.existing_participation_id = None
        return doc
