"""Availability tally: votes per candidate date and the best-supported dates."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Final, Literal

TallyStatus = Literal["no_options", "no_responses", "ready"]

NO_OPTIONS: Final[str] = "no_options"
NO_RESPONSES: Final[str] = "no_responses"
READY: Final[str] = "ready"


@dataclass(frozen=True)
class MatrixRow:
    participation_id: str | None
    participant_name: str
    comment: str | None
    selections: tuple[bool, ...]


@dataclass(frozen=True)
class AvailabilityTally:
    status: TallyStatus
    sorted_dates: list[str] = field(default_factory=list)
    vote_counts: dict[str, int] = field(default_factory=dict)
    max_votes: int = 0
    best_dates: list[str] = field(default_factory=list)
    rows: list[MatrixRow] = field(default_factory=list)

    @property
    def response_count(self) -> int:
        return len(self.rows)

    def is_best(self, day: str) -> bool:
        return self.max_votes > 0 and self.vote_counts.get(day) == self.max_votes


def _date_key(value: str) -> tuple[date, str]:
    # Unparseable strings sort last, by text.
    try:
        return date.fromisoformat(value), value
    except ValueError:
        return date.max, value


def sort_dates(date_options: Iterable[str]) -> list[str]:
    return sorted(date_options, key=_date_key)


def tally_availability(
    date_options: Iterable[str],
    participations: Sequence[Mapping[str, Any]],
) -> AvailabilityTally:
    """Count votes per date option and pick the winners.

    Every option starts at zero. Selected dates that are not options are
    ignored. The winning set holds every date with the top count, and is empty
    when nobody voted for anything.
    """
    sorted_dates = sort_dates(date_options or [])
    if not sorted_dates:
        return AvailabilityTally(status=NO_OPTIONS)

    vote_counts = {day: 0 for day in sorted_dates}
    rows = []
    for p in participations:
        chosen = set(p.get("selected_dates") or [])
        for day in chosen:
            if day in vote_counts:
                vote_counts[day] += 1
        rows.append(
            MatrixRow(
                participation_id=p.get("id"),
                participant_name=p.get("participant_name", ""),
                comment=p.get("comment") or None,
                selections=tuple(day in chosen for day in sorted_dates),
            )
        )

    max_votes = max(vote_counts.values(), default=0)
    best_dates = [day for day in sorted_dates if vote_counts[day] == max_votes] if max_votes > 0 else []
    return AvailabilityTally(
        status=READY if participations else NO_RESPONSES,
        sorted_dates=sorted_dates,
        vote_counts=vote_counts,
        max_votes=max_votes,
        best_dates=best_dates,
        rows=rows,
    )
