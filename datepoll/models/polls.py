import re
from datetime import date
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator

from datepoll.tally import AvailabilityTally

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _check_dates(v: List[str]) -> List[str]:
    for d in v:
        if not DATE_RE.match(d):
            raise ValueError(f"invalid date format: {d}")
        try:
            date.fromisoformat(d)
        except ValueError:
            raise ValueError(f"invalid date: {d}") from None
    if len(set(v)) != len(v):
        raise ValueError("dates must be distinct")
    return v


def _check_name(v: str) -> str:
    v = v.strip()
    if not v or len(v) > 200:
        raise ValueError("name must be 1-200 characters")
    return v


def _check_selected_dates(v: List[str]) -> List[str]:
    if not v:
        raise ValueError("select at least one date")
    return _check_dates(v)


def _clean_optional_text(v: Optional[str], max_len: int, field: str) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if len(v) > max_len:
        raise ValueError(f"{field} must be at most {max_len} characters")
    return v or None


class CreateEventRequest(BaseModel):
    name: str
    description: Optional[str] = None
    date_options: List[str]

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional_text(v, 2000, "description")

    @field_validator("date_options")
    @classmethod
    def validate_date_options(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("date_options must not be empty")
        return sorted(_check_dates(v))


class UpdateEventRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    closed: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return _check_name(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional_text(v, 2000, "description")


class ParticipationRequest(BaseModel):
    event: str
    participant_name: str
    selected_dates: List[str]
    comment: Optional[str] = None

    @field_validator("participant_name")
    @classmethod
    def validate_participant_name(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 100:
            raise ValueError("participant_name must be 1-100 characters")
        return v

    @field_validator("selected_dates")
    @classmethod
    def validate_selected_dates(cls, v: List[str]) -> List[str]:
        return _check_selected_dates(v)

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional_text(v, 500, "comment")


class ParticipationUpdateRequest(BaseModel):
    selected_dates: Optional[List[str]] = None
    comment: Optional[str] = None

    @field_validator("selected_dates")
    @classmethod
    def validate_selected_dates(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        return _check_selected_dates(v)

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional_text(v, 500, "comment")


class EventDocument(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    slug: str
    date_options: List[str]
    creator: str
    closed_at: Optional[str] = None
    created_at: str
    updated_at: str
    share_url: Optional[str] = None


class ParticipationDocument(BaseModel):
    id: str
    event: str
    participant_name: str
    selected_dates: List[str]
    comment: Optional[str] = None
    created_at: str
    updated_at: str


class EventListResponse(BaseModel):
    docs: List[EventDocument]


class ParticipationListResponse(BaseModel):
    docs: List[ParticipationDocument]


class LookupResponse(BaseModel):
    participation: Optional[ParticipationDocument] = None


class MatrixRow(BaseModel):
    participation_id: Optional[str] = None
    participant_name: str
    comment: Optional[str] = None
    selections: List[bool]


class TallyResponse(BaseModel):
    status: str
    sorted_dates: List[str]
    vote_counts: dict[str, int]
    max_votes: int
    best_dates: List[str]
    rows: List[MatrixRow] = Field(default_factory=list)
    response_count: int

    @classmethod
    def from_tally(cls, tally: AvailabilityTally) -> "TallyResponse":
        return cls(
            status=tally.status,
            sorted_dates=tally.sorted_dates,
            vote_counts=tally.vote_counts,
            max_votes=tally.max_votes,
            best_dates=tally.best_dates,
            rows=[
                MatrixRow(
                    participation_id=r.participation_id,
                    participant_name=r.participant_name,
                    comment=r.comment,
                    selections=list(r.selections),
                )
                for r in tally.rows
            ],
            response_count=tally.response_count,
        )


class EventPageResponse(BaseModel):
    event: EventDocument
    participations: List[ParticipationDocument]
    tally: TallyResponse
    is_creator: bool
    is_closed: bool
