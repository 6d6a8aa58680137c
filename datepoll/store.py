"""Document store boundary shared by the database and HTTP implementations.

A store holds two collections, ``events`` and ``event_participations``, and
exposes find/get/create/update. Filters are conjunctions of equality clauses
on indexed fields.
"""

from typing import Any, Final, Protocol

EVENTS: Final[str] = "events"
PARTICIPATIONS: Final[str] = "event_participations"

# Fields each collection may be filtered and sorted on.
INDEXED_FIELDS: Final[dict[str, frozenset[str]]] = {
    EVENTS: frozenset({"id", "slug", "creator"}),
    PARTICIPATIONS: frozenset({"id", "event", "participant_name"}),
}
SORTABLE_FIELDS: Final[frozenset[str]] = frozenset({"created_at", "updated_at"})

# Fields a create/update payload may carry.
WRITABLE_FIELDS: Final[dict[str, frozenset[str]]] = {
    EVENTS: frozenset({"name", "description", "slug", "date_options", "creator", "closed_at"}),
    PARTICIPATIONS: frozenset({"event", "participant_name", "selected_dates", "comment"}),
}


class StoreError(Exception):
    """A store operation failed (transport, validation or policy)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class Where:
    """Conjunction of equality clauses: ``Where(event="e1", participant_name="Ana")``."""

    def __init__(self, **equals: Any) -> None:
        self.clauses: dict[str, Any] = dict(equals)

    def matches(self, doc: dict[str, Any]) -> bool:
        return all(doc.get(k) == v for k, v in self.clauses.items())

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Where) and other.clauses == self.clauses

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self.clauses.items())
        return f"Where({inner})"


class DocumentStore(Protocol):
    async def find(
        self,
        collection: str,
        where: Where | None = None,
        *,
        limit: int | None = None,
        sort: str | None = None,
    ) -> list[dict[str, Any]]: ...

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> dict[str, Any]: ...


def check_collection(collection: str) -> None:
    if collection not in INDEXED_FIELDS:
        raise StoreError(f"Unknown collection: {collection}", status_code=400)


def check_where(collection: str, where: Where | None) -> None:
    check_collection(collection)
    if where is None:
        return
    unknown = set(where.clauses) - INDEXED_FIELDS[collection]
    if unknown:
        raise StoreError(f"Cannot filter {collection} on: {', '.join(sorted(unknown))}", status_code=400)


def parse_sort(sort: str | None) -> tuple[str, bool] | None:
    """Split ``"-created_at"`` into ``("created_at", True)``; ``None`` passes through."""
    if not sort:
        return None
    descending = sort.startswith("-")
    field = sort.lstrip("-")
    if field not in SORTABLE_FIELDS:
        raise StoreError(f"Cannot sort on: {field}", status_code=400)
    return field, descending


def check_writable(collection: str, data: dict[str, Any]) -> None:
    check_collection(collection)
    unknown = set(data) - WRITABLE_FIELDS[collection]
    if unknown:
        raise StoreError(f"Cannot write {collection} fields: {', '.join(sorted(unknown))}", status_code=400)
