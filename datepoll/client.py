"""HTTP document store: the store boundary spoken over the datepoll API.

Used by voting sessions that run outside the API process:

    async with HttpDocumentStore("https://polls.example.com") as store:
        session = VotingSession(store, event)
"""

import logging
from typing import Any

import httpx

from datepoll.store import EVENTS, PARTICIPATIONS, StoreError, Where, check_collection, check_where

logger = logging.getLogger("datepoll.client")

COLLECTION_PATHS: dict[str, str] = {
    EVENTS: "/api/events",
    PARTICIPATIONS: "/api/event-participations",
}


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("detail"):
        detail = body["detail"]
        # FastAPI validation errors carry a list of problems
        if isinstance(detail, list) and detail:
            return str(detail[0].get("msg", detail[0]))
        return str(detail)
    return f"HTTP {response.status_code}"


class HttpDocumentStore:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)
        if client is not None and headers:
            self._client.headers.update(headers)

    async def __aenter__(self) -> "HttpDocumentStore":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise StoreError(f"Could not reach server: {e}") from e
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_error:
            raise StoreError(_error_detail(response), status_code=response.status_code)

    def _decode(self, response: httpx.Response, key: str | None = None) -> Any:
        self._raise_for_status(response)
        try:
            body = response.json()
            return body[key] if key else body
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Unexpected response from %s: %s", response.request.url.path, e)
            raise StoreError("Unexpected response from server", status_code=response.status_code) from e

    async def find(
        self,
        collection: str,
        where: Where | None = None,
        *,
        limit: int | None = None,
        sort: str | None = None,
    ) -> list[dict[str, Any]]:
        check_where(collection, where)
        params: dict[str, Any] = dict(where.clauses) if where else {}
        if limit is not None:
            params["limit"] = limit
        if sort:
            params["sort"] = sort
        response = await self._request("GET", COLLECTION_PATHS[collection], params=params)
        return self._decode(response, "docs")

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        check_collection(collection)
        response = await self._request("GET", f"{COLLECTION_PATHS[collection]}/{doc_id}")
        if response.status_code == 404:
            return None
        return self._decode(response)

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        check_collection(collection)
        response = await self._request("POST", COLLECTION_PATHS[collection], json=data)
        return self._decode(response)

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
        check_collection(collection)
        response = await self._request("PATCH", f"{COLLECTION_PATHS[collection]}/{doc_id}", json=data)
        return self._decode(response)
