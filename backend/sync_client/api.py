"""
Async REST client for the People Web server.

Thin wrapper over httpx: one resource helper per collection, JSON in and out,
HTTP failures mapped onto the sync error taxonomy. Timeouts and transport
errors become PersistenceError; the engine decides whether that is fatal.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel

from models import FeatureRequest, Link, Person

from .errors import NotFoundError, PersistenceError

logger = logging.getLogger("people_web")

RecordT = TypeVar("RecordT", bound=BaseModel)


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if isinstance(detail, str) and detail:
            return detail
    return f"HTTP {resp.status_code}"


class RestClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self.people: ResourceApi[Person] = ResourceApi(self, "/api/people", Person)
        self.links: ResourceApi[Link] = ResourceApi(self, "/api/links", Link)
        self.feature_requests: ResourceApi[FeatureRequest] = ResourceApi(
            self, "/api/feature-requests", FeatureRequest
        )

    async def request(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send one request and return the decoded JSON body (None for 204).

        Raises:
            NotFoundError: 404
            PersistenceError: any other HTTP error, timeout or transport failure
        """
        try:
            resp = await self._client.request(method, path, json=json_body)
        except httpx.TimeoutException as e:
            raise PersistenceError(f"{method} {path} timed out") from e
        except httpx.RequestError as e:
            raise PersistenceError(f"{method} {path} failed: {e}") from e

        if resp.status_code == 404:
            raise NotFoundError(_error_detail(resp))
        if resp.status_code >= 400:
            raise PersistenceError(_error_detail(resp), status_code=resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    async def fetch_all_data(self) -> Tuple[List[Person], List[Link]]:
        """Fetch people and links concurrently."""
        people, links = await asyncio.gather(self.people.get_all(), self.links.get_all())
        return people, links

    async def aclose(self) -> None:
        await self._client.aclose()


class ResourceApi(Generic[RecordT]):
    """CRUD helper for one collection."""

    def __init__(self, client: RestClient, path: str, model: Type[RecordT]) -> None:
        self._client = client
        self._path = path
        self._model = model

    async def get_all(self) -> List[RecordT]:
        data = await self._client.request("GET", self._path)
        return [self._model.model_validate(item) for item in data or []]

    async def get_by_id(self, record_id: str) -> RecordT:
        data = await self._client.request("GET", f"{self._path}/{record_id}")
        return self._model.model_validate(data)

    async def create(self, record: RecordT) -> Optional[RecordT]:
        data = await self._client.request("POST", self._path, _full_body(record))
        return self._model.model_validate(data) if data else None

    async def update(self, record_id: str, record: RecordT) -> Optional[RecordT]:
        data = await self._client.request("PUT", f"{self._path}/{record_id}", _full_body(record))
        return self._model.model_validate(data) if data else None

    async def delete(self, record_id: str) -> None:
        await self._client.request("DELETE", f"{self._path}/{record_id}")


def _full_body(record: BaseModel) -> Dict[str, Any]:
    # Nulls are sent on purpose: PUT is a full-row write, so a cleared field must clear
    return record.model_dump(mode="json", by_alias=True)
