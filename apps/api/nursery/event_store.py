"""Read-only client for the remote record-keeping service (Baby Buddy REST API)."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .config import CONFIG
from .schemas import ActivityCategory, ActivityEvent
from .settings import load_user_settings

logger = logging.getLogger(__name__)

ENDPOINTS = {
    ActivityCategory.FEEDING: "/api/feedings/",
    ActivityCategory.PUMPING: "/api/pumping/",
    ActivityCategory.SLEEP: "/api/sleep/",
    ActivityCategory.DIAPER: "/api/changes/",
}

# Diaper changes carry a single "time" instead of a start/end pair.
_TIME_FIELDS = {ActivityCategory.DIAPER: "time"}
_RANGE_PARAMS = {ActivityCategory.DIAPER: ("date_min", "date_max")}


class EventStoreError(Exception):
    """The event store could not be reached or returned something unusable."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def latest_ordering(category: ActivityCategory) -> str:
    return f"-{_TIME_FIELDS.get(category, 'end')}"


def parse_event(category: ActivityCategory, row: Dict[str, Any]) -> ActivityEvent:
    if category == ActivityCategory.DIAPER:
        wet, solid = bool(row.get("wet")), bool(row.get("solid"))
        kind = "wet+solid" if wet and solid else "wet" if wet else "solid" if solid else "empty"
        return ActivityEvent(
            id=row.get("id"),
            category=category,
            start=row["time"],
            amount=row.get("amount"),
            type=kind,
            notes=row.get("notes") or None,
        )
    kind = row.get("type")
    if category == ActivityCategory.SLEEP:
        kind = "nap" if row.get("nap") else "night"
    return ActivityEvent(
        id=row.get("id"),
        category=category,
        start=row["start"],
        end=row.get("end"),
        amount=row.get("amount"),
        method=row.get("method"),
        type=kind,
        notes=row.get("notes") or None,
    )


@dataclass
class EventStoreClient:
    base_url: str
    token: str
    child_id: Optional[int] = None
    timeout: float = 15.0
    page_limit: int = 1000
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self.token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        # Paths must keep their trailing slash.
        url = f"{self.base_url.rstrip('/')}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                return await client.request(method, url, params=params, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise EventStoreError(f"Event store timed out: {path}") from exc
        except httpx.HTTPError as exc:
            raise EventStoreError(f"Network error: {exc}") from exc

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = await self.request("GET", path, params=params)
        if resp.status_code in (401, 403):
            raise EventStoreError("Invalid API token. Please check your settings.", status_code=resp.status_code)
        if resp.status_code >= 400:
            body = resp.text or "<empty response>"
            raise EventStoreError(
                f"Server error ({resp.status_code}): {body[:200]}", status_code=resp.status_code
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise EventStoreError("Failed to parse server response") from exc

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self.child_id is not None:
            params["child"] = self.child_id
        params.update({key: value for key, value in extra.items() if value is not None})
        return params

    async def list_events(
        self,
        category: ActivityCategory,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        ordering: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ActivityEvent]:
        """Events of one category whose start lies in [start, end)."""

        min_param, max_param = _RANGE_PARAMS.get(category, ("start_min", "start_max"))
        params = self._params(
            ordering=ordering,
            limit=limit or self.page_limit,
            **{
                min_param: start.isoformat() if start else None,
                max_param: end.isoformat() if end else None,
            },
        )
        payload = await self.get(ENDPOINTS[category], params=params)
        try:
            rows = payload["results"]
            events = [parse_event(category, row) for row in rows]
        except (KeyError, TypeError, ValidationError) as exc:
            raise EventStoreError(f"Failed to parse {category.value} records") from exc

        if start is not None:
            events = [event for event in events if event.start >= start]
        if end is not None:
            events = [event for event in events if event.start < end]
        logger.info(
            "event store query",
            extra={"category": category.value, "count": len(events), "child_id": self.child_id},
        )
        return events

    async def latest_event(self, category: ActivityCategory) -> Optional[ActivityEvent]:
        events = await self.list_events(category, ordering=latest_ordering(category), limit=1)
        return events[0] if events else None


def get_event_store() -> EventStoreClient:
    return EventStoreClient(
        base_url=CONFIG.event_store_url,
        token=CONFIG.event_store_token,
        child_id=load_user_settings().child_id,
        timeout=CONFIG.event_store_timeout,
        page_limit=CONFIG.page_limit,
    )
