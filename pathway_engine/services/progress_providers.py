"""Live-progress providers, selected by activity type.

When an activity has no stored ActivityState yet, the rollup asks the
provider registered for its type (e.g. the LMS for ``external_course``)
for a current percent.  Lookups are best effort: a missing provider, a
timeout or any provider error yields 0 and a WARNING, never a failure.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Protocol, runtime_checkable
from uuid import UUID

import httpx

from pathway_engine.core.metrics import LIVE_PROGRESS_LOOKUPS
from pathway_engine.models.activity import Activity, ActivityType

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressProvider(Protocol):
    async def get_progress_percent(self, user_id: UUID, external_ref: str) -> int:
        """Current completion percent (0..100) for ``external_ref``."""
        ...


def parse_course_ref(external_ref: str) -> str | None:
    """Extract ``course_id`` from a JSON external_ref like '{"course_id": 42}'."""
    try:
        ref = json.loads(external_ref)
    except (TypeError, ValueError):
        return None
    if not isinstance(ref, dict) or not ref.get("course_id"):
        return None
    return str(ref["course_id"])


class HttpLmsProgressProvider:
    """Reads course progress from the LMS progress API over HTTP.

    GET {base_url}/users/{user_id}/courses/{course_id}/progress
      -> {"percent": 0..100}
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def get_progress_percent(self, user_id: UUID, external_ref: str) -> int:
        course_id = parse_course_ref(external_ref)
        if course_id is None:
            return 0

        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            response = await client.get(
                f"/users/{user_id}/courses/{course_id}/progress"
            )
            response.raise_for_status()
            percent = int(response.json().get("percent", 0))
        return max(0, min(100, percent))


class ProgressProviderRegistry:
    def __init__(
        self,
        providers: dict[ActivityType, ProgressProvider] | None = None,
        *,
        timeout_seconds: float = 2.0,
    ) -> None:
        self._providers: dict[str, ProgressProvider] = dict(providers or {})
        self._timeout = timeout_seconds

    def register(self, activity_type: ActivityType, provider: ProgressProvider) -> None:
        self._providers[activity_type] = provider

    async def live_percent(self, activity: Activity, user_id: UUID) -> int:
        provider = self._providers.get(activity.activity_type)
        if provider is None or not activity.external_ref:
            LIVE_PROGRESS_LOOKUPS.labels(result="no_provider").inc()
            return 0

        try:
            percent = await asyncio.wait_for(
                provider.get_progress_percent(user_id, activity.external_ref),
                timeout=self._timeout,
            )
        except (TimeoutError, httpx.TimeoutException):
            LIVE_PROGRESS_LOOKUPS.labels(result="timeout").inc()
            logger.warning(
                "Live progress lookup timed out after %.1fs for activity=%s",
                self._timeout,
                activity.id,
                extra={"activity_id": str(activity.id)},
            )
            return 0
        except Exception:
            LIVE_PROGRESS_LOOKUPS.labels(result="error").inc()
            logger.warning(
                "Live progress lookup failed for activity=%s",
                activity.id,
                exc_info=True,
                extra={"activity_id": str(activity.id)},
            )
            return 0

        LIVE_PROGRESS_LOOKUPS.labels(result="ok").inc()
        return max(0, min(100, int(percent)))


def build_provider_registry(
    lms_progress_url: str | None, timeout_seconds: float
) -> ProgressProviderRegistry:
    registry = ProgressProviderRegistry(timeout_seconds=timeout_seconds)
    if lms_progress_url:
        registry.register(
            "external_course",
            HttpLmsProgressProvider(lms_progress_url, timeout_seconds=timeout_seconds),
        )
    return registry
