from __future__ import annotations
import logging, time
from typing import Any, Dict, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from ..models import APIResult, SearchRequest, SearchSession, SessionStatus
from .cache import SESSION_KEY, Cache
from .config import Settings
from .pivot import PivotStrategy
from .scheduler import PhasedStrategy
from .store import SupabaseStore

logger = logging.getLogger(__name__)

SearchStrategy = Union[PivotStrategy, PhasedStrategy]


class SearchValidationError(ValueError):
    """The request body cannot start a search."""


def parse_request(payload: Any) -> SearchRequest:
    if not isinstance(payload, dict):
        raise SearchValidationError("Request body must be a JSON object")
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise SearchValidationError("Name is required")
    try:
        return SearchRequest.model_validate(payload)
    except ValidationError as e:
        err = e.errors()[0]
        where = ".".join(str(p) for p in err.get("loc", ()))
        raise SearchValidationError(f"Invalid {where}: {err.get('msg')}") from e


def resolve_strategy(request: SearchRequest, client: httpx.AsyncClient, settings: Settings) -> SearchStrategy:
    phased = PhasedStrategy(client, settings)
    if request.pivot_profile is not None:
        return PivotStrategy(client, settings, fallback=phased)
    return phased


def final_status(apis: Mapping[str, APIResult]) -> SessionStatus:
    """failed when everything failed, partial when any settled call did not succeed."""
    results = list(apis.values())
    settled = [r for r in results if r.status not in ("pending", "skipped")]
    succeeded = [r for r in results if r.status == "success"]
    if results and all(r.status == "failed" for r in results):
        return "failed"
    if len(succeeded) < len(settled):
        return "partial"
    return "complete"


class Orchestrator:
    def __init__(self, settings: Settings, cache: Optional[Cache] = None, store: Optional[SupabaseStore] = None):
        self.settings = settings
        self.cache = cache or Cache(settings.redis_url, settings.cache_ttl_s)
        self.store = store or SupabaseStore(settings)

    async def search(self, request: SearchRequest, search_id: str, started: Optional[float] = None) -> SearchSession:
        started = started if started is not None else time.monotonic()
        session = SearchSession.start(search_id)
        async with httpx.AsyncClient(timeout=self.settings.adapter_timeout_s) as client:
            strategy = resolve_strategy(request, client, self.settings)
            await strategy.run(request, session)

        session.status = final_status(session.apis)
        session.execution_time_ms = int((time.monotonic() - started) * 1000)
        self.cache.set(SESSION_KEY.format(search_id), session.to_wire())
        logger.info(
            "search %s complete (%s): status=%s confidence=%d%% phases=%s time=%dms",
            search_id, strategy.name, session.status, session.overall_confidence,
            ",".join(map(str, session.phases_completed)), session.execution_time_ms,
        )
        return session

    async def persist(self, request: SearchRequest, session: SearchSession) -> None:
        await self.store.save_session(request, session)

    def cached(self, search_id: str) -> Optional[Dict[str, Any]]:
        return self.cache.get(SESSION_KEY.format(search_id))
