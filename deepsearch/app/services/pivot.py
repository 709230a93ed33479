from __future__ import annotations
import asyncio, logging, time
from typing import Dict, List, Tuple

import httpx

from ..connectors.ways import build_payload, call_pivot_extract, call_way
from ..models import APIResult, MergedProfile, PivotExtractResult, SearchRequest, SearchSession
from ..utils.ids import normalize_phone
from .confidence import overall_confidence
from .config import Settings
from .merge_utils import apply_request_phone, combine, merge_pivot_data, merge_profiles
from .registry import (
    CHAIN_CONFIDENCE_BOOST, CHAIN_MIN_CONFIDENCE, PIVOT_CONFIDENCE_BONUS, PIVOT_EXTRACT,
    PIVOT_EXTRACT_BRANDED, PLATFORM_TO_ADAPTER, AdapterName,
)
from .scheduler import PhasedStrategy

logger = logging.getLogger(__name__)


async def chain_discovered_profiles(
    client: httpx.AsyncClient,
    settings: Settings,
    search_id: str,
    pivot: PivotExtractResult,
    request: SearchRequest,
) -> Dict[str, APIResult]:
    """
    Re-run the matching adapter for each discovered profile, targeted at the
    discovered username/url. Unmapped platforms and weak discoveries are skipped.
    """
    name = pivot.extracted_data.full_name or request.name
    planned: List[Tuple[AdapterName, dict]] = []
    for d in pivot.discovered_profiles:
        adapter = PLATFORM_TO_ADAPTER.get(d.platform)
        if adapter is None:
            logger.info("no adapter for platform: %s", d.platform)
            continue
        if d.confidence < CHAIN_MIN_CONFIDENCE:
            logger.info("skipping %s, confidence too low: %d%%", d.platform, d.confidence)
            continue
        logger.info("chaining %s for discovered %s: @%s", adapter.value, d.platform, d.username)
        payload = build_payload(search_id, name, request.email, request.phone,
                                target_username=d.username, target_url=d.url, discovery_source="pivot")
        planned.append((adapter, payload))

    results = await asyncio.gather(*[
        call_way(client, settings, adapter, payload, boost=CHAIN_CONFIDENCE_BOOST)
        for adapter, payload in planned
    ])
    # same adapter twice: the later discovery keeps the slot
    return {r.api_name: r for r in results}


class PivotStrategy:
    """Seeded search from a user-confirmed profile; falls back to phased discovery."""
    name = "pivot"

    def __init__(self, client: httpx.AsyncClient, settings: Settings, fallback: PhasedStrategy):
        self.client = client
        self.settings = settings
        self.fallback = fallback

    async def run(self, request: SearchRequest, session: SearchSession) -> SearchSession:
        seed = request.pivot_profile
        if seed is None:
            raise ValueError("pivot search needs a pivotProfile")
        logger.info("pivot search %s from confirmed %s: @%s", session.search_id, seed.platform, seed.username)

        started = time.monotonic()
        pivot = await call_pivot_extract(self.client, self.settings, seed, request.name, request.email, request.phone)
        if pivot is None or pivot.status == "failed":
            logger.info("pivot extract failed, falling back to phased search")
            return await self.fallback.run(request, session)

        wire = pivot.to_wire()
        session.apis[PIVOT_EXTRACT] = APIResult(
            api_name=PIVOT_EXTRACT,
            branded_name=PIVOT_EXTRACT_BRANDED,
            status="success" if pivot.status == "success" else "partial",
            confidence=pivot.confidence,
            execution_time_ms=int((time.monotonic() - started) * 1000),
            data={k: wire[k] for k in ("extractedData", "discoveredProfiles", "searchQueries")},
        )

        chained = await chain_discovered_profiles(self.client, self.settings, session.search_id, pivot, request)
        session.record(chained)
        session.overall_confidence = min(
            pivot.confidence + PIVOT_CONFIDENCE_BONUS + overall_confidence(chained.values()), 100
        )
        # nothing was phased, but the bookkeeping reports a finished search
        for phase in (1, 2, 3):
            session.complete_phase(phase)

        profile = MergedProfile(
            verified_emails=[request.email] if request.email else [],
            verified_phones=[normalize_phone(request.phone)] if request.phone else [],
        )
        merge_pivot_data(profile, pivot)
        combine(profile, merge_profiles(session.apis))
        session.merged_profile = apply_request_phone(profile, request.phone)
        logger.info("pivot search complete, confidence: %d%%", session.overall_confidence)
        return session
