from __future__ import annotations
import asyncio, logging
from typing import Optional

import httpx

from ..connectors.phone_enrich import enrich_phone
from ..connectors.ways import build_payload, call_way
from ..models import PhoneEnrichment, SearchRequest, SearchSession
from .confidence import overall_confidence
from .config import Settings
from .merge_utils import apply_request_phone, merge_profiles
from .registry import PHASE_1_TO_2, PHASE_2_TO_3, PHASES

logger = logging.getLogger(__name__)


class PhasedStrategy:
    """
    Blind discovery in up to three phases.
    Adapters inside a phase run concurrently; phases run one after another and
    the next phase only starts when the aggregated confidence is still low
    (or the caller asked for every phase).
    """
    name = "phased"

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def run(self, request: SearchRequest, session: SearchSession) -> SearchSession:
        logger.info("phased search %s for: %s", session.search_id, request.name)
        enrichment: Optional[PhoneEnrichment] = None
        if request.phone:
            enrichment = await enrich_phone(self.client, self.settings, request.phone, request.name)

        await self.run_phase(1, request, session, enrichment)
        if session.overall_confidence < PHASE_1_TO_2 or request.run_all_phases:
            await self.run_phase(2, request, session, enrichment)
            if (session.overall_confidence < PHASE_2_TO_3 or request.run_all_phases) and PHASES.get(3):
                await self.run_phase(3, request, session, enrichment)

        profile = merge_profiles(session.apis, enrichment)
        session.merged_profile = apply_request_phone(profile, request.phone)
        return session

    async def run_phase(
        self,
        phase: int,
        request: SearchRequest,
        session: SearchSession,
        enrichment: Optional[PhoneEnrichment] = None,
    ) -> None:
        adapters = PHASES[phase]
        logger.info("running phase %d: %s", phase, ", ".join(a.value for a in adapters))
        for a in adapters:
            session.apis[a.value].status = "running"

        payload = build_payload(session.search_id, request.name, request.email, request.phone, enrichment=enrichment)
        results = await asyncio.gather(*[call_way(self.client, self.settings, a, payload) for a in adapters])
        session.record({r.api_name: r for r in results})
        session.complete_phase(phase)
        session.overall_confidence = overall_confidence(session.apis.values())
        logger.info("phase %d complete, confidence: %d%%", phase, session.overall_confidence)
