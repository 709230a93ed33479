from __future__ import annotations
import asyncio, logging, time
from typing import Any, Dict, Optional

import httpx

from ..models import APIResult, PhoneEnrichment, PivotExtractResult, PivotSeed
from ..services.config import Settings
from ..services.registry import ADAPTERS, PIVOT_EXTRACT_ENDPOINT, AdapterName

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def build_payload(
    search_id: str,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    *,
    enrichment: Optional[PhoneEnrichment] = None,
    target_username: Optional[str] = None,
    target_url: Optional[str] = None,
    discovery_source: Optional[str] = None,
) -> Dict[str, Any]:
    """Adapter request body; unset keys are left out rather than sent as null."""
    body: Dict[str, Any] = {
        "searchId": search_id,
        "name": name,
        "email": email,
        "phone": phone,
        "truecallerEnrichment": enrichment.to_wire() if enrichment is not None else None,
        "targetUsername": target_username,
        "targetUrl": target_url,
        "discoverySource": discovery_source,
    }
    return {k: v for k, v in body.items() if v is not None}


async def _post_way(
    client: httpx.AsyncClient,
    settings: Settings,
    adapter: AdapterName,
    payload: Dict[str, Any],
    started: float,
    boost: int,
) -> APIResult:
    info = ADAPTERS[adapter]
    r = await client.post(settings.function_url(info.endpoint), json=payload, headers=settings.auth_headers())
    if r.status_code >= 400:
        logger.warning("%s returned %s: %s", adapter.value, r.status_code, r.text[:200])
        return APIResult.failed(adapter.value, info.branded, f"API returned {r.status_code}", _elapsed_ms(started))
    result = r.json()
    if not isinstance(result, dict):
        raise ValueError("adapter response is not a JSON object")
    status = result.get("status") or "success"
    confidence = result.get("confidence") or 0
    if status == "failed":
        confidence = 0
    elif boost:
        confidence = float(confidence) + boost
    return APIResult(
        api_name=adapter.value,
        branded_name=info.branded,
        status=status,
        confidence=confidence,
        execution_time_ms=result.get("executionTimeMs") or _elapsed_ms(started),
        data=result.get("data") or None,
        error=result.get("error"),
    )


async def call_way(
    client: httpx.AsyncClient,
    settings: Settings,
    adapter: AdapterName,
    payload: Dict[str, Any],
    *,
    boost: int = 0,
) -> APIResult:
    """
    Call one WAY edge function. Never raises: transport errors, bad bodies,
    non-2xx answers and deadline overruns all come back as a failed APIResult.
    `boost` is added to the reported confidence of an answered call (capped at 100).
    """
    info = ADAPTERS[adapter]
    started = time.monotonic()
    try:
        return await asyncio.wait_for(
            _post_way(client, settings, adapter, payload, started, boost),
            timeout=settings.adapter_timeout_s,
        )
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %ss", adapter.value, settings.adapter_timeout_s)
        return APIResult.failed(adapter.value, info.branded,
                                f"timed out after {settings.adapter_timeout_s:g}s", _elapsed_ms(started))
    except Exception as e:
        logger.warning("%s error: %s", adapter.value, e)
        return APIResult.failed(adapter.value, info.branded, str(e) or type(e).__name__, _elapsed_ms(started))


async def call_pivot_extract(
    client: httpx.AsyncClient,
    settings: Settings,
    seed: PivotSeed,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Optional[PivotExtractResult]:
    """Analyse the confirmed profile. Returns None on any failure so the caller can fall back."""
    logger.info("calling pivot extract for %s: @%s", seed.platform, seed.username)
    body = {
        "platform": seed.platform,
        "profileUrl": seed.profile_url,
        "username": seed.username,
        "name": name,
        "email": email,
        "phone": phone,
    }
    try:
        r = await asyncio.wait_for(
            client.post(settings.function_url(PIVOT_EXTRACT_ENDPOINT), json=body, headers=settings.auth_headers()),
            timeout=settings.adapter_timeout_s,
        )
        if r.status_code >= 400:
            logger.error("pivot extract returned %s: %s", r.status_code, r.text[:200])
            return None
        result = PivotExtractResult.model_validate(r.json())
    except asyncio.TimeoutError:
        logger.error("pivot extract timed out after %ss", settings.adapter_timeout_s)
        return None
    except Exception as e:
        logger.error("pivot extract error: %s", e)
        return None
    logger.info("pivot extract %s: %d profiles discovered", result.status, len(result.discovered_profiles))
    return result
