from __future__ import annotations
import asyncio, logging
from typing import Optional

import httpx
import phonenumbers
from phonenumbers import NumberParseException

from ..models import PhoneEnrichment
from ..services.config import Settings

logger = logging.getLogger(__name__)


def phone_region(phone: str, default_region: str) -> Optional[str]:
    try:
        num = phonenumbers.parse(phone, default_region)
    except NumberParseException:
        return None
    if not phonenumbers.is_possible_number(num):
        return None
    return phonenumbers.region_code_for_number(num)


async def enrich_phone(
    client: httpx.AsyncClient,
    settings: Settings,
    phone: str,
    name: str,
) -> PhoneEnrichment:
    """
    Caller-ID lookup for numbers in the supported regions.
    Any problem (unsupported region, transport, bad body) yields truecallerFound=False.
    """
    if not settings.enrichment_enabled:
        return PhoneEnrichment()
    region = phone_region(phone, settings.default_region)
    if region is None or region not in settings.enrichment_regions:
        logger.info("phone enrichment skipped (region=%s)", region)
        return PhoneEnrichment()
    try:
        r = await asyncio.wait_for(
            client.post(
                settings.function_url(settings.enrichment_endpoint),
                json={"phone": phone, "name": name},
                headers=settings.auth_headers(),
            ),
            timeout=settings.adapter_timeout_s,
        )
        r.raise_for_status()
        enrichment = PhoneEnrichment.model_validate(r.json())
    except asyncio.TimeoutError:
        logger.warning("phone enrichment timed out after %ss", settings.adapter_timeout_s)
        return PhoneEnrichment()
    except Exception as e:
        logger.warning("phone enrichment failed: %s", e)
        return PhoneEnrichment()
    logger.info("phone enrichment found: %s", enrichment.truecaller_found)
    return enrichment
