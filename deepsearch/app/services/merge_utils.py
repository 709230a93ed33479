from __future__ import annotations
import logging
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import ValidationError

from ..models import (
    AdapterData, APIResult, CodeGraphData, CommitTrailData, GovVerifyData,
    MergedProfile, PhoneEnrichment, PhoneIntelData, PivotExtractResult, ProConnectData,
    SocialMapData, SocialProfile, WebCrawlData,
)
from ..utils.ids import normalize_phone, split_location
from .registry import DISCOVERED_VERIFIED_CONFIDENCE, AdapterName

logger = logging.getLogger(__name__)

_SCALARS = ("verified_name", "current_company", "current_title", "bio")
_LISTS = ("verified_emails", "verified_phones", "profile_photos", "skills")


# ------------ primitives: first write wins / union with dedup ------------
def set_first(profile: MergedProfile, field: str, value: Optional[str]) -> None:
    if value and not getattr(profile, field):
        setattr(profile, field, value)


def set_location(profile: MergedProfile, city=None, state=None, country=None) -> None:
    loc = profile.location
    if city and not loc.city:
        loc.city = city
    if state and not loc.state:
        loc.state = state
    if country and not loc.country:
        loc.country = country


def add_unique(items: List[str], *values: Optional[str]) -> None:
    for v in values:
        if v and v not in items:
            items.append(v)


def add_social(profile: MergedProfile, sp: SocialProfile) -> None:
    """Deduplicated by url; the first entry for a url is kept."""
    if not sp.url:
        return
    if any(p.url == sp.url for p in profile.social_profiles):
        return
    profile.social_profiles.append(sp)


# ------------ one merge function per adapter payload ------------
def _merge_phone_intel(p: MergedProfile, d: PhoneIntelData) -> None:
    set_first(p, "verified_name", d.verified_name)
    add_unique(p.verified_emails, *d.additional_emails)
    add_unique(p.profile_photos, d.photo_url)


def _merge_code_graph(p: MergedProfile, d: CodeGraphData) -> None:
    set_first(p, "verified_name", d.verified_name)
    add_unique(p.verified_emails, d.verified_email)
    set_first(p, "current_company", d.company)
    set_location(p, city=d.location)
    set_first(p, "bio", d.bio)
    for url in d.profile_urls:
        add_social(p, SocialProfile(platform="github", url=url,
                                    username=url.rstrip("/").split("/")[-1] or None, verified=True))


def _merge_web_crawl(p: MergedProfile, d: WebCrawlData) -> None:
    for sp in d.extracted_profiles:
        add_social(p, sp)
    if d.related_companies:
        set_first(p, "current_company", d.related_companies[0])
    if d.related_locations:
        set_location(p, city=d.related_locations[0])


def _merge_social_map(p: MergedProfile, d: SocialMapData) -> None:
    for sp in d.profiles:
        add_social(p, sp)
    add_unique(p.profile_photos, d.photo_url)
    set_first(p, "bio", d.bio)


def _merge_commit_trail(p: MergedProfile, d: CommitTrailData) -> None:
    add_unique(p.verified_emails, *d.emails)


def _merge_pro_connect(p: MergedProfile, d: ProConnectData) -> None:
    set_first(p, "current_title", d.current_title)
    set_first(p, "current_company", d.current_company)
    add_unique(p.skills, *d.skills)
    if d.profile_url:
        add_social(p, SocialProfile(platform="linkedin", url=d.profile_url,
                                    username=d.profile_url.rstrip("/").split("/")[-1] or None, verified=True))


def _merge_gov_verify(p: MergedProfile, d: GovVerifyData) -> None:
    set_first(p, "verified_name", d.verified_name)
    if d.location is not None:
        set_location(p, d.location.city, d.location.state, d.location.country)


Merger = Tuple[Type[AdapterData], Callable]

MERGERS: Dict[AdapterName, Merger] = {
    AdapterName.PHONE_INTEL: (PhoneIntelData, _merge_phone_intel),
    AdapterName.CODE_GRAPH: (CodeGraphData, _merge_code_graph),
    AdapterName.WEB_CRAWL: (WebCrawlData, _merge_web_crawl),
    AdapterName.SOCIAL_MAP: (SocialMapData, _merge_social_map),
    AdapterName.COMMIT_TRAIL: (CommitTrailData, _merge_commit_trail),
    AdapterName.PRO_CONNECT: (ProConnectData, _merge_pro_connect),
    AdapterName.GOV_VERIFY: (GovVerifyData, _merge_gov_verify),
}

# every adapter needs a merger
_missing = set(AdapterName) - set(MERGERS)
if _missing:
    raise RuntimeError(f"no profile merger registered for: {sorted(a.value for a in _missing)}")


def merge_profiles(apis: Mapping[str, APIResult], enrichment: Optional[PhoneEnrichment] = None) -> MergedProfile:
    """
    Collapse adapter payloads into one profile.
    Phone enrichment seeds first, then adapters in AdapterName order.
    Entries that are not adapters (pivotExtract) are ignored here.
    """
    p = MergedProfile()
    if enrichment is not None and enrichment.truecaller_found:
        set_first(p, "verified_name", enrichment.verified_name)
        add_unique(p.verified_emails, *enrichment.additional_emails)
        set_location(p, enrichment.location.city, enrichment.location.state, enrichment.location.country)
        add_unique(p.profile_photos, enrichment.photo_url)

    for adapter in AdapterName:
        result = apis.get(adapter.value)
        if result is None or not result.data or result.status == "failed":
            continue
        model, merge = MERGERS[adapter]
        try:
            data = model.model_validate(result.data)
        except ValidationError as e:
            logger.warning("unusable %s payload, skipped: %s", adapter.value, e.error_count())
            continue
        merge(p, data)
    return p


def merge_pivot_data(p: MergedProfile, pivot: PivotExtractResult) -> MergedProfile:
    x = pivot.extracted_data
    set_first(p, "verified_name", x.full_name)
    set_first(p, "current_title", x.current_title)
    set_first(p, "current_company", x.current_company)
    if x.location and not p.location.city:
        city, country = split_location(x.location)
        set_location(p, city=city, country=country)
    set_first(p, "bio", x.bio)
    add_unique(p.skills, *x.skills)

    # the user confirmed the seed, so it is always present and verified
    seed = pivot.seed
    existing = next((sp for sp in p.social_profiles if sp.url == seed.profile_url), None)
    if existing is not None:
        existing.verified = True
    else:
        p.social_profiles.append(SocialProfile(platform=seed.platform, url=seed.profile_url,
                                               username=seed.username, verified=True))

    for d in pivot.discovered_profiles:
        if d.url:
            add_social(p, SocialProfile(platform=d.platform, url=d.url, username=d.username or None,
                                        verified=d.confidence >= DISCOVERED_VERIFIED_CONFIDENCE))
    return p


def combine(into: MergedProfile, other: MergedProfile) -> MergedProfile:
    """Fold `other` into `into`; values already on `into` take priority."""
    for f in _SCALARS:
        set_first(into, f, getattr(other, f))
    set_location(into, other.location.city, other.location.state, other.location.country)
    for f in _LISTS:
        add_unique(getattr(into, f), *getattr(other, f))
    for sp in other.social_profiles:
        add_social(into, sp)
    return into


def apply_request_phone(p: MergedProfile, phone: Optional[str]) -> MergedProfile:
    if phone:
        add_unique(p.verified_phones, normalize_phone(phone))
    return p
