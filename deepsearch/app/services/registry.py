from __future__ import annotations
from enum import Enum
from typing import Dict, List, NamedTuple


class AdapterName(str, Enum):
    """The WAY adapters. Declaration order is the profile merge order."""
    PHONE_INTEL = "phoneIntel"
    CODE_GRAPH = "codeGraph"
    WEB_CRAWL = "webCrawl"
    SOCIAL_MAP = "socialMap"
    COMMIT_TRAIL = "commitTrail"
    PRO_CONNECT = "proConnect"
    GOV_VERIFY = "govVerify"


class AdapterInfo(NamedTuple):
    branded: str
    endpoint: str


ADAPTERS: Dict[AdapterName, AdapterInfo] = {
    AdapterName.PHONE_INTEL: AdapterInfo("Hushh PhoneIntel", "deepsearch-phoneintel"),
    AdapterName.CODE_GRAPH: AdapterInfo("Hushh CodeGraph", "deepsearch-codegraph"),
    AdapterName.WEB_CRAWL: AdapterInfo("Hushh WebCrawl", "deepsearch-webcrawl"),
    AdapterName.SOCIAL_MAP: AdapterInfo("Hushh SocialMap", "deepsearch-socialmap"),
    AdapterName.COMMIT_TRAIL: AdapterInfo("Hushh CommitTrail", "deepsearch-committrail"),
    AdapterName.PRO_CONNECT: AdapterInfo("Hushh ProConnect", "deepsearch-proconnect"),
    AdapterName.GOV_VERIFY: AdapterInfo("Hushh GovVerify", "deepsearch-govverify"),
}

# fast / medium / slow
PHASES: Dict[int, List[AdapterName]] = {
    1: [AdapterName.PHONE_INTEL, AdapterName.CODE_GRAPH, AdapterName.SOCIAL_MAP],
    2: [AdapterName.WEB_CRAWL, AdapterName.COMMIT_TRAIL],
    3: [AdapterName.PRO_CONNECT, AdapterName.GOV_VERIFY],
}

PHASE_1_TO_2 = 50
PHASE_2_TO_3 = 70

PIVOT_EXTRACT = "pivotExtract"
PIVOT_EXTRACT_BRANDED = "Hushh PivotExtract"
PIVOT_EXTRACT_ENDPOINT = "deepsearch-pivotextract"

PLATFORM_TO_ADAPTER: Dict[str, AdapterName] = {
    "GitHub": AdapterName.CODE_GRAPH,
    "github": AdapterName.CODE_GRAPH,
    "LinkedIn": AdapterName.PRO_CONNECT,
    "linkedin": AdapterName.PRO_CONNECT,
    "Twitter": AdapterName.SOCIAL_MAP,
    "twitter": AdapterName.SOCIAL_MAP,
    "X": AdapterName.SOCIAL_MAP,
    "PersonalSite": AdapterName.WEB_CRAWL,
    "Website": AdapterName.WEB_CRAWL,
    "Blog": AdapterName.WEB_CRAWL,
}

CHAIN_MIN_CONFIDENCE = 50
CHAIN_CONFIDENCE_BOOST = 10
PIVOT_CONFIDENCE_BONUS = 20
DISCOVERED_VERIFIED_CONFIDENCE = 90

# every adapter is registered and scheduled in exactly one phase
if set(ADAPTERS) != set(AdapterName):
    raise RuntimeError("adapter registry is incomplete")
if sorted(a for p in PHASES.values() for a in p) != sorted(AdapterName):
    raise RuntimeError("every adapter must run in exactly one phase")
