from __future__ import annotations
from typing import Annotated, Any, Dict, List, Literal, Optional, TypeVar
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .services.registry import ADAPTERS

APIStatus = Literal["pending", "running", "success", "failed", "partial", "skipped"]
SessionStatus = Literal["processing", "complete", "partial", "failed"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _clamp_confidence(v: Any) -> int:
    if v is None or isinstance(v, bool):
        return 0
    try:
        return max(0, min(100, int(round(float(v)))))
    except (TypeError, ValueError):
        return 0


Confidence = Annotated[int, BeforeValidator(_clamp_confidence)]


def _to_millis(v: Any) -> int:
    if v is None or isinstance(v, bool):
        return 0
    try:
        return max(0, int(round(float(v))))
    except (TypeError, ValueError):
        return 0


def _none_as(empty):
    return BeforeValidator(lambda v: empty() if v is None else v)


def _clean_list(v: Any) -> Any:
    if v is None:
        return []
    if isinstance(v, list):
        return [x for x in v if x is not None]
    return v


T = TypeVar("T")

Millis = Annotated[int, BeforeValidator(_to_millis)]

# upstream bodies are scraper or AI output; null means nothing was found
ObjList = Annotated[List[T], BeforeValidator(_clean_list)]
StrList = ObjList[str]


# ------------ Request ------------
class PivotSeed(CamelModel):
    platform: str
    profile_url: str
    username: str


class SearchRequest(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "name": "Priya Sharma",
                "email": "priya@example.com",
                "phone": "+91 98765 43210",
                "runAllPhases": False,
            }
        },
    )

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    run_all_phases: bool = False
    pivot_profile: Optional[PivotSeed] = None


# ------------ Adapter envelope ------------
class APIResult(CamelModel):
    api_name: str
    branded_name: str
    status: APIStatus = "pending"
    confidence: Confidence = 0
    execution_time_ms: Millis = 0
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def pending(cls, api_name: str, branded_name: str) -> "APIResult":
        return cls(api_name=api_name, branded_name=branded_name)

    @classmethod
    def failed(cls, api_name: str, branded_name: str, error: str, elapsed_ms: int) -> "APIResult":
        return cls(api_name=api_name, branded_name=branded_name, status="failed",
                   confidence=0, execution_time_ms=elapsed_ms, data=None, error=error)


# ------------ Profile ------------
class Location(CamelModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class SocialProfile(CamelModel):
    platform: str
    url: str
    username: Optional[str] = None
    verified: bool = False


class MergedProfile(CamelModel):
    verified_name: Optional[str] = None
    verified_emails: List[str] = Field(default_factory=list)
    verified_phones: List[str] = Field(default_factory=list)
    profile_photos: List[str] = Field(default_factory=list)
    location: Location = Field(default_factory=Location)
    current_company: Optional[str] = None
    current_title: Optional[str] = None
    social_profiles: List[SocialProfile] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    bio: Optional[str] = None


# ------------ Session ------------
class SearchSession(CamelModel):
    """
    Per-request accumulator and the response body.
    Owned by exactly one request; strategies receive it and fill it in.
    """
    search_id: str
    status: SessionStatus = "processing"
    current_phase: int = 1
    overall_confidence: int = 0
    apis: Dict[str, APIResult] = Field(default_factory=dict)
    merged_profile: MergedProfile = Field(default_factory=MergedProfile)
    phases_completed: List[int] = Field(default_factory=list)
    execution_time_ms: int = 0

    @classmethod
    def start(cls, search_id: str) -> "SearchSession":
        apis = {a.value: APIResult.pending(a.value, info.branded) for a, info in ADAPTERS.items()}
        return cls(search_id=search_id, apis=apis)

    def record(self, results: Dict[str, APIResult]) -> None:
        self.apis.update(results)

    def complete_phase(self, phase: int) -> None:
        if phase not in (1, 2, 3):
            raise ValueError(f"unknown phase {phase}")
        if self.phases_completed and phase <= self.phases_completed[-1]:
            raise ValueError(f"phase {phase} already completed")
        self.phases_completed.append(phase)
        self.current_phase = phase


# ------------ Phone enrichment ------------
class PhoneEnrichment(CamelModel):
    truecaller_found: bool = False
    verified_name: Optional[str] = None
    additional_emails: StrList = Field(default_factory=list)
    location: Annotated[Location, _none_as(Location)] = Field(default_factory=Location)
    photo_url: Optional[str] = None
    carrier: Optional[str] = None


# ------------ Pivot extract ------------
class ExtractedData(CamelModel):
    full_name: Optional[str] = None
    headline: Optional[str] = None
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    work_history: ObjList[Dict[str, Any]] = Field(default_factory=list)
    education: ObjList[Dict[str, Any]] = Field(default_factory=list)
    skills: StrList = Field(default_factory=list)
    languages: StrList = Field(default_factory=list)
    certifications: StrList = Field(default_factory=list)


class DiscoveredProfile(CamelModel):
    platform: str
    username: Optional[str] = None
    url: Optional[str] = None
    confidence: Confidence = 0
    discovery_method: Annotated[str, _none_as(str)] = ""


class PivotExtractResult(CamelModel):
    status: Literal["success", "partial", "failed"]
    confidence: Confidence = 0
    seed: PivotSeed
    extracted_data: Annotated[ExtractedData, _none_as(ExtractedData)] = Field(default_factory=ExtractedData)
    discovered_profiles: ObjList[DiscoveredProfile] = Field(default_factory=list)
    search_queries: Annotated[Dict[str, Optional[str]], _none_as(dict)] = Field(default_factory=dict)
    error: Optional[str] = None


# ------------ Adapter payload variants (one per AdapterName) ------------
class AdapterData(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class PhoneIntelData(AdapterData):
    verified_name: Optional[str] = None
    additional_emails: StrList = Field(default_factory=list)
    photo_url: Optional[str] = None


class CodeGraphData(AdapterData):
    verified_name: Optional[str] = None
    verified_email: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    profile_urls: StrList = Field(default_factory=list)


class WebCrawlData(AdapterData):
    extracted_profiles: ObjList[SocialProfile] = Field(default_factory=list)
    related_companies: StrList = Field(default_factory=list)
    related_locations: StrList = Field(default_factory=list)


class SocialMapData(AdapterData):
    profiles: ObjList[SocialProfile] = Field(default_factory=list)
    photo_url: Optional[str] = None
    bio: Optional[str] = None


class CommitTrailData(AdapterData):
    emails: StrList = Field(default_factory=list)


class ProConnectData(AdapterData):
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    skills: StrList = Field(default_factory=list)
    profile_url: Optional[str] = None


class GovVerifyData(AdapterData):
    verified_name: Optional[str] = None
    location: Optional[Location] = None


# ------------ Failure bodies / history ------------
class ValidationFailure(CamelModel):
    search_id: str
    status: Literal["failed"] = "failed"
    error: str


class FailureResponse(ValidationFailure):
    execution_time_ms: int = 0


class SearchSummary(CamelModel):
    id: str
    name: Optional[str] = None
    status: Optional[str] = None
    confidence: Confidence = 0
    created_at: Optional[str] = None
