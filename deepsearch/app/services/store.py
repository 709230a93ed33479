from __future__ import annotations
import datetime as dt
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..models import Location, MergedProfile, SearchRequest, SearchSession, SearchSummary
from .config import Settings

logger = logging.getLogger(__name__)

SEARCHES = "osint_searches"
PROFILES = "osint_profiles"
API_CALLS = "osint_api_calls"


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def search_row(request: SearchRequest, session: SearchSession) -> Dict[str, Any]:
    return {
        "id": session.search_id,
        "input_name": request.name,
        "input_email": request.email,
        "input_phone": request.phone,
        "status": session.status,
        "current_phase": session.current_phase,
        "overall_confidence": session.overall_confidence,
        "phases_completed": session.phases_completed,
        "execution_time_ms": session.execution_time_ms,
        "created_at": _now(),
    }


def profile_row(session: SearchSession) -> Dict[str, Any]:
    p = session.merged_profile
    return {
        "search_id": session.search_id,
        "verified_name": p.verified_name,
        "verified_emails": p.verified_emails,
        "verified_phones": p.verified_phones,
        "profile_photos": p.profile_photos,
        "location_city": p.location.city,
        "location_state": p.location.state,
        "location_country": p.location.country,
        "current_company": p.current_company,
        "current_title": p.current_title,
        "social_profiles": [sp.to_wire() for sp in p.social_profiles],
        "skills": p.skills,
        "bio": p.bio,
        "overall_confidence": session.overall_confidence,
        "updated_at": _now(),
    }


def api_call_rows(session: SearchSession) -> List[Dict[str, Any]]:
    now = _now()
    return [
        {
            "search_id": session.search_id,
            "api_name": name,
            "branded_name": r.branded_name,
            "status": r.status,
            "confidence": r.confidence,
            "execution_time_ms": r.execution_time_ms,
            "response_data": r.data,
            "error_message": r.error,
            "created_at": now,
        }
        for name, r in session.apis.items()
    ]


def profile_from_row(row: Dict[str, Any]) -> MergedProfile:
    return MergedProfile(
        verified_name=row.get("verified_name"),
        verified_emails=row.get("verified_emails") or [],
        verified_phones=row.get("verified_phones") or [],
        profile_photos=row.get("profile_photos") or [],
        location=Location(
            city=row.get("location_city"),
            state=row.get("location_state"),
            country=row.get("location_country"),
        ),
        current_company=row.get("current_company"),
        current_title=row.get("current_title"),
        social_profiles=row.get("social_profiles") or [],
        skills=row.get("skills") or [],
        bio=row.get("bio"),
    )


class SupabaseStore:
    """
    Search persistence over the Supabase REST (PostgREST) API.
    Writes are upserts keyed by search id. Nothing here raises to the caller:
    a failed write is logged and reported as False.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return bool(self.settings.supabase_url)

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        h = {"apikey": self.settings.supabase_anon_key, **self.settings.auth_headers()}
        if prefer:
            h["Prefer"] = prefer
        return h

    async def _upsert(self, client: httpx.AsyncClient, table: str, rows: Any, on_conflict: str) -> None:
        r = await client.post(
            self.settings.rest_url(table),
            params={"on_conflict": on_conflict},
            json=rows,
            headers=self._headers("resolution=merge-duplicates,return=minimal"),
        )
        r.raise_for_status()

    async def save_session(self, request: SearchRequest, session: SearchSession) -> bool:
        if not self.enabled:
            logger.debug("persistence disabled, search %s not saved", session.search_id)
            return False
        try:
            async with httpx.AsyncClient(timeout=self.settings.persistence_timeout_s) as client:
                await self._upsert(client, SEARCHES, search_row(request, session), "id")
                await self._upsert(client, PROFILES, profile_row(session), "search_id")
                await self._upsert(client, API_CALLS, api_call_rows(session), "search_id,api_name")
        except Exception:
            logger.exception("error saving search session %s", session.search_id)
            return False
        logger.info("saved search session %s", session.search_id)
        return True

    async def fetch_profile(self, search_id: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.settings.persistence_timeout_s) as client:
                r = await client.get(
                    self.settings.rest_url(PROFILES),
                    params={"search_id": f"eq.{search_id}", "limit": 1},
                    headers=self._headers(),
                )
                r.raise_for_status()
                rows = r.json()
        except Exception as e:
            logger.warning("error fetching profile %s: %s", search_id, e)
            return None
        return rows[0] if rows else None

    async def list_searches(self, limit: int = 10) -> List[SearchSummary]:
        if not self.enabled:
            return []
        try:
            async with httpx.AsyncClient(timeout=self.settings.persistence_timeout_s) as client:
                r = await client.get(
                    self.settings.rest_url(SEARCHES),
                    params={
                        "select": "id,input_name,status,overall_confidence,created_at",
                        "order": "created_at.desc",
                        "limit": limit,
                    },
                    headers=self._headers(),
                )
                r.raise_for_status()
                rows = r.json()
        except Exception as e:
            logger.warning("error fetching search history: %s", e)
            return []
        return [
            SearchSummary(
                id=row["id"],
                name=row.get("input_name"),
                status=row.get("status"),
                confidence=row.get("overall_confidence"),
                created_at=row.get("created_at"),
            )
            for row in rows
            if row.get("id")
        ]
