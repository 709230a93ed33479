import json
import pytest
import respx
import httpx

from conftest import PIVOT, WAYS, mock_ways
from deepsearch.app.models import SearchRequest, SearchSession
from deepsearch.app.services.pivot import PivotStrategy
from deepsearch.app.services.scheduler import PhasedStrategy

SEED = {"platform": "GitHub", "profileUrl": "https://github.com/priya", "username": "priya"}


def pivot_body(discovered, status="success", confidence=60, **extracted):
    return {
        "status": status,
        "confidence": confidence,
        "seed": SEED,
        "extractedData": {"fullName": "Priya Sharma", **extracted},
        "discoveredProfiles": discovered,
        "searchQueries": {"linkedin": "Priya Sharma Acme"},
    }


async def run(settings, **req):
    async with httpx.AsyncClient() as c:
        strategy = PivotStrategy(c, settings, fallback=PhasedStrategy(c, settings))
        session = SearchSession.start("ds_test_abcdef")
        return await strategy.run(SearchRequest(pivotProfile=SEED, **req), session)


@pytest.mark.asyncio
async def test_linkedin_discovery_chains_pro_connect(settings):
    linkedin = {"platform": "LinkedIn", "username": "priya-s", "url": "https://linkedin.com/in/priya-s",
                "confidence": 80, "discoveryMethod": "bio_link"}
    with respx.mock(assert_all_called=False) as mock:
        mock.post(PIVOT).respond(200, json=pivot_body([linkedin]))
        routes = mock_ways(mock, {"proConnect": 75}, data={"proConnect": {"currentTitle": "CTO"}})
        s = await run(settings, name="Priya", email="p@x.io")

    assert routes["proConnect"].call_count == 1
    assert sum(r.call_count for r in routes.values()) == 1
    sent = json.loads(routes["proConnect"].calls[0].request.content)
    assert sent["discoverySource"] == "pivot"
    assert sent["targetUsername"] == "priya-s" and sent["targetUrl"] == "https://linkedin.com/in/priya-s"
    assert sent["name"] == "Priya Sharma"

    assert s.apis["proConnect"].confidence == 85
    assert s.apis["pivotExtract"].status == "success"
    assert s.apis["pivotExtract"].data["searchQueries"] == {"linkedin": "Priya Sharma Acme"}
    # 60 + 20 + 85, capped
    assert s.overall_confidence == 100
    assert s.phases_completed == [1, 2, 3] and s.current_phase == 3
    assert s.merged_profile.current_title == "CTO"
    assert s.merged_profile.verified_emails == ["p@x.io"]
    urls = {p.url: p.verified for p in s.merged_profile.social_profiles}
    assert urls == {"https://github.com/priya": True, "https://linkedin.com/in/priya-s": False}


@pytest.mark.asyncio
async def test_low_confidence_and_unmapped_discoveries_are_not_chained(settings):
    discovered = [
        {"platform": "LinkedIn", "username": "p", "url": "https://linkedin.com/in/p", "confidence": 40},
        {"platform": "Mastodon", "username": "p", "url": "https://mastodon.social/@p", "confidence": 95},
    ]
    with respx.mock(assert_all_called=False) as mock:
        mock.post(PIVOT).respond(200, json=pivot_body(discovered, status="partial", confidence=30))
        routes = mock_ways(mock, {})
        s = await run(settings, name="Priya")
    assert all(r.call_count == 0 for r in routes.values())
    assert s.apis["pivotExtract"].status == "partial"
    # nothing chained: 30 + 20 + 0
    assert s.overall_confidence == 50
    assert all(s.apis[n].status == "pending" for n in WAYS)


@pytest.mark.asyncio
async def test_chained_failure_keeps_zero_confidence(settings):
    gh = {"platform": "Twitter", "username": "priya", "url": "https://x.com/priya", "confidence": 70}
    with respx.mock() as mock:
        mock.post(PIVOT).respond(200, json=pivot_body([gh], confidence=10))
        mock.post(WAYS["socialMap"]).respond(500)
        s = await run(settings, name="Priya")
    assert s.apis["socialMap"].status == "failed"
    assert s.apis["socialMap"].confidence == 0
    assert s.overall_confidence == 30


@pytest.mark.asyncio
@pytest.mark.parametrize("pivot_response", [
    {"status_code": 502},
    {"status_code": 200, "json": pivot_body([], status="failed")},
])
async def test_pivot_failure_falls_back_to_phases(settings, pivot_response):
    with respx.mock(assert_all_called=False) as mock:
        mock.post(PIVOT).respond(**pivot_response)
        routes = mock_ways(mock, {"phoneIntel": 90, "codeGraph": 90, "socialMap": 90})
        s = await run(settings, name="Priya", phone="+1 (555) 123-4567")
    assert all(routes[n].call_count == 1 for n in ("phoneIntel", "codeGraph", "socialMap"))
    assert "pivotExtract" not in s.apis
    assert s.phases_completed == [1]
    assert s.merged_profile.verified_phones == ["+15551234567"]


@pytest.mark.asyncio
async def test_null_fields_in_pivot_answer_keep_pivot_path(settings):
    body = {
        "status": "success", "confidence": 60, "seed": SEED,
        "extractedData": {"fullName": "Priya Sharma", "skills": None, "education": None},
        "discoveredProfiles": [{"platform": "LinkedIn", "username": "priya-s", "url": "https://linkedin.com/in/priya-s",
                                "confidence": 80, "discoveryMethod": None}],
        "searchQueries": None,
    }
    with respx.mock(assert_all_called=False) as mock:
        mock.post(PIVOT).respond(200, json=body)
        routes = mock_ways(mock, {"proConnect": 70})
        s = await run(settings, name="Priya")
    assert routes["proConnect"].call_count == 1
    assert routes["phoneIntel"].call_count == 0
    assert s.apis["pivotExtract"].data["searchQueries"] == {}
    assert s.phases_completed == [1, 2, 3]
    assert s.merged_profile.verified_name == "Priya Sharma"


@pytest.mark.asyncio
async def test_pivot_strategy_requires_seed(settings):
    async with httpx.AsyncClient() as c:
        strategy = PivotStrategy(c, settings, fallback=PhasedStrategy(c, settings))
        with pytest.raises(ValueError, match="pivotProfile"):
            await strategy.run(SearchRequest(name="Priya"), SearchSession.start("ds_test_abcdef"))
