import json
import pytest
import respx
import httpx

from conftest import ENRICH, WAYS, mock_ways
from deepsearch.app.models import SearchRequest, SearchSession
from deepsearch.app.services.scheduler import PhasedStrategy

PHASE2 = ("webCrawl", "commitTrail")
PHASE3 = ("proConnect", "govVerify")


async def run(settings, **req):
    async with httpx.AsyncClient() as c:
        session = SearchSession.start("ds_test_abcdef")
        return await PhasedStrategy(c, settings).run(SearchRequest(**req), session)


@pytest.mark.asyncio
async def test_confident_phase_one_stops_early(settings):
    with respx.mock(assert_all_called=False) as mock:
        routes = mock_ways(mock, {"phoneIntel": 80, "codeGraph": 60, "socialMap": 50})
        s = await run(settings, name="Priya Sharma")
    assert s.phases_completed == [1] and s.current_phase == 1
    assert s.overall_confidence == 63
    for name in PHASE2 + PHASE3:
        assert routes[name].call_count == 0
        assert s.apis[name].status == "pending"


@pytest.mark.asyncio
async def test_low_confidence_runs_all_phases(settings):
    with respx.mock() as mock:
        mock_ways(mock, {"phoneIntel": 20, "codeGraph": 20, "socialMap": 20, "webCrawl": 60, "commitTrail": 60,
                         "proConnect": 90, "govVerify": 90})
        s = await run(settings, name="Priya Sharma")
    assert s.phases_completed == [1, 2, 3] and s.current_phase == 3
    # (20*3 + 60*2 + 90*2) * 1.5 / (7 * 1.5)
    assert s.overall_confidence == 51
    assert all(r.status == "success" for r in s.apis.values())


@pytest.mark.asyncio
async def test_phase_two_can_satisfy_threshold(settings):
    with respx.mock(assert_all_called=False) as mock:
        routes = {}
        for name in ("phoneIntel", "codeGraph", "socialMap"):
            routes[name] = mock.post(WAYS[name]).respond(200, json={"status": "partial", "confidence": 49})
        for name in PHASE2:
            routes[name] = mock.post(WAYS[name]).respond(200, json={"status": "success", "confidence": 100})
        for name in PHASE3:
            routes[name] = mock.post(WAYS[name]).respond(200, json={"status": "success", "confidence": 100})
        s = await run(settings, name="Priya Sharma")
    assert s.phases_completed == [1, 2]
    assert s.overall_confidence == 75
    assert routes["proConnect"].call_count == 0 and routes["govVerify"].call_count == 0


@pytest.mark.asyncio
async def test_run_all_phases_ignores_confidence(settings):
    with respx.mock() as mock:
        routes = mock_ways(mock, {n: 100 for n in WAYS})
        s = await run(settings, name="Priya Sharma", runAllPhases=True)
    assert s.phases_completed == [1, 2, 3]
    assert all(r.call_count == 1 for r in routes.values())


@pytest.mark.asyncio
async def test_failing_adapters_do_not_abort(settings):
    with respx.mock() as mock:
        for name, url in WAYS.items():
            mock.post(url).mock(side_effect=httpx.ConnectError("unreachable"))
        s = await run(settings, name="Priya Sharma")
    assert s.phases_completed == [1, 2, 3]
    assert s.overall_confidence == 0
    assert all(r.status == "failed" and r.confidence == 0 for r in s.apis.values())


@pytest.mark.asyncio
async def test_phone_enrichment_runs_once_and_feeds_adapters(settings):
    with respx.mock(assert_all_called=False) as mock:
        enrich = mock.post(ENRICH).respond(200, json={"truecallerFound": True, "verifiedName": "Priya Sharma"})
        routes = mock_ways(mock, {"phoneIntel": 90, "codeGraph": 90, "socialMap": 90})
        s = await run(settings, name="Priya", phone="+91 98765-43210")
    assert enrich.call_count == 1
    body = json.loads(routes["phoneIntel"].calls[0].request.content)
    assert body["truecallerEnrichment"]["truecallerFound"] is True
    assert body["phone"] == "+91 98765-43210"
    assert s.merged_profile.verified_name == "Priya Sharma"
    assert s.merged_profile.verified_phones == ["+919876543210"]
