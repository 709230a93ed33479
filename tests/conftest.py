import pytest
from deepsearch.app.services.config import Settings

SB = "http://supabase.test"
FN = f"{SB}/functions/v1"

# endpoint per adapter, matching the registry
WAYS = {
    "phoneIntel": f"{FN}/deepsearch-phoneintel",
    "codeGraph": f"{FN}/deepsearch-codegraph",
    "webCrawl": f"{FN}/deepsearch-webcrawl",
    "socialMap": f"{FN}/deepsearch-socialmap",
    "commitTrail": f"{FN}/deepsearch-committrail",
    "proConnect": f"{FN}/deepsearch-proconnect",
    "govVerify": f"{FN}/deepsearch-govverify",
}
PIVOT = f"{FN}/deepsearch-pivotextract"
ENRICH = f"{FN}/deepsearch-truecaller"


@pytest.fixture
def settings():
    return Settings(supabase_url=SB, supabase_anon_key="anon", adapter_timeout_s=5.0)


def mock_ways(mock, confidences, status="success", data=None):
    """Route every adapter; the ones named in `confidences` answer with that confidence."""
    routes = {}
    for name, url in WAYS.items():
        conf = confidences.get(name, 0)
        routes[name] = mock.post(url).respond(200, json={
            "status": status, "confidence": conf, "executionTimeMs": 12,
            "data": (data or {}).get(name),
        })
    return routes
