from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from typing import Any, Dict, List
import logging, time

from .models import FailureResponse, SearchSummary, ValidationFailure
from .services.orchestrator import Orchestrator, SearchValidationError, parse_request
from .services.store import profile_from_row
from .utils.ids import generate_search_id

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


@router.options("/deepsearch")
async def deepsearch_preflight(orch: Orchestrator = Depends(get_orchestrator)):
    return Response(status_code=200, headers=orch.settings.cors_headers)


@router.post("/deepsearch")
async def deepsearch(
    request: Request,
    background: BackgroundTasks,
    orch: Orchestrator = Depends(get_orchestrator),
):
    started = time.monotonic()
    search_id = generate_search_id()
    try:
        payload = await request.json()
        req = parse_request(payload)
        session = await orch.search(req, search_id, started)
    except SearchValidationError as e:
        return JSONResponse(ValidationFailure(search_id=search_id, error=str(e)).to_wire(), status_code=400)
    except Exception as e:
        logger.exception("search %s failed", search_id)
        body = FailureResponse(
            search_id=search_id,
            error=str(e) or type(e).__name__,
            execution_time_ms=int((time.monotonic() - started) * 1000),
        )
        return JSONResponse(body.to_wire(), status_code=500)

    # runs after the response is sent
    background.add_task(orch.persist, req, session)
    return session.to_wire()


@router.get("/deepsearch")
async def search_history(
    limit: int = Query(default=10, ge=1, le=100),
    orch: Orchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    items: List[SearchSummary] = await orch.store.list_searches(limit)
    return [i.to_wire() for i in items]


@router.get("/deepsearch/{search_id}")
async def search_result(search_id: str, orch: Orchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    cached = orch.cached(search_id)
    if cached:
        return cached
    row = await orch.store.fetch_profile(search_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Search not found")
    return {
        "searchId": search_id,
        "overallConfidence": row.get("overall_confidence") or 0,
        "mergedProfile": profile_from_row(row).to_wire(),
        "updatedAt": row.get("updated_at"),
    }
