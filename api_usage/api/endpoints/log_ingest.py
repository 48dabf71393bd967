from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request

from api_usage.core.errors import InvalidLogRecord
from api_usage.core.gateway.log_record import parse_log

router = APIRouter(tags=["Log"])


@router.post("/log")
async def ingest_log(request: Request) -> Dict[str, Any]:
    """
    Receive one gateway access-log record and count it against its route.

    Records that match no declared route are counted as unmatched; that is
    the normal outcome for scans, health checks and typos, not an error.
    """
    body = await request.body()
    try:
        record = parse_log(body)
    except InvalidLogRecord as e:
        raise HTTPException(status_code=400, detail=f"invalid log record: {e}") from e

    metrics = request.app.state.metrics
    spec = request.app.state.store.current()
    match = spec.match_path(record.request.method, record.request.uri) if spec is not None else None

    if match is None:
        metrics.observe_unmatched(record)
        return {"matched": False, "path": None}

    metrics.observe(record, match)
    return {"matched": True, "path": match.path}
