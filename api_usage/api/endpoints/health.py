from __future__ import annotations

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

router = APIRouter(tags=["Health"])


@router.get("/health/live")
async def live():
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(request: Request):
    """
    Ready once a specification has been published; a failed reload does not
    change that since the previous specification keeps serving.
    """
    spec = request.app.state.store.current()
    if spec is None:
        return JSONResponse(status_code=503, content={"status": "not_ready"})
    return {
        "status": "ready",
        "title": spec.meta.title,
        "version": spec.meta.version,
        "endpoints": spec.meta.endpoint_count,
    }
