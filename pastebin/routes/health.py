"""
Health check route.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from pastebin.dependencies import get_paste_service
from pastebin.models import HealthCheck
from pastebin.service import PasteService

router = APIRouter()


@router.get("/healthz", response_model=HealthCheck, responses={503: {"model": HealthCheck}})
@router.get("/api/healthz", response_model=HealthCheck, include_in_schema=False)
def health_check(service: PasteService = Depends(get_paste_service)):
    """
    Health check endpoint.
    Returns 200 with ok=true if the storage backend answers a trivial read,
    503 with ok=false otherwise.
    """
    if service.check_health():
        return HealthCheck(ok=True)
    return JSONResponse(status_code=503, content={"ok": False})
