from fastapi import APIRouter, Request
from backend.health.service import health_supabase_info
from backend.utils.rate_limit import rate_limit_health_info
from backend.utils.responses import ok

router = APIRouter(prefix="/api/v1/health", tags=["Health"])

@router.get("")
def health_root():
    return ok({"ok": True})

@router.get("/supabase")
def health_supabase():
    return ok(health_supabase_info())

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return ok(rate_limit_health_info(request))
