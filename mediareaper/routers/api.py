from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Liveness check; does not require authentication."""
    scheduler = getattr(request.app.state, "health_scheduler", None)
    next_run = scheduler.get_next_run_time() if scheduler else None
    return {
        "status": "ok",
        "nextHealthCheck": next_run.isoformat() if next_run else None
    }
