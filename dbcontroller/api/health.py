"""
Health check endpoints for monitoring and orchestration.
Provides liveness and readiness probes for the controller process.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from dbcontroller.config.settings import settings

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def health_check():
    """
    Basic health check endpoint.
    Returns current status and version.
    """
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": _now(),
    }


@router.get("/live")
async def liveness():
    """
    Kubernetes liveness probe.
    Indicates whether the process should be restarted.
    """
    return {"status": "alive", "timestamp": _now()}


@router.get("/ready")
async def readiness(request: Request):
    """
    Kubernetes readiness probe.
    Ready once the watcher and the reconciliation workers are running.
    """
    watcher = getattr(request.app.state, "watcher", None)
    worker = getattr(request.app.state, "worker", None)
    queue = getattr(request.app.state, "queue", None)

    watcher_ok = watcher is not None and watcher.running
    worker_ok = worker is not None and worker.running

    content = {
        "status": "ready" if watcher_ok and worker_ok else "not_ready",
        "watcher": "running" if watcher_ok else "stopped",
        "workers": "running" if worker_ok else "stopped",
        "queue_depth": len(queue) if queue is not None else 0,
        "timestamp": _now(),
    }
    if not (watcher_ok and worker_ok):
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=content)
    return content
