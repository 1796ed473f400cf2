"""
Controller process entry point.
Runs the Database watcher and reconciliation workers behind a small FastAPI
app that serves health probes and Prometheus metrics.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import sentry_sdk
from fastapi import FastAPI, Request
from prometheus_fastapi_instrumentator import Instrumentator

from dbcontroller.api import health
from dbcontroller.config.logging import configure_logging, get_logger
from dbcontroller.config.settings import settings

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        environment=settings.environment,
        release=settings.app_version,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    Starts the controller in this process:
    1. Kubernetes client
    2. Reconciliation workers draining the work queue
    3. Database watcher feeding the work queue
    """
    from dbcontroller.config.kubernetes import create_api_client
    from dbcontroller.core.work_queue import WorkQueue
    from dbcontroller.plugins import default_registry
    from dbcontroller.repositories.kubernetes_store import KubernetesObjectStore
    from dbcontroller.services.database_reconciler import DatabaseReconciler
    from dbcontroller.services.event_recorder import KubernetesEventRecorder
    from dbcontroller.workers.database_watcher import DatabaseWatcher
    from dbcontroller.workers.reconciliation_worker import ReconciliationWorker

    logger.info(
        "controller_starting",
        version=settings.app_version,
        environment=settings.environment,
        namespace=settings.watch_namespace or "*",
    )

    api_client = await create_api_client(settings)
    queue = WorkQueue(base_delay=settings.requeue_base_delay, max_delay=settings.requeue_max_delay)
    reconciler = DatabaseReconciler(
        store=KubernetesObjectStore(api_client, settings),
        registry=default_registry(settings),
        recorder=KubernetesEventRecorder(api_client, settings),
    )
    worker = ReconciliationWorker(queue, reconciler, num_workers=settings.num_workers)
    watcher = DatabaseWatcher(api_client, queue, settings)

    app.state.queue = queue
    app.state.worker = worker
    app.state.watcher = watcher

    try:
        await worker.start()
        await watcher.start()
        logger.info("controller_started", num_workers=settings.num_workers)
    except Exception as e:
        logger.error("controller_startup_failed", error=str(e))
        await api_client.close()
        raise

    yield

    # Shutdown
    logger.info("controller_shutting_down")
    await watcher.stop()
    await worker.stop()
    await api_client.close()
    logger.info("controller_shutdown_complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Controller provisioning logical databases declared as Kubernetes resources",
    docs_url=None,
    redoc_url=None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests at debug level; probes are frequent."""
    response = await call_next(request)
    logger.debug(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
    )
    return response


# Initialize Prometheus metrics
if settings.prometheus_enabled:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


# Include routers
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "running",
    }


if __name__ == "__main__":
    import uvicorn

    # uvicorn turns SIGINT/SIGTERM into a lifespan shutdown, which drains the queue
    uvicorn.run(
        "dbcontroller.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
