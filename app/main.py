import logging
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from app.dependencies import get_store
from app.exception_handlers import register_exception_handlers
from app.routers import datasources, query, tables
from app.settings import get_settings
from app.state import DataSourceStore
from querytool.prom import REGISTRY

load_dotenv()

log = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    if get_store.cache_info().currsize:
        get_store().close()
        get_store.cache_clear()
        log.info("Closed metadata store")


# ----------------------------------------------------------------------------
#  App definition
# ----------------------------------------------------------------------------
app = FastAPI(
    title="Query Tool API",
    version=settings.app_version,
    description="Browse tables and run paged, filtered queries on MySQL and SQL Server",
    lifespan=lifespan,
)
register_exception_handlers(app)

app.include_router(datasources.router, prefix="/api/v1")
app.include_router(tables.router, prefix="/api/v1")
app.include_router(query.router, prefix="/api/v1")


# ----------------------------------------------------------------------------
#  Prometheus Metrics Middleware
# ----------------------------------------------------------------------------
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["path", "method", "status_code"],
    registry=REGISTRY,
)
REQUEST_LATENCY = Histogram(
    "http_request_latency_seconds",
    "Request latency (seconds)",
    ["path", "method"],
    registry=REGISTRY,
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.perf_counter()
    response: Response = await call_next(request)
    elapsed = time.perf_counter() - start
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    name = getattr(route, "name", None) or path

    REQUEST_COUNT.labels(
        path=name,
        method=request.method,
        status_code=str(getattr(response, "status_code", 500)),
    ).inc()
    REQUEST_LATENCY.labels(path=name, method=request.method).observe(elapsed)
    return response


# ----------------------------------------------------------------------------
#  System Endpoints
# ----------------------------------------------------------------------------
@app.get("/healthz", response_class=PlainTextResponse, tags=["system"])
def healthz() -> str:
    return "ok"


@app.get("/readyz", response_class=PlainTextResponse, tags=["system"])
def readyz(store: DataSourceStore = Depends(get_store)) -> str:
    """Readiness probe: the metadata store must answer a trivial query."""
    try:
        store.ping()
    except Exception as exc:
        log.warning("Readiness check failed", exc_info=exc)
        raise HTTPException(status_code=503, detail="not ready") from exc
    return "ready"


@app.get("/metrics", tags=["system"])
def metrics():
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
