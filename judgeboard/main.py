import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from judgeboard.api import leaderboard, rubrics, scores, teams
from judgeboard.core.config import settings
from judgeboard.core.logging_config import setup_logging
from judgeboard.core.metrics import check_overall_system_health, init_fastapi_instrumentation
from judgeboard.db.session import init_db
from judgeboard.utils.time import utcnow

# Configure logging (JSON)
setup_logging()

app = FastAPI(
    title="Judgeboard",
    description="Judge scoring, leaderboards and score trends for team events",
    version="1.0.0",
)

# Expose Prometheus /metrics immediately (not only on startup)
init_fastapi_instrumentation(app)

_cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if "*" in _cors_origins else _cors_origins,
    allow_credentials=False if "*" in _cors_origins else True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event():
    init_db()
    logging.getLogger(__name__).info("Database initialized successfully")


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    logger = logging.getLogger("request")
    start = time.perf_counter()
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    client = request.client.host if request.client else "-"

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "request_failed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": 500,
                "duration_ms": int((time.perf_counter() - start) * 1000),
                "client": client,
            },
        )
        raise

    logger.info(
        "request_completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": getattr(response, "status_code", 0),
            "duration_ms": int((time.perf_counter() - start) * 1000),
            "client": client,
        },
    )
    response.headers["X-Request-ID"] = request_id
    return response


# Include API routes
app.include_router(scores.router, prefix="/api", tags=["scores"])
app.include_router(rubrics.router, prefix="/api/rubrics", tags=["rubrics"])
app.include_router(leaderboard.router, prefix="/api/leaderboard", tags=["leaderboard"])
app.include_router(teams.router, prefix="/api/teams", tags=["teams"])


@app.get("/health")
def health_check():
    """Liveness + readiness: database and Redis reachability."""
    statuses = check_overall_system_health()
    healthy = statuses["overall"]
    components = {k: ("ok" if v else "error") for k, v in statuses.items() if k != "overall"}

    log = logging.getLogger(__name__)
    if healthy:
        log.info("health_check_passed", extra={"components": components})
    else:
        log.error("health_check_failed", extra={"components": components})

    return {
        "status": "healthy" if healthy else "unhealthy",
        "components": components,
        "timestamp": utcnow().isoformat(),
    }
