import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.database import init_db
from app.routes import mats, meets, pairings, teams
from app.utils.errors import SchedulingError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Dual Meet Scheduler API")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
def scheduling_error_handler(request: Request, exc: SchedulingError):
    """Map engine errors onto HTTP status codes"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# Include routers
app.include_router(meets.router, prefix="/api", tags=["meets"])
app.include_router(pairings.router, prefix="/api", tags=["pairings"])
app.include_router(mats.router, prefix="/api", tags=["mats"])
app.include_router(teams.router, prefix="/api", tags=["teams"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Registered %d routes", len(app.routes))


@app.get("/api/health")
def health_check():
    return {"app_name": "Dual Meet Scheduler API", "status": "healthy"}
