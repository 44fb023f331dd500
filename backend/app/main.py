import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.database import engine, init_db
from app.db_schema_patch import ensure_playoff_columns
from app.routes import playoffs

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="League Playoffs API")

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

# Playoff brackets: public read views + scheduler-facing sync
app.include_router(playoffs.router, prefix="/api", tags=["playoffs"])


@app.on_event("startup")
def on_startup():
    init_db()
    ensure_playoff_columns(engine)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))


@app.get("/api/health")
def health_check():
    """Liveness probe for the scheduler and load balancer"""
    return {"app_name": "League Playoffs API", "status": "healthy"}
