import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gbv.database import init_db
from gbv.routes import bracket, runtime, schedule, standings, teams, tournaments
from gbv.settings import CORS_ORIGINS, LOG_LEVEL

logger = logging.getLogger(__name__)

app = FastAPI(title="Grass Volleyball Tournament API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(teams.router, prefix="/api", tags=["teams"])
app.include_router(schedule.router, prefix="/api", tags=["schedule"])
app.include_router(standings.router, prefix="/api", tags=["standings"])
app.include_router(bracket.router, prefix="/api", tags=["bracket"])
# Live scoring lease + final results
app.include_router(runtime.router, prefix="/api", tags=["runtime"])


@app.on_event("startup")
def on_startup():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()  # Use centralized init_db() which imports models and creates tables
    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info("Startup complete: %d routes registered", route_count)


@app.get("/api/health")
def health_check():
    return {"app_name": "Grass Volleyball Tournament API", "status": "healthy"}
