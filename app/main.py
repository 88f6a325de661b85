import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.core.config import get_settings
from app.core.database import engine, Base
from app.api import retention, scoring, standings

# Import all models so Base.metadata is populated for create_all
import app.models.models  # noqa: F401

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Idempotent, skips existing tables
    logger.info("Starting up, creating database tables...")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully.")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        # Don't re-raise, the app still starts so /health is reachable
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Episode points ledger for Survivor fantasy leagues: retention points, question and wager scoring, recalculation and standings.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS: open for now, lock down in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(retention.router)
app.include_router(scoring.router)
app.include_router(standings.router)


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "retention": "/api/league-seasons/{id}/retention",
            "recalculate": "/api/league-seasons/{id}/recalculate",
            "score_questions": "/api/league-seasons/{id}/questions/score",
            "standings": "/api/league-seasons/{id}/standings",
            "team_episodes": "/api/league-seasons/{id}/teams/{team_id}/episodes",
            "episode_results": "/api/league-seasons/{id}/episodes/{n}/results",
        },
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}
