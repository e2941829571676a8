# backend/pitchey/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pitchey.api.health import router as health_router
from pitchey.api.health import set_health_engine
from pitchey.config import settings
from pitchey.health.setup import create_health_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    engine = create_health_engine(settings)
    set_health_engine(engine.runner, engine.publisher)
    yield
    # Shutdown
    await engine.aclose()


app = FastAPI(title="Pitchey Health Monitor", version="0.1.0", lifespan=lifespan)

app.include_router(health_router)


@app.get("/health")
async def health():
    return {"status": "healthy"}
