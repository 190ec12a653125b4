from fastapi import FastAPI
import logging

from .config import settings
from .routers import jobs

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("fencequote")

app = FastAPI(
    title="Fence Quote Engine",
    description="Colorbond fencing quotes, material orders, work orders and GP analysis",
    version="3.0.0",
)

# API routes
app.include_router(jobs.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "fencequote"}
