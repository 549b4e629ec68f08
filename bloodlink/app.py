"""
BloodLink Assistant Server: Application Factory
"""

import time
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bloodlink import settings

# ── 1. Configure logging ──
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("bloodlink-server")

_startup_time = time.time()
logger.info("Server initialization started...")

# ── 2. Create FastAPI app ──
app = FastAPI(title="BloodLink Assistant")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── 3. Register routers ──
from bloodlink.routers import chat, health

app.include_router(health.router)
app.include_router(chat.router)


# ── 4. Startup event ──
@app.on_event("startup")
async def startup_event():
    """Wire the intake engine unless a test already did."""
    logger.info("=" * 60)
    logger.info("BloodLink Assistant Starting")
    logger.info(f"Listening on port: {settings.PORT}")

    from bloodlink.intake.setup import get_engine, initialize_engine
    if get_engine() is None:
        initialize_engine()

    logger.info(f"Total init time: {time.time() - _startup_time:.2f}s")
    logger.info("=" * 60)
