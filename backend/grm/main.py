# grm/main.py
import logging
import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from grm.api.router import api_router
from grm.core.config import settings
from grm.core.db import close_db
from grm.core.indexes import startup_tasks
from grm.core.security import limiter
from grm.services.notification_service import scheduler

# ---- Logging ----
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

APP_NAME = os.getenv("APP_NAME", "Guest Request Manager")
APP_VERSION = os.getenv("APP_VERSION", "0.1.0")

# --- CORS: .env origins + local dev fronts ---
defaults = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:4173",
    "http://127.0.0.1:4173",
}
CORS_ORIGINS = sorted(set((settings.cors_origins or []) + list(defaults)))

app = FastAPI(title=APP_NAME, version=APP_VERSION)

# CORS first
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1024)

# SlowAPI: the limiter used by the login endpoint
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(api_router)

@app.get("/health")
async def health():
    return {"ok": True}

@app.get("/ready")
async def ready():
    return {"ready": True, "notifications": scheduler.running}

# Indexes, migrations and seeds on startup (idempotent), then the trigger loop
@app.on_event("startup")
async def startup():
    await startup_tasks()
    if settings.notifications_enabled:
        scheduler.start()
    else:
        logger.info("notifications disabled; trigger loop not started")

@app.on_event("shutdown")
async def shutdown():
    await scheduler.stop()
    await close_db()

# Local runner
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("grm.main:app", reload=True, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
