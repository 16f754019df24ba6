from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import datetime
import logging
from voicebatch.config import settings
from voicebatch.api.error_handlers import register_exception_handlers
from voicebatch.core.logging import setup_logging
from voicebatch.db.init_db import init_db
from voicebatch.routers import campaign_router

logger = logging.getLogger(__name__)

app = FastAPI(title="voicebatch")

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
async def startup_event():
    setup_logging()
    logger.info("voicebatch starting on http://%s:%s", settings.BACKEND_HOST, settings.BACKEND_PORT)
    logger.info("Database: %s", settings.DB_PATH)
    logger.info("Dispatch service: %s", settings.DISPATCH_BASE_URL)

    init_db()


@app.get("/")
def health():
    return {
        "status": "alive",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "version": "1.0",
        "dispatch_configured": bool(settings.DISPATCH_API_KEY)
    }

app.include_router(campaign_router.router)
