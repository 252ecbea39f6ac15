import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.auth import router as auth_router
from app.api.me import router as me_router
from app.api.sessions import router as sessions_router
from app.api.invitations import router as invitations_router
from app.api.stages import router as stages_router
from app.api.empathy import router as empathy_router
from app.api.needs import router as needs_router
from app.api.strategies import router as strategies_router
from app.api.emotions import router as emotions_router
from app.api.health import router as health_router
from app.api.session_ws import router as session_ws_router

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.db.session import create_all_tables
from app.utils.redis_pool import close_redis

log = logging.getLogger("beheard")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENV.lower() in ("dev", "development", "test"):
        await create_all_tables()
        log.info("Database tables ensured (ENV=%s)", settings.ENV)
    yield
    await close_redis()

app = FastAPI(title="BeHeard API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(me_router, prefix=settings.API_PREFIX)
app.include_router(sessions_router, prefix=settings.API_PREFIX)
app.include_router(invitations_router, prefix=settings.API_PREFIX)
app.include_router(stages_router, prefix=settings.API_PREFIX)
app.include_router(empathy_router, prefix=settings.API_PREFIX)
app.include_router(needs_router, prefix=settings.API_PREFIX)
app.include_router(strategies_router, prefix=settings.API_PREFIX)
app.include_router(emotions_router, prefix=settings.API_PREFIX)
app.include_router(health_router, prefix=settings.API_PREFIX)
app.include_router(session_ws_router)
