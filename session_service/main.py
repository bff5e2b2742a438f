import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from session_service.config import settings
from session_service.db import dispose_engine, get_sessionmaker
from session_service.routes import register_routers
from session_service.services.session_service import build_session_manager

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # tests install their own manager before startup
    if getattr(app.state, "session_manager", None) is None:
        sessionmaker = await get_sessionmaker() if settings.DATABASE_URL else None
        app.state.session_manager = build_session_manager(settings, sessionmaker=sessionmaker)
        logger.info("Session manager ready (%s cache)", app.state.session_manager.cache.backend_name)
    yield
    await app.state.session_manager.close()
    await dispose_engine()


app = FastAPI(title="Academy Session Service", version="1.0", lifespan=lifespan)

register_routers(app)

allowed_hosts = settings.ALLOWED_HOSTS.split(",")
cors_origins = settings.CORS_ORIGINS.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)


@app.get("/")
def root():
    return {"message": "Welcome to the Academy session service"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("session_service.main:app", host="0.0.0.0", port=8000, reload=True)
