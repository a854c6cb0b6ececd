import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.errors import PublishingError
from app.db.session import init_db

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"NIXYAH API запущен (env={settings.ENV})")
    yield


app = FastAPI(
    title="NIXYAH API",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PublishingError)
async def publishing_error_handler(request: Request, exc: PublishingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "detail": jsonable_encoder(exc.errors()),
            "reason": "validation_error",
        },
    )


# Import routers after app creation to avoid circular imports
from app.api import (
    users,
    publishing,
    annonces,
    profiles,
    admin_annonces,
    admin_profiles,
)

# Routers - all already have /api prefix
app.include_router(users.router)
app.include_router(publishing.router)
app.include_router(annonces.router)
app.include_router(profiles.router)
app.include_router(admin_annonces.router)
app.include_router(admin_profiles.router)


@app.get("/")
def root():
    return {"status": "ok", "service": "nixyah-api"}


@app.get("/api/health")
def health_check():
    return {
        "status": "healthy",
        "env": settings.ENV
    }
