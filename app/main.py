from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

# ===== IMPORT ROUTERS =====
from app.api.v1 import auth

# --- ADMIN ROUTES ---
from app.api.v1.admin import reports
from app.api.v1.admin import user as admin_user

# --- SHARED ROUTES ---
from app.api.v1.shares import certificates, courses, health, notification, upload

# --- USER ROUTES ---
from app.api.v1.user import me
from app.core.exception_handlers import register_exception_handlers
from app.core.redis import redis_client
from app.core.settings import settings
from app.db.session import init_models

# --- MIDDLEWARE ---
from app.middleware.request_context import RequestContextMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):

    # ================================
    # 1) DATABASE SCHEMA
    # ================================
    await init_models()
    logger.info("Database schema ready")

    # ================================
    # 2) REDIS
    # ================================
    await redis_client.connect()

    try:
        yield
    finally:
        await redis_client.disconnect()


# ===== APP CONFIG =====
app = FastAPI(
    title="NPHI E-Learning API",
    description="Backend for the NPHI health e-learning platform",
    version="1.0.0",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)
prefix = "/api/v1"

# ===== REGISTER ROUTERS =====

# --- Share ---
app.include_router(auth.router, prefix=prefix)
app.include_router(courses.router, prefix=prefix)
app.include_router(notification.router, prefix=prefix)
app.include_router(certificates.router, prefix=prefix)
app.include_router(upload.router, prefix=prefix)
app.include_router(health.router, prefix=prefix)

# --- USER ROUTES ---
app.include_router(me.router, prefix=prefix)

# --- ADMIN ROUTES ---
app.include_router(admin_user.router, prefix=prefix)
app.include_router(reports.router, prefix=prefix)


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=not settings.is_production, log_level="info")
