"""
Credential service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from api.middleware import register_middleware
from api.routes import router as api_router
from auth.tokens import TokenIssuer
from config.settings import Settings, config
from core.auth_service import AuthService
from core.otp_service import OtpService
from database.backends import build_stores

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("httpcore", "httpx", "aiosqlite"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or config

    app = FastAPI(
        title="Credential Service",
        version="1.0.0",
        description="Register / login / password reset with JWT bearer tokens.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)

    store, otp_store = build_stores(settings)
    tokens = TokenIssuer(
        settings.jwt_secret,
        settings.jwt_expiry_seconds,
        settings.jwt_algorithm,
    )
    auth_service = AuthService(
        store,
        tokens,
        bcrypt_rounds=settings.bcrypt_rounds,
        min_password_length=settings.min_password_length,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.auth_service = auth_service
    app.state.otp_service = OtpService(auth_service, otp_store, settings.otp_ttl_seconds)

    # Routes
    app.include_router(api_router, prefix="/api")
    app.include_router(auth_router, prefix="/api/auth")

    @app.on_event("startup")
    async def on_startup():
        if settings.uses_default_secret:
            logger.warning(
                "JWT_SECRET is the development placeholder — set a real secret "
                "before deploying; anyone can forge tokens with the default."
            )
        await store.initialise()
        logger.info("Storage backend '%s' ready.", settings.storage_backend)

    @app.on_event("shutdown")
    async def on_shutdown():
        await store.close()

    return app


configure_logging(config)
app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
