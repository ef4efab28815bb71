from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlmodel import Session

import cisa.models  # noqa: F401  register SQLModel tables

from cisa.config import get_settings
from cisa.db import create_db_and_tables, engine
from cisa.middleware import SessionGateMiddleware
from cisa.routers import admin, auth, faculties, health, pages, registration
from cisa.services.field_cipher import get_field_cipher
from cisa.services.session_gate import SessionGate
from cisa.services.tokens import get_token_service


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    create_db_and_tables()

    # Fail at startup, not on the first registration, if the key is unusable
    get_field_cipher()

    from cisa.services.admins import ensure_bootstrap_admin

    with Session(engine) as session:
        if ensure_bootstrap_admin(session, settings.admin_username, settings.admin_password):
            logging.getLogger(__name__).info(
                "Bootstrapped admin account %s", settings.admin_username
            )

    yield


app = FastAPI(
    title="CISA",
    description="University staff registration and administration",
    version="0.1.0",
    lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    SessionGateMiddleware,
    gate=SessionGate(get_token_service()),
    secure_cookies=settings.secure_cookies,
)

app.include_router(auth.router)
app.include_router(health.router)
app.include_router(registration.router)
app.include_router(admin.router)
app.include_router(faculties.router)
app.include_router(faculties.admin_router)
app.include_router(pages.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cisa.main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )
