import logging

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from datepoll.config import get_settings
from datepoll.controllers.events import router as events_router
from datepoll.controllers.health import router as health_router
from datepoll.controllers.participations import router as participations_router
from datepoll.controllers.ws_events import router as ws_events_router
from datepoll.errors import register_exception_handlers
from datepoll.lifespan import build_lifespan
from datepoll.middleware import HTTPLogMiddleware
from datepoll.store import DocumentStore


def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    """Build the API. ``store`` replaces PostgreSQL when given."""
    settings = get_settings()
    app = FastAPI(title="datepoll", version="1.0.0", lifespan=build_lifespan(store))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_origin_regex=settings.cors.origins_regex or None,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.debug.request:
        logging.getLogger("datepoll.http").setLevel(logging.DEBUG)
        app.add_middleware(HTTPLogMiddleware)

    if settings.debug.websocket:
        logging.getLogger("datepoll.ws.events").setLevel(logging.DEBUG)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(events_router)
    app.include_router(participations_router)
    app.include_router(ws_events_router)
    return app


app = create_app()
