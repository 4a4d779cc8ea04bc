from __future__ import annotations  # FastAPI server exposing interview practice sessions

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from config import FEEDBACK_PURPOSE, INTERVIEWER_PURPOSE, PERSONA_PURPOSE, app_config, resolve_registry
from config.settings import Settings, settings as default_settings
from llm_gateway import build_provider
from observability import configure_logging
from services.sessions import PracticeService
from speech import OpenAISpeechProvider
from storage.migrate import migrate

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> PracticeService:  # Construct providers once from the route registry
    routes = resolve_registry(app_config(settings))
    providers = {}
    for purpose, route in routes.items():
        if route.name not in providers:
            providers[route.name] = build_provider(route)
        logger.info("Provider route purpose=%s route=%s model=%s", purpose, route.name, route.model)
    return PracticeService(
        interviewer=providers[routes[INTERVIEWER_PURPOSE].name],
        persona=providers[routes[PERSONA_PURPOSE].name],
        feedback=providers[routes[FEEDBACK_PURPOSE].name],
        speech=OpenAISpeechProvider(timeout_s=settings.PROVIDER_TIMEOUT_S),
    )


def create_app(service: Optional[PracticeService] = None, settings: Optional[Settings] = None) -> FastAPI:  # Application factory
    cfg = settings or default_settings
    configure_logging()
    migrate(cfg.DB_PATH)
    app = FastAPI(title="Interview Practice API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.practice_service = service or build_service(cfg)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
