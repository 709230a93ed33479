from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional

from .logging_config import setup_logging
from .routes import router
from .services.config import Settings, load_settings
from .services.orchestrator import Orchestrator


def create_app(settings: Optional[Settings] = None, orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    setup_logging()
    settings = settings or load_settings()
    app = FastAPI(title="Hushh Deep Search Orchestrator")
    app.state.orchestrator = orchestrator or Orchestrator(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )
    app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
