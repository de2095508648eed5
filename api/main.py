import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_service
from api.routers import analyze, search
from api.schemas import HealthResponse, ServiceHealthResponse
from api.services import AnalysisService
from core.config import AppConfig


logger = logging.getLogger(__name__)


def create_app(service: Optional[AnalysisService] = None) -> FastAPI:
    """
    Build the API app.

    With no service given, one is created from the environment at
    startup and closed at shutdown. An injected service is left
    open for its owner to close.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = service is None
        app.state.service = service or AnalysisService.create(AppConfig.from_env())
        logger.info("[api] analysis service ready")
        try:
            yield
        finally:
            if owned:
                await app.state.service.close()
                logger.info("[api] provider sessions closed")

    app = FastAPI(
        title="Crypto Asset Analyzer API",
        description="Identity resolution and multi-source reconciliation for chains, protocols and tokens.",
        version="1.0.0",
        lifespan=lifespan,
    )
    if service is not None:
        app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.include_router(analyze.router)
    app.include_router(search.router)

    @app.get("/", response_model=HealthResponse)
    def root():
        return {"status": "ok", "message": "Crypto Asset Analyzer API is running"}

    @app.get("/api/health", response_model=ServiceHealthResponse)
    def health(service: AnalysisService = Depends(get_service)):
        return {"status": "ok", **service.health()}

    return app
