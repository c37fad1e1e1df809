from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1 import simulations
from app.core.logging import RequestLoggingMiddleware, setup_logging
from batterysim import __version__


def create_app() -> FastAPI:
    setup_logging(json_format=settings.log_json, level=settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        version=__version__,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestLoggingMiddleware)

    application.include_router(
        simulations.router, prefix="/api/v1", tags=["simulations"]
    )

    @application.get("/health")
    async def health_check() -> dict:
        return {
            "status": "ok",
            "version": __version__,
            "interval_minutes": settings.interval_minutes,
        }

    return application


app = create_app()
