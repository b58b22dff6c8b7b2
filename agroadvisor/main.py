"""
FastAPI application for the soil advisor.

Run with: uvicorn agroadvisor.main:app
"""
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agroadvisor import __version__
from agroadvisor.routers import soil_advisor

LOG_LEVEL = os.environ.get("SOIL_ADVISOR_LOG_LEVEL", "INFO").upper()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Soil Advisor API", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(soil_advisor.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
