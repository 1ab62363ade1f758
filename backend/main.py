"""
Dataset Visualization Engine - Main Application

FastAPI server for dataset upload, chart shaping and report metrics.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from api.routes import datasets, reports, visualizations
from core.logging_config import get_logger
from llm.ollama_client import ollama_client


logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    os.makedirs(settings.upload_dir, exist_ok=True)
    logger.info(f"{settings.app_name} v{settings.app_version} starting...")
    logger.info(f"Upload directory: {settings.upload_dir}")
    logger.info(f"Cleaning model: {settings.ollama.model}")

    yield

    # Shutdown
    await ollama_client.close()
    logger.info("Shutting down...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Column type inference, chart-ready data shaping and sales report metrics",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(datasets.router, prefix="/api/v1", tags=["Datasets"])
    app.include_router(visualizations.router, prefix="/api/v1", tags=["Visualizations"])
    app.include_router(reports.router, prefix="/api/v1", tags=["Reports"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "llm_available": await ollama_client.is_available(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
