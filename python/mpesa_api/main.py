"""
FastAPI Main Application

Entry point for the M-Pesa processing API.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import config_dir_from_env, init_processors
from .routes import matching_router, parsing_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting M-Pesa Processor API...")
    init_processors(app.state, config_dir_from_env())
    yield
    # Shutdown
    logger.info("Shutting down M-Pesa Processor API...")


app = FastAPI(
    title="M-Pesa Processor API",
    description="Parse M-Pesa SMS messages and statements, detect duplicates and match recurring payments",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(parsing_router, prefix="/api")
app.include_router(matching_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "M-Pesa Processor API",
        "version": "1.0.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "endpoints": {
            "parse_message": "/api/parse/message",
            "parse_messages": "/api/parse/messages",
            "parse_statement": "/api/parse/statement",
            "duplicates": "/api/match/duplicates",
            "recurring": "/api/match/recurring",
            "link": "/api/match/link",
            "category": "/api/match/category",
            "categorize": "/api/categorize",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mpesa_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
