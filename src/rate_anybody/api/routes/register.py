"""
Route registration entry point for the FastAPI application.
"""

from fastapi import FastAPI

from rate_anybody.api.context import ServiceContext
from rate_anybody.api.routes import health, ratings


def register_routes(app: FastAPI, context: ServiceContext) -> None:
    """Register all API routes with the FastAPI app."""
    app.include_router(health.router)
    app.include_router(ratings.router(context))
