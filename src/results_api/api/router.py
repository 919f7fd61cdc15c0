"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from results_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from results_api.api.v1.results import results_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(results_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware on the FastAPI app.

    CORS is only enabled when origins are configured; read endpoints are
    GET-only.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    if settings.cors_origin_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origin_list,
            allow_methods=["GET"],
            allow_headers=["*"],
        )
