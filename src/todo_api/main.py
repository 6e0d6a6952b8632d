from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .errors import register_exception_handlers
from .logging_config import configure_logging
from .routers import auth as auth_router
from .routers import todos as todos_router
from .services import Services, build_services
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Nonce issuance and sign-in returning a bearer access token."},
    {
        "name": "todos",
        "description": "CRUD operations for Todo items. Every route requires an access token.",
    },
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application with its collaborators injected.

    Settings default to the environment; services default to build_services(settings).
    Both are constructed here, once, and stored on app.state.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Todo Service",
        description="Todo CRUD API guarded by a nonce-based sign-in and bearer access tokens.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.services = services or build_services(settings)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check(request: Request) -> dict:
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": request.app.state.settings.persistence_backend}

    app.include_router(auth_router.router)
    app.include_router(todos_router.router)

    logger.info("Todo service ready (backend=%s)", settings.persistence_backend)
    return app


app = create_app()
