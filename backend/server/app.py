"""
FastAPI app factory for the development game server.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Register routes
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import ServerConfig

from server.routes import register_routes


def create_app(config: ServerConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    config defaults to ServerConfig.load_from_env(); tests pass their own.
    """
    config = config or ServerConfig.load_from_env()

    app = FastAPI(title="Game Dev Server")

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # dev only
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app
