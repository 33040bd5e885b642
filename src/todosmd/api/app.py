"""FastAPI application factory for the todosmd REST API."""

from fastapi import APIRouter, FastAPI

from todosmd.api.task_routes import register_task_routes


def create_app(cache) -> FastAPI:
    """Build and return a FastAPI app wired to the given IndexCache."""
    app = FastAPI(title="todosmd", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_task_routes(api, cache)
    app.include_router(api)

    return app
