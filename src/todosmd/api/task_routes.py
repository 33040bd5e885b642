"""REST API routes for task queries, status edits and index maintenance."""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from todosmd.tools.task_tools import (
    handle_index_rebuild,
    handle_index_status,
    handle_task_get,
    handle_task_query,
    handle_task_search,
    handle_task_set_status,
    handle_task_stats,
)


class TaskStatusBody(BaseModel):
    status: str


def _raise_on_error(result: dict, status_code: int = 400) -> dict:
    if "error" in result:
        raise HTTPException(status_code=status_code, detail=result["error"])
    return result


def register_task_routes(app_router: APIRouter, cache) -> None:
    """Attach task REST routes that use the shared cache."""

    @app_router.get("/tasks")
    def list_tasks(
        q: str = Query(""),
        status: str = Query("open"),
        sort: str = Query("project"),
        priority_order: str = Query("high-first"),
        limit: int = Query(200),
    ):
        return _raise_on_error(
            handle_task_query(
                cache,
                query=q,
                status=status,
                sort=sort,
                priority_order=priority_order,
                limit=limit,
            )
        )

    @app_router.get("/tasks/{global_id}")
    def get_task(global_id: str):
        return _raise_on_error(handle_task_get(cache, global_id=global_id), status_code=404)

    @app_router.patch("/tasks/{global_id}")
    def set_task_status(global_id: str, body: TaskStatusBody):
        if cache.get_task(global_id) is None:
            raise HTTPException(status_code=404, detail=f"Task '{global_id}' not found")
        return _raise_on_error(handle_task_set_status(cache, global_id=global_id, status=body.status))

    @app_router.get("/search")
    def search_tasks(
        text: str = Query(...),
        q: str = Query(""),
        status: str = Query("open"),
        limit: int = Query(200),
    ):
        return _raise_on_error(handle_task_search(cache, text=text, query=q, status=status, limit=limit))

    @app_router.get("/stats")
    def get_stats(
        q: str = Query(""),
        period: str = Query("last-7d"),
        status: str = Query("all"),
    ):
        return _raise_on_error(handle_task_stats(cache, query=q, period=period, status=status))

    @app_router.post("/index/rebuild")
    def rebuild_index():
        return handle_index_rebuild(cache)

    @app_router.get("/index/status")
    def get_index_status():
        return handle_index_status(cache)
