"""
HTTP interface for the task tree
"""

from typing import List, Optional
from fastapi import FastAPI, APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from tasktree.models.task import (
    Task,
    TaskNode,
    TaskCreate,
    SubtaskCreate,
    TaskBulkCreate,
    TaskUpdate,
    TaskMove,
    TaskReorder,
)
from tasktree.models.response import TaskStats, TaskListSummary, DeletedTasksSummary
from tasktree.services.task_tree import TaskTreeStore
from tasktree.web.auth import CallerIdentity, get_caller
from tasktree.utils.error_handler import TaskTreeError, ValidationError, handle_error
from tasktree.utils.formatters import (
    format_all_completed,
    format_all_uncompleted,
    format_completed_deleted,
    format_reordered,
)
from tasktree.utils.date_utils import get_current_datetime_str
from tasktree.utils.logger import logger
from tasktree.config.settings import settings


def get_store(request: Request) -> TaskTreeStore:
    """The process-wide store attached to the app"""
    return request.app.state.store


router = APIRouter(prefix="/api/tasks")


@router.get("", response_model=List[Task])
async def list_tasks(
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """All tasks of the caller, flat"""
    return store.get(caller.id)


@router.get("/tree", response_model=List[TaskNode])
async def task_tree(
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """All tasks of the caller, nested by parent"""
    return store.get_hierarchical(caller.id)


@router.get("/completed", response_model=List[Task])
async def completed_tasks(
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    return store.get_completed(caller.id)


@router.get("/pending", response_model=List[Task])
async def pending_tasks(
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    return store.get_pending(caller.id)


@router.get("/search", response_model=List[Task])
async def search_tasks(
    q: Optional[str] = None,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """Search titles (case-insensitive)"""
    return store.search(caller.id, q)


@router.get("/stats", response_model=TaskStats)
async def task_stats(
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    return store.stats(caller.id)


@router.post("", response_model=Task, status_code=201)
async def create_task(
    payload: TaskCreate,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """Create a task"""
    return store.create(
        caller.id,
        payload.title,
        description=payload.description,
        details=payload.details,
        parent_id=payload.parent_id,
        order=payload.order,
    )


@router.post("/bulk", response_model=List[Task], status_code=201)
async def create_tasks_bulk(
    payload: TaskBulkCreate,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """Create several root tasks from a list of titles"""
    return store.create_bulk(caller.id, payload.tasks)


@router.patch("/complete-all", response_model=TaskListSummary)
async def complete_all(
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    count, tasks = store.complete_all(caller.id)
    return TaskListSummary(message=format_all_completed(count), count=count, tasks=tasks)


@router.patch("/uncomplete-all", response_model=TaskListSummary)
async def uncomplete_all(
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    count, tasks = store.uncomplete_all(caller.id)
    return TaskListSummary(message=format_all_uncompleted(count), count=count, tasks=tasks)


@router.patch("/reorder", response_model=TaskListSummary)
async def reorder_tasks(
    payload: TaskReorder,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """Reorder one sibling group by its full id list"""
    tasks = store.reorder(caller.id, payload.parent_id, payload.order)
    return TaskListSummary(message=format_reordered(len(tasks)), count=len(tasks), tasks=tasks)


@router.delete("/completed", response_model=DeletedTasksSummary)
async def delete_completed(
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    deleted = store.delete_completed(caller.id)
    return DeletedTasksSummary(
        message=format_completed_deleted(len(deleted)),
        deleted_tasks=deleted,
    )


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: int,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    return store.get_task(caller.id, task_id)


@router.post("/{task_id}/subtasks", response_model=Task, status_code=201)
async def create_subtask(
    task_id: int,
    payload: SubtaskCreate,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """Create a subtask under task_id"""
    return store.create_subtask(
        caller.id,
        task_id,
        payload.title,
        description=payload.description,
        details=payload.details,
    )


@router.patch("/{task_id}", response_model=Task)
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """Partial update; only fields present in the body change"""
    return store.update(caller.id, task_id, payload)


@router.patch("/{task_id}/move", response_model=Task)
async def move_task(
    task_id: int,
    payload: TaskMove,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """Change parent and/or position among siblings"""
    return store.move(caller.id, task_id, payload)


@router.post("/{task_id}/duplicate", response_model=Task)
async def duplicate_task(
    task_id: int,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    return store.duplicate(caller.id, task_id)


@router.delete("/{task_id}", response_model=Task)
async def delete_task(
    task_id: int,
    caller: CallerIdentity = Depends(get_caller),
    store: TaskTreeStore = Depends(get_store),
):
    """Delete a task with all of its subtasks"""
    return store.delete(caller.id, task_id)


async def task_tree_error_handler(request: Request, exc: TaskTreeError) -> JSONResponse:
    status_code, body = handle_error(exc)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query strings are client errors (400, not 422)"""
    error = ValidationError("Validation failed", details=jsonable_encoder(exc.errors()))
    return await task_tree_error_handler(request, error)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code, body = handle_error(exc)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def create_app(store: Optional[TaskTreeStore] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        store: Store to serve; a fresh one is created if omitted

    Returns:
        Configured application
    """
    app = FastAPI(title="TaskTree API")
    app.state.store = store if store is not None else TaskTreeStore()

    app.include_router(router)
    app.add_exception_handler(TaskTreeError, task_tree_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.on_event("startup")
    async def startup():
        """Validate settings on startup"""
        try:
            settings.validate()
            if settings.DEV_MODE:
                logger.warning("[Startup] DEV_MODE is on: unauthenticated requests use the dev user")
            logger.info("[Startup] TaskTree API ready")
        except Exception as e:
            logger.error(f"[Startup] Error initializing app: {e}", exc_info=True)
            raise

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok", "time": get_current_datetime_str()}

    return app


# Global application instance
app = create_app()

