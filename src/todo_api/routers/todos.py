from __future__ import annotations

import logging
from typing import Annotated, Optional, Union

from fastapi import APIRouter, Depends, Path, Query, status

from ..auth import require_access_token
from ..errors import NotFound
from ..repositories import MAX_TODO_ID, ListQuery, Repository
from ..schemas import Envelope, TodoDeleted, TodoList, TodoOut, TodoPage, TodoRequest
from ..services import get_repository
from ..utils import pagination_envelope, success_envelope

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 50

TodoId = Annotated[int, Path(ge=1, le=MAX_TODO_ID, description="Todo identifier")]

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
    dependencies=[Depends(require_access_token)],
    responses={401: {"description": "Missing, invalid or expired access token"}},
)


def _get_or_404(repo: Repository, todo_id: int) -> dict:
    item = repo.get(todo_id)
    if item is None:
        raise NotFound("Todo not found")
    return item


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=Envelope[TodoOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses={
        201: {"description": "Todo created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_todo(payload: TodoRequest, repo: Repository = Depends(get_repository)) -> dict:
    created = repo.create(payload.data)
    logger.info("Created todo %s", created["id"])
    return success_envelope("Todo successfully created", created)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=Envelope[Union[TodoPage, TodoList]],
    summary="List Todos",
    description=(
        "List todos ordered by creation time.\n\n"
        "Query parameters:\n"
        "- limit: max number of items to return (0..1000)\n"
        "- offset: number of items to skip (>=0)\n"
        "- completed: filter by completion status\n"
        "- q: search query for title/description (substring match)\n\n"
        "Without limit/offset the data is {todos}; with either it is a page "
        "object {todos, total, limit, offset}."
    ),
    responses={200: {"description": "List retrieved successfully"}},
)
def list_todos(
    limit: Optional[int] = Query(None, ge=0, le=1000, description="Maximum number of items to return"),
    offset: Optional[int] = Query(None, ge=0, description="Number of items to skip"),
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    q: Optional[str] = Query(None, description="Search text for title/description"),
    repo: Repository = Depends(get_repository),
) -> dict:
    search = q.strip() if q and q.strip() else None
    paginated = limit is not None or offset is not None

    if not paginated:
        items, _ = repo.list(ListQuery(completed=completed, search=search))
        return success_envelope("Todo successfully retrieved", {"todos": items})

    page_limit = DEFAULT_PAGE_LIMIT if limit is None else limit
    page_offset = offset or 0
    items, total = repo.list(
        ListQuery(limit=page_limit, offset=page_offset, completed=completed, search=search)
    )
    return success_envelope(
        "Todo successfully retrieved",
        pagination_envelope(items=items, total=total, limit=page_limit, offset=page_offset),
    )


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=Envelope[TodoOut],
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={
        200: {"description": "Todo found"},
        404: {"description": "Todo not found"},
    },
)
def get_todo(todo_id: TodoId, repo: Repository = Depends(get_repository)) -> dict:
    return success_envelope("Todo successfully retrieved", _get_or_404(repo, todo_id))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=Envelope[TodoOut],
    summary="Replace Todo",
    description=(
        "Replace an existing Todo item. Any fields omitted will be set to their default/null "
        "equivalent as per the schema."
    ),
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def put_todo(todo_id: TodoId, payload: TodoRequest, repo: Repository = Depends(get_repository)) -> dict:
    updated = repo.update(todo_id, payload.data)
    if updated is None:
        raise NotFound("Todo not found")
    logger.info("Updated todo %s", todo_id)
    return success_envelope("Todo successfully updated", updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=Envelope[TodoDeleted],
    summary="Delete Todo",
    description="Delete a Todo item by ID.",
    responses={
        200: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
    },
)
def delete_todo(todo_id: TodoId, repo: Repository = Depends(get_repository)) -> dict:
    if not repo.delete(todo_id):
        raise NotFound("Todo not found")
    logger.info("Deleted todo %s", todo_id)
    return success_envelope("Todo successfully deleted", {"id": todo_id})
