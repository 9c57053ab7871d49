from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from ..errors import NotFoundError, ValidationError
from ..models import TodoRecord
from ..repositories import TodoStore
from ..schemas import (
    ErrorOut,
    MessageOut,
    TodoCreate,
    TodoCreated,
    TodoList,
    TodoUpdate,
    parse_todo_id,
    to_view,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/todo",
    tags=["todos"],
)

_ERROR_RESPONSES = {
    400: {"model": ErrorOut, "description": "Invalid ID or request payload"},
    500: {"model": ErrorOut, "description": "Document store failure"},
}


def _get_store(request: Request) -> TodoStore:
    """
    Dependency returning the store attached to the running application.
    """
    return request.app.state.store


def _now() -> datetime:
    # MongoDB keeps milliseconds; truncate so the stored and returned values agree.
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _require_title(title: str) -> str:
    if not title:
        raise ValidationError("Title field is required")
    return title


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TodoList,
    summary="List Todos",
    description="Return every todo item. No ordering guarantee, no pagination.",
    responses={500: _ERROR_RESPONSES[500]},
)
def fetch_todos(store: TodoStore = Depends(_get_store)) -> TodoList:
    """
    List all todos.
    """
    records = store.find_all()
    return TodoList(data=[to_view(r) for r in records])


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoCreated,
    summary="Create Todo",
    description="Create a new todo item from a title. New items are never completed.",
    responses=_ERROR_RESPONSES,
)
def create_todo(payload: TodoCreate, store: TodoStore = Depends(_get_store)) -> TodoCreated:
    """
    Create a new Todo and return its identifier.
    """
    record = TodoRecord(
        title=_require_title(payload.title),
        completed=False,
        created_at=_now(),
    )
    todo_id = store.insert(record)
    logger.info("Created todo %s", todo_id)
    return TodoCreated(message="Todo successfully saved", todo_id=str(todo_id))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=MessageOut,
    summary="Update Todo",
    description=(
        "Set the title and completion flag of an existing todo. An omitted flag is false. "
        "The identifier and creation time never change."
    ),
    responses={**_ERROR_RESPONSES, 404: {"model": ErrorOut, "description": "Todo not found"}},
)
def update_todo(
    todo_id: str,
    payload: TodoUpdate,
    store: TodoStore = Depends(_get_store),
) -> MessageOut:
    """
    Update a Todo. Returns 404 when no todo has the given identifier.
    """
    object_id = parse_todo_id(todo_id)
    fields: Dict[str, Any] = {
        "title": _require_title(payload.title),
        "completed": payload.completed,
    }

    if store.update_by_id(object_id, fields) == 0:
        raise NotFoundError("Todo not found")
    return MessageOut(message="Successfully updated TODO")


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=MessageOut,
    summary="Delete Todo",
    description="Delete a todo item by identifier.",
    responses={**_ERROR_RESPONSES, 404: {"model": ErrorOut, "description": "Todo not found"}},
)
def delete_todo(todo_id: str, store: TodoStore = Depends(_get_store)) -> MessageOut:
    """
    Delete a Todo. Returns 404 if not found.
    """
    object_id = parse_todo_id(todo_id)
    if store.delete_by_id(object_id) == 0:
        raise NotFoundError("Todo not found")
    return MessageOut(message="Successfully deleted TODO")
