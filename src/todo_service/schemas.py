from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, StrictBool

from .errors import ValidationError
from .models import TodoRecord


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Body accepted by the create endpoint.

    The title is checked by the handler so an empty value yields a 400 with a
    specific message. A 'completed' value must be a boolean when sent, but is
    ignored: new items are never completed.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Buy milk"}})

    title: str = Field(default="", description="Short title for the todo item")
    completed: Optional[StrictBool] = Field(default=None, description="Accepted but ignored")


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Body accepted by the update endpoint.
    An omitted 'completed' is written as false.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy milk", "completed": True}}
    )

    title: str = Field(default="", description="Short title for the todo item")
    completed: StrictBool = Field(default=False, description="Completion status flag")


# PUBLIC_INTERFACE
class TodoView(BaseModel):
    """
    Wire representation of a todo item.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "6650f1c2a4b5c6d7e8f90123",
                "title": "Buy milk",
                "completed": False,
                "create_at": "2025-01-25T10:15:30.123000Z",
            }
        },
    )

    id: str = Field(..., description="Hex string identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., alias="create_at", description="Creation timestamp")


class TodoList(BaseModel):
    data: List[TodoView]


class MessageOut(BaseModel):
    message: str


class TodoCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    todo_id: str = Field(..., alias="Todo ID")


class ErrorOut(BaseModel):
    message: str
    error: Optional[str] = None


# PUBLIC_INTERFACE
def parse_todo_id(raw: str) -> ObjectId:
    """
    Parse a client supplied identifier into an ObjectId.

    Surrounding whitespace is ignored. Raises ValidationError when the value is
    not a 24 character hex string.
    """
    value = (raw or "").strip()
    if not ObjectId.is_valid(value):
        raise ValidationError("Invalid ID")
    return ObjectId(value)


# PUBLIC_INTERFACE
def to_view(record: TodoRecord) -> TodoView:
    """Project a stored record onto its wire representation."""
    return TodoView(
        id=str(record.id) if record.id is not None else "",
        title=record.title,
        completed=record.completed,
        created_at=record.created_at,
    )


# PUBLIC_INTERFACE
def to_record(view: TodoView) -> TodoRecord:
    """
    Rebuild a storage record from its wire representation.

    Raises:
        ValidationError: if the view's id is not a valid ObjectId string.
    """
    return TodoRecord(
        id=parse_todo_id(view.id),
        title=view.title,
        completed=view.completed,
        created_at=view.created_at,
    )
