from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from bson import ObjectId


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TodoRecord:
    """
    Storage representation of a todo document.

    Fields:
    - id: ObjectId assigned on insert (None until the record is stored)
    - title: Non-empty title, enforced by the request handlers
    - completed: Completion flag, False at creation
    - created_at: UTC creation timestamp, never modified afterwards
    """

    title: str
    completed: bool
    created_at: datetime
    id: Optional[ObjectId] = None

    def with_id(self, todo_id: ObjectId) -> "TodoRecord":
        return replace(self, id=todo_id)
