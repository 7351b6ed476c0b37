"""Record types held by the stores."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class Target(str, Enum):
    """Record collection a data store operates over."""
    TASKS = "tasks"
    ANNOTATIONS = "annotations"


class Mode(str, Enum):
    """Top-level interaction state."""
    EXPLORER = "explorer"
    LABEL_STREAM = "labelstream"
    LABELING = "labeling"


class Item(BaseModel):
    """One cached record.

    Arbitrary server fields are kept as extra attributes. ``source`` is the
    JSON snapshot of the record as received and is never patched.
    """
    model_config = ConfigDict(extra='allow')

    id: int
    source: str = Field(default="", repr=False)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Item":
        data = {key: value for key, value in record.items() if key != "source"}
        return cls(**data, source=json.dumps(data, sort_keys=True, default=str))

    def update(self, patch: Mapping[str, Any]) -> None:
        for key, value in patch.items():
            if key in ("id", "source"):
                continue
            setattr(self, key, value)

    @property
    def original(self) -> Dict[str, Any]:
        """Record as it was received."""
        return json.loads(self.source) if self.source else {}

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"source"})


class TaskItem(Item):
    total_annotations: int = 0
    total_predictions: int = 0


class AnnotationItem(Item):
    task_id: Optional[int] = None


class Action(BaseModel):
    """Action advertised by the server."""
    model_config = ConfigDict(extra='allow')

    id: str
    title: str = ""
    order: int = 0
    dialog: Optional[Dict[str, Any]] = None


class User(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: int
    username: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.username or self.email
