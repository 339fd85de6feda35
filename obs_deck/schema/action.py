"""
schema/action.py — Button action definitions.

An Action is one user-invocable button: where it sits on the grid, how it is
drawn, and a property map telling the router which dispatcher operation to
run. The configuration layer creates and edits these; obs_deck only reads
them.

JSON uses camelCase field names (rowSpan, pluginId, ...); Python code uses
snake_case. Both are accepted on input.
"""

from __future__ import annotations

import enum
import json
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .values import PropertyMap


class ActionType(str, enum.Enum):
    NORMAL = "NORMAL"
    FOLDER = "FOLDER"
    COMBINE = "COMBINE"
    GAUGE = "GAUGE"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Action(CamelModel):
    id: str
    type: ActionType = ActionType.NORMAL
    name: str = ""
    row: int = Field(0, ge=0)
    col: int = Field(0, ge=0)
    row_span: int = Field(1, ge=1)
    col_span: int = Field(1, ge=1)
    display_text: Optional[str] = None
    display_text_alignment: Optional[str] = None
    icon_path: Optional[str] = None
    background_color: Optional[str] = None
    properties: PropertyMap = Field(default_factory=dict)
    plugin_id: Optional[str] = None
    version: Optional[str] = None

    @property
    def operation(self) -> Optional[str]:
        op = self.properties.get("operation")
        return op if isinstance(op, str) else None

    @classmethod
    def from_file(cls, path: Path) -> "Action":
        """Load a single action from a .json or .yaml file."""
        text = Path(path).read_text()
        if Path(path).suffix.lower() in (".yaml", ".yml"):
            data: Any = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
        return cls.model_validate(data)
