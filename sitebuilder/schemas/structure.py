"""Structure editor request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from sitebuilder.schemas.site import StructureNodeSchema


class ProjectRequest(BaseModel):
    """An in-progress drag: dragged node, hovered node and pointer offset."""

    active_id: str = Field(min_length=1)
    over_id: str = Field(min_length=1)
    offset: float = 0.0


class ProjectionResponse(BaseModel):
    depth: int
    min_depth: int
    max_depth: int
    parent_id: str | None
    index: int


class MoveRequest(BaseModel):
    """Explicit move of a node to a parent and sibling index."""

    active_path: str = Field(min_length=1)
    new_parent_path: str | None = None
    index: int = Field(default=0, ge=0)


class DragRequest(ProjectRequest):
    """A completed drag; ``over_id`` may be the root drop zone."""


class StructureResponse(BaseModel):
    changed: bool
    structure: list[StructureNodeSchema]
