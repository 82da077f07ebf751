"""Structure editor endpoints: drag projection and persisted moves."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from sitebuilder.api.deps import get_site, get_site_store
from sitebuilder.filesystem.site_store import SiteStore
from sitebuilder.models.site import SiteModel
from sitebuilder.schemas.site import structure_schema
from sitebuilder.schemas.structure import (
    DragRequest,
    MoveRequest,
    ProjectionResponse,
    ProjectRequest,
    StructureResponse,
)
from sitebuilder.services.reposition_service import project_move
from sitebuilder.services.structure_service import flatten_tree

router = APIRouter(prefix="/api/sites/{site_id}/structure", tags=["structure"])


def _response(before: SiteModel, after: SiteModel) -> StructureResponse:
    return StructureResponse(
        changed=after.manifest.structure != before.manifest.structure,
        structure=structure_schema(after.manifest.structure),
    )


@router.post("/project", response_model=ProjectionResponse | None)
async def project_endpoint(
    body: ProjectRequest,
    site: Annotated[SiteModel, Depends(get_site)],
    store: Annotated[SiteStore, Depends(get_site_store)],
) -> ProjectionResponse | None:
    """Where the dragged node would land; null when the drop is not allowed."""
    homepage = site.homepage
    exclude = (homepage.path,) if homepage is not None else ()
    projection = project_move(
        flatten_tree(site.manifest.structure, exclude=exclude),
        body.active_id,
        body.over_id,
        body.offset,
        indentation_width=store.indentation_width,
        max_depth=store.max_depth,
    )
    if projection is None:
        return None
    return ProjectionResponse(
        depth=projection.depth,
        min_depth=projection.min_depth,
        max_depth=projection.max_depth,
        parent_id=projection.parent_id,
        index=projection.index,
    )


@router.post("/move", response_model=StructureResponse)
async def move_endpoint(
    body: MoveRequest,
    site: Annotated[SiteModel, Depends(get_site)],
    store: Annotated[SiteStore, Depends(get_site_store)],
) -> StructureResponse:
    """Move a node to an explicit parent and index; invalid moves change nothing."""
    updated = await store.reposition_node(
        site.site_id, body.active_path, body.new_parent_path, body.index
    )
    return _response(site, updated)


@router.post("/drag", response_model=StructureResponse)
async def drag_endpoint(
    body: DragRequest,
    site: Annotated[SiteModel, Depends(get_site)],
    store: Annotated[SiteStore, Depends(get_site_store)],
) -> StructureResponse:
    """Apply a completed drag-and-drop gesture."""
    updated = await store.apply_gesture(site.site_id, body.active_id, body.over_id, body.offset)
    return _response(site, updated)
