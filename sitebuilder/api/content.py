"""Content file and homepage endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from sitebuilder.api.deps import get_asset_store, get_settings, get_site, get_site_store
from sitebuilder.config import Settings
from sitebuilder.filesystem.assets import AssetStore
from sitebuilder.filesystem.frontmatter import slug_from_path
from sitebuilder.filesystem.site_store import SiteStore, validate_content_path
from sitebuilder.models.site import ContentFile, SiteModel
from sitebuilder.schemas.content import ContentResponse, ContentUpdateRequest, HomepageRequest
from sitebuilder.schemas.site import SiteResponse
from sitebuilder.services.schema_service import schema_for_content, validate_frontmatter
from sitebuilder.services.structure_service import DeletePolicy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sites/{site_id}", tags=["content"])


def _content_path(path: str) -> str:
    """``about.md`` or ``content/about.md`` -> ``content/about.md``."""
    rel_path = path.strip("/")
    if not rel_path.startswith("content/"):
        rel_path = f"content/{rel_path}"
    return validate_content_path(rel_path)


@router.put("/content/{path:path}", response_model=ContentResponse)
async def put_content(
    path: str,
    body: ContentUpdateRequest,
    site: Annotated[SiteModel, Depends(get_site)],
    store: Annotated[SiteStore, Depends(get_site_store)],
    asset_store: Annotated[AssetStore, Depends(get_asset_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ContentResponse:
    """Create or update a page; frontmatter is checked against its layout schema."""
    content_path = _content_path(path)
    candidate = ContentFile(
        path=content_path,
        slug=slug_from_path(content_path),
        frontmatter=body.frontmatter,
        content=body.content,
    )
    schema = await schema_for_content(
        site,
        candidate,
        asset_store,
        default_page_layout=settings.default_page_layout,
        default_collection_layout=settings.default_collection_layout,
    )
    errors = validate_frontmatter(body.frontmatter, schema)
    if errors:
        raise ValueError("Invalid frontmatter: " + "; ".join(errors))

    saved = await store.add_or_update_content_file(
        site.site_id, content_path, body.frontmatter, body.content, parent_path=body.parent_path
    )
    logger.info("Saved %s on site %s", content_path, site.site_id)
    return ContentResponse.from_file(saved)


@router.delete("/content/{path:path}", response_model=SiteResponse)
async def delete_content(
    path: str,
    site: Annotated[SiteModel, Depends(get_site)],
    store: Annotated[SiteStore, Depends(get_site_store)],
    policy: DeletePolicy = DeletePolicy.CASCADE,
) -> SiteResponse:
    """Delete a page; ``policy`` decides what happens to its children."""
    content_path = _content_path(path)
    updated = await store.delete_content_file(site.site_id, content_path, policy)
    logger.info("Deleted %s (%s) on site %s", content_path, policy, site.site_id)
    return SiteResponse.from_site(updated)


@router.put("/homepage", response_model=SiteResponse)
async def put_homepage(
    body: HomepageRequest,
    site: Annotated[SiteModel, Depends(get_site)],
    store: Annotated[SiteStore, Depends(get_site_store)],
) -> SiteResponse:
    """Make a top-level page the homepage."""
    updated = await store.set_homepage(site.site_id, _content_path(body.path))
    return SiteResponse.from_site(updated)
