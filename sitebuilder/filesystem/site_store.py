"""Site directories on disk: loading, caching and persisted mutations.

A site lives in ``<sites_dir>/<site_id>/``::

    manifest.toml
    content/**/*.md
    layouts/<layout id>/...
    themes/<theme name>/...
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sitebuilder.exceptions import SiteNotFoundError
from sitebuilder.filesystem.frontmatter import parse_content_file, serialize_content_file, slug_from_path
from sitebuilder.filesystem.toml_manager import MANIFEST_FILE, parse_manifest, write_manifest
from sitebuilder.models.site import HOMEPAGE_FIELD, ContentFile, SiteManifest, SiteModel
from sitebuilder.models.structure import NodeType, StructureNode
from sitebuilder.services.reposition_service import INDENTATION_WIDTH, apply_move, reposition
from sitebuilder.services.structure_service import (
    MAX_TREE_DEPTH,
    DeletePolicy,
    build_index,
    descendant_paths,
    find_node,
    flatten_tree,
    insert_node,
    move_node,
    remove_node,
    update_node,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_SITE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
_BUNDLE_DIRS: tuple[str, ...] = ("layouts", "themes")


def validate_content_path(path: str) -> str:
    """Content paths look like ``content/<slug>.md``; raises ValueError otherwise."""
    if not path.startswith("content/") or not path.endswith(".md") or path == "content/.md":
        raise ValueError(f"Invalid content path: {path}")
    if any(part in ("", ".", "..") for part in path.split("/")):
        raise ValueError(f"Invalid content path: {path}")
    return path


def _is_top_level(structure: tuple[StructureNode, ...], path: str) -> bool:
    return any(node.path == path for node in structure)


def _read_text_files(root: Path, site_dir: Path) -> dict[str, str]:
    files: dict[str, str] = {}
    if not root.is_dir():
        return files
    for file_path in sorted(root.rglob("*")):
        if not file_path.is_file():
            continue
        rel_path = file_path.relative_to(site_dir).as_posix()
        try:
            files[rel_path] = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.debug("Skipping binary asset %s", rel_path)
    return files


class SiteStore:
    """Loads sites from disk and persists structure and content changes.

    Loaded sites are cached; every mutation writes through to disk and
    replaces the cached model. Mutations are serialized by a lock.
    """

    def __init__(
        self,
        sites_dir: Path,
        max_depth: int = MAX_TREE_DEPTH,
        indentation_width: int = INDENTATION_WIDTH,
    ) -> None:
        self.sites_dir = sites_dir
        self.max_depth = max_depth
        self.indentation_width = indentation_width
        self._sites: dict[str, SiteModel] = {}
        self._lock = asyncio.Lock()

    def _site_dir(self, site_id: str) -> Path:
        if not _SITE_ID_RE.fullmatch(site_id):
            raise ValueError(f"Invalid site id: {site_id}")
        return self.sites_dir / site_id

    def _validate_path(self, site_id: str, rel_path: str) -> Path:
        """Resolve a site-relative path; raises ValueError if it escapes the site."""
        site_dir = self._site_dir(site_id).resolve()
        full_path = (site_dir / rel_path).resolve()
        if not full_path.is_relative_to(site_dir):
            raise ValueError(f"Path traversal detected: {rel_path}")
        return full_path

    def list_site_ids(self) -> list[str]:
        if not self.sites_dir.is_dir():
            return []
        return sorted(
            p.name for p in self.sites_dir.iterdir() if p.is_dir() and _SITE_ID_RE.fullmatch(p.name)
        )

    async def read_site_file(self, site_id: str, rel_path: str) -> bytes | None:
        """Raw bytes of a file inside the site directory, or None when missing.

        Raises ValueError for paths that escape the site directory.
        """
        full_path = self._validate_path(site_id, rel_path)
        if not full_path.is_file():
            return None
        return await asyncio.to_thread(full_path.read_bytes)

    def get_site_by_id(self, site_id: str) -> SiteModel | None:
        """The cached site, if it has been loaded."""
        return self._sites.get(site_id)

    async def get_site(self, site_id: str) -> SiteModel:
        """Cached site, loading it on first use."""
        site = self._sites.get(site_id)
        if site is None:
            site = await self.load_site(site_id)
        return site

    def _read_site(self, site_id: str) -> SiteModel:
        site_dir = self._site_dir(site_id)
        if not site_dir.is_dir():
            raise SiteNotFoundError(f"Site not found: {site_id}")
        manifest = parse_manifest(site_dir)

        content_files: dict[str, ContentFile] = {}
        content_dir = site_dir / "content"
        if content_dir.is_dir():
            for file_path in sorted(content_dir.rglob("*.md")):
                rel_path = file_path.relative_to(site_dir).as_posix()
                try:
                    content_files[rel_path] = parse_content_file(
                        file_path.read_text(encoding="utf-8"), rel_path
                    )
                except ValueError:
                    logger.exception("Skipping content file %s due to parse error", rel_path)

        bundles = {name: _read_text_files(site_dir / name, site_dir) for name in _BUNDLE_DIRS}
        return SiteModel(
            manifest=manifest,
            content_files=content_files,
            layout_files=bundles["layouts"],
            theme_files=bundles["themes"],
        )

    async def load_site(self, site_id: str) -> SiteModel:
        """Read a site from disk, repairing its homepage flag if needed.

        Raises SiteNotFoundError when the site directory does not exist.
        """
        async with self._lock:
            site = await asyncio.to_thread(self._read_site, site_id)
            site = await asyncio.to_thread(self._repair_homepage, site)
            self._sites[site_id] = site
            return site

    def _repair_homepage(self, site: SiteModel) -> SiteModel:
        """Ensure exactly one top-level content file in the tree is the homepage."""
        structure = site.manifest.structure
        tree_paths = [item.id for item in flatten_tree(structure)]
        in_tree = set(tree_paths)
        flagged_in_tree = [
            p for p in tree_paths if (f := site.get_content_file(p)) is not None and f.is_homepage
        ]
        flagged_elsewhere = [
            p for p, f in site.content_files.items() if f.is_homepage and p not in in_tree
        ]

        keep: str | None
        if flagged_in_tree:
            keep = flagged_in_tree[0]
            if len(flagged_in_tree) > 1 or flagged_elsewhere:
                logger.warning(
                    "Site %s has several homepage flags; keeping %s", site.site_id, keep
                )
        else:
            keep = next(
                (
                    node.path
                    for node in structure
                    if node.type is NodeType.PAGE and site.get_content_file(node.path) is not None
                ),
                None,
            )
            if keep is not None:
                logger.warning("Site %s has no homepage; using %s", site.site_id, keep)

        changed = [p for p in flagged_in_tree + flagged_elsewhere if p != keep]
        if keep is not None and keep not in flagged_in_tree:
            changed.append(keep)

        content_files = dict(site.content_files)
        for path in changed:
            content_files[path] = self._with_homepage_flag(content_files[path], path == keep)
            self._write_content_file(site.site_id, content_files[path])

        manifest = site.manifest
        if keep is not None and not _is_top_level(structure, keep):
            logger.warning(
                "Homepage %s of site %s is nested; moving it to the top level", keep, site.site_id
            )
            manifest = replace(
                manifest, structure=move_node(structure, keep, None, 0, max_depth=self.max_depth)
            )
            write_manifest(self._site_dir(site.site_id), manifest)

        if not changed and manifest is site.manifest:
            return site
        return replace(site, manifest=manifest, content_files=content_files)

    @staticmethod
    def _with_homepage_flag(content_file: ContentFile, flag: bool) -> ContentFile:
        frontmatter = dict(content_file.frontmatter)
        if flag:
            frontmatter[HOMEPAGE_FIELD] = True
        else:
            frontmatter.pop(HOMEPAGE_FIELD, None)
        return replace(content_file, frontmatter=frontmatter)

    def _write_content_file(self, site_id: str, content_file: ContentFile) -> None:
        full_path = self._validate_path(site_id, validate_content_path(content_file.path))
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(serialize_content_file(content_file), encoding="utf-8")

    def _delete_content_files(self, site_id: str, paths: Iterable[str]) -> None:
        for path in paths:
            full_path = self._validate_path(site_id, validate_content_path(path))
            if full_path.exists():
                full_path.unlink()

    def _homepage_path(self, site: SiteModel) -> str | None:
        homepage = site.homepage
        return homepage.path if homepage is not None else None

    async def _save_structure(self, site: SiteModel, structure: tuple[StructureNode, ...]) -> SiteModel:
        if structure == site.manifest.structure:
            return site
        manifest = replace(site.manifest, structure=structure)
        await asyncio.to_thread(write_manifest, self._site_dir(site.site_id), manifest)
        updated = replace(site, manifest=manifest)
        self._sites[site.site_id] = updated
        return updated

    async def reposition_node(
        self,
        site_id: str,
        active_path: str,
        new_parent_path: str | None,
        index: int,
    ) -> SiteModel:
        """Move a node to an explicit parent and index; invalid moves change nothing."""
        site = await self.get_site(site_id)
        async with self._lock:
            site = self._sites[site_id]
            structure = apply_move(
                site.manifest.structure,
                active_path,
                new_parent_path,
                index,
                homepage_path=self._homepage_path(site),
                max_depth=self.max_depth,
            )
            return await self._save_structure(site, structure)

    async def apply_gesture(self, site_id: str, active_id: str, over_id: str, offset: float) -> SiteModel:
        """Apply a complete drag-and-drop gesture and persist the result."""
        site = await self.get_site(site_id)
        async with self._lock:
            site = self._sites[site_id]
            structure = reposition(
                site.manifest.structure,
                active_id,
                over_id,
                offset,
                homepage_path=self._homepage_path(site),
                indentation_width=self.indentation_width,
                max_depth=self.max_depth,
            )
            return await self._save_structure(site, structure)

    async def update_manifest(self, site_id: str, manifest: SiteManifest) -> SiteModel:
        """Replace the manifest.

        Raises ValueError when the structure repeats a path, nests deeper than
        the depth limit, or no longer keeps the homepage at the top level.
        """
        site = await self.get_site(site_id)
        if manifest.site_id != site_id:
            raise ValueError("Manifest belongs to a different site")
        build_index(manifest.structure)
        depth = max((item.depth for item in flatten_tree(manifest.structure)), default=0)
        if depth > self.max_depth:
            raise ValueError(f"Structure nesting depth {depth} exceeds the limit of {self.max_depth}")
        async with self._lock:
            site = self._sites[site_id]
            homepage_path = self._homepage_path(site)
            if homepage_path is not None and not _is_top_level(manifest.structure, homepage_path):
                raise ValueError("The homepage must be a top-level page")
            await asyncio.to_thread(write_manifest, self._site_dir(site_id), manifest)
            updated = replace(site, manifest=manifest)
            self._sites[site_id] = updated
            return updated

    async def add_or_update_content_file(
        self,
        site_id: str,
        path: str,
        frontmatter: dict[str, Any],
        content: str,
        parent_path: str | None = None,
    ) -> ContentFile:
        """Write a content file and keep the structure tree in step.

        A new file gets a tree node appended under ``parent_path``; the first
        page of an empty site becomes its homepage. The homepage flag itself
        is only changed through ``set_homepage``.
        """
        validate_content_path(path)
        self._validate_path(site_id, path)
        site = await self.get_site(site_id)
        async with self._lock:
            site = self._sites[site_id]
            existing = site.get_content_file(path)
            data = {k: v for k, v in frontmatter.items() if k != HOMEPAGE_FIELD}
            structure = site.manifest.structure
            is_homepage = existing.is_homepage if existing is not None else not structure
            if is_homepage:
                data[HOMEPAGE_FIELD] = True

            content_file = ContentFile(path=path, slug=slug_from_path(path), frontmatter=data, content=content)
            node = find_node(structure, path)
            if node is None:
                structure = insert_node(
                    structure,
                    StructureNode(path=path, title=content_file.title),
                    parent_path=parent_path,
                    max_depth=self.max_depth,
                )
            elif node.title != content_file.title:
                structure = update_node(structure, path, title=content_file.title)

            await asyncio.to_thread(self._write_content_file, site_id, content_file)
            content_files = {**site.content_files, path: content_file}
            site = replace(site, content_files=content_files)
            self._sites[site_id] = site
            await self._save_structure(site, structure)
            return content_file

    async def delete_content_file(
        self,
        site_id: str,
        path: str,
        policy: DeletePolicy = DeletePolicy.CASCADE,
    ) -> SiteModel:
        """Remove a page and its tree node.

        ``CASCADE`` also deletes every descendant page; ``REPARENT`` moves the
        children up to the deleted node's parent. The homepage cannot be
        deleted.
        """
        validate_content_path(path)
        site = await self.get_site(site_id)
        async with self._lock:
            site = self._sites[site_id]
            if path == self._homepage_path(site):
                raise ValueError("The homepage cannot be deleted; choose another homepage first")
            structure = site.manifest.structure
            removed = {path}
            if find_node(structure, path) is not None:
                if policy is DeletePolicy.CASCADE:
                    removed |= descendant_paths(structure, path)
                structure = remove_node(structure, path, policy)
            elif site.get_content_file(path) is None:
                raise ValueError(f"Content file not found: {path}")

            await asyncio.to_thread(self._delete_content_files, site_id, sorted(removed))
            content_files = {p: f for p, f in site.content_files.items() if p not in removed}
            site = replace(site, content_files=content_files)
            self._sites[site_id] = site
            return await self._save_structure(site, structure)

    async def set_homepage(self, site_id: str, path: str) -> SiteModel:
        """Move the homepage flag to the top-level page at ``path``."""
        site = await self.get_site(site_id)
        async with self._lock:
            site = self._sites[site_id]
            target = site.get_content_file(path)
            if target is None:
                raise ValueError(f"Content file not found: {path}")
            if not _is_top_level(site.manifest.structure, path):
                raise ValueError("The homepage must be a top-level page")

            content_files = dict(site.content_files)
            previous = self._homepage_path(site)
            changed: list[ContentFile] = []
            if previous is not None and previous != path:
                content_files[previous] = self._with_homepage_flag(content_files[previous], False)
                changed.append(content_files[previous])
            if not target.is_homepage:
                content_files[path] = self._with_homepage_flag(target, True)
                changed.append(content_files[path])

            for content_file in changed:
                await asyncio.to_thread(self._write_content_file, site_id, content_file)
            site = replace(site, content_files=content_files)
            self._sites[site_id] = site
            return site

    async def create_site(self, site_id: str, title: str) -> SiteModel:
        """Create an empty site directory with a manifest."""
        site_dir = self._site_dir(site_id)
        if (site_dir / MANIFEST_FILE).exists():
            raise ValueError(f"Site already exists: {site_id}")
        manifest = SiteManifest(site_id=site_id, title=title)

        def _create() -> None:
            (site_dir / "content").mkdir(parents=True, exist_ok=True)
            write_manifest(site_dir, manifest)

        await asyncio.to_thread(_create)
        return await self.load_site(site_id)
