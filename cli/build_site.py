"""CLI static export: render a site directory into a folder of static files."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from pathlib import Path

from sitebuilder.config import Settings
from sitebuilder.exceptions import RenderError, SiteNotFoundError
from sitebuilder.filesystem.assets import AssetStore
from sitebuilder.filesystem.site_store import SiteStore
from sitebuilder.rendering.build_service import build_site, write_site

logger = logging.getLogger("sitebuilder.cli.build")


async def export_site(
    sites_dir: Path,
    site_id: str,
    output_dir: Path,
    settings: Settings,
    clean: bool = False,
) -> list[Path]:
    """Load ``site_id`` from ``sites_dir`` and write its static export."""
    store = SiteStore(
        sites_dir,
        max_depth=settings.max_tree_depth,
        indentation_width=settings.indentation_width,
    )
    site = await store.load_site(site_id)
    output = await build_site(
        site,
        AssetStore(),
        default_page_layout=settings.default_page_layout,
        default_collection_layout=settings.default_collection_layout,
        site_store=store,
    )
    if clean and output_dir.exists():
        await asyncio.to_thread(shutil.rmtree, output_dir)
    return await write_site(output, output_dir)


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="sitebuilder-build",
        description="Export a site as static HTML",
    )
    parser.add_argument("site_id", help="Site directory name under the sites directory")
    parser.add_argument("--sites-dir", "-s", help="Sites directory (default: from settings)")
    parser.add_argument("--output", "-o", default="dist", help="Output directory (default: dist)")
    parser.add_argument("--clean", action="store_true", help="Remove the output directory first")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    settings = Settings()
    sites_dir = Path(args.sites_dir) if args.sites_dir else settings.sites_dir
    output_dir = Path(args.output).resolve()

    try:
        written = asyncio.run(
            export_site(sites_dir, args.site_id, output_dir, settings, clean=args.clean)
        )
    except SiteNotFoundError:
        print(f"Error: site {args.site_id!r} not found in {sites_dir}")
        sys.exit(1)
    except (ValueError, RenderError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    print(f"Wrote {len(written)} files to {output_dir}")


if __name__ == "__main__":
    main()
