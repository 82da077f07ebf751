"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients.
  The global handler logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``RenderError``: a render call failed at a named pipeline stage. Fatal for
  that render, never retried.
- ``ValueError``: for *business logic* validation errors that are safe to
  forward to clients (duplicate paths, invalid frontmatter, etc.).  The global
  ``ValueError`` handler returns ``str(exc)`` as the 422 detail.
- Unresolvable page paths are not exceptions: the resolver returns a
  ``NotFound`` result and the renderer produces a fallback page.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients."""


class RenderError(RuntimeError):
    """Raised when a render pipeline stage fails."""

    def __init__(self, message: str, stage: str = "") -> None:
        super().__init__(message)
        self.stage = stage


class TemplateAssetMissingError(RenderError):
    """A required body or shell template could not be loaded."""

    def __init__(self, asset_path: str, stage: str = "") -> None:
        super().__init__(f"Template asset not found: {asset_path}", stage=stage)
        self.asset_path = asset_path


class SiteNotFoundError(LookupError):
    """No site exists with the requested ID."""


class PageOutOfRangeError(LookupError):
    """A paginated listing was asked for a page beyond its last page."""
