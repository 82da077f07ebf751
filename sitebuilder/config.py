"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Site builder application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Paths
    sites_dir: Path = Path("./sites")

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)

    # Rendering
    default_page_layout: str = "page"
    default_collection_layout: str = "listing"
    preview_root: str = "/sites/{site_id}/view"

    # Structure editor
    indentation_width: int = Field(default=24, ge=1)
    max_tree_depth: int = Field(default=2, ge=0)

    @field_validator("preview_root")
    @classmethod
    def preview_root_must_name_site(cls, v: str) -> str:
        """The preview root is an absolute path with a {site_id} segment."""
        _ = cls
        if not v.startswith("/") or "{site_id}" not in v:
            raise ValueError("preview_root must start with / and contain {site_id}")
        return v.rstrip("/")

    def preview_root_for(self, site_id: str) -> str:
        """Live-mode root path for a site's preview URLs."""
        return self.preview_root.format(site_id=site_id).rstrip("/")
