"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sitebuilder.config import Settings


class TestSettings:
    def test_default_settings(self) -> None:
        s = Settings(_env_file=None)
        assert s.debug is False
        assert s.port == 8000
        assert s.sites_dir == Path("./sites")
        assert s.indentation_width == 24
        assert s.max_tree_depth == 2

    def test_custom_settings(self, tmp_path: Path) -> None:
        s = Settings(
            _env_file=None,
            debug=True,
            sites_dir=tmp_path / "sites",
            default_collection_layout="cards",
        )
        assert s.debug is True
        assert s.sites_dir == tmp_path / "sites"
        assert s.default_collection_layout == "cards"

    def test_settings_from_fixture(self, test_settings: Settings) -> None:
        assert test_settings.debug is True
        assert test_settings.sites_dir.exists()

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("INDENTATION_WIDTH", "32")
        s = Settings(_env_file=None)
        assert s.port == 9001
        assert s.indentation_width == 32

    def test_invalid_port(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, port=0)

    def test_preview_root(self) -> None:
        s = Settings(_env_file=None)
        assert s.preview_root_for("demo") == "/sites/demo/view"

    @pytest.mark.parametrize("value", ["sites/{site_id}/view", "/preview", ""])
    def test_invalid_preview_root(self, value: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, preview_root=value)

    def test_preview_root_trailing_slash(self) -> None:
        s = Settings(_env_file=None, preview_root="/p/{site_id}/")
        assert s.preview_root == "/p/{site_id}"
        assert s.preview_root_for("demo") == "/p/demo"


class TestCliEntry:
    def test_cli_entry_uses_app_settings(self) -> None:
        """cli_entry() should use the global app's settings, not create a new Settings()."""
        from sitebuilder.main import app, cli_entry

        original_settings = getattr(app.state, "settings", None)
        app.state.settings = Settings(_env_file=None, host="127.0.0.1", port=9999, debug=True)

        try:
            with patch("uvicorn.run") as mock_run:
                cli_entry()

            mock_run.assert_called_once_with(
                "sitebuilder.main:app",
                host="127.0.0.1",
                port=9999,
                reload=True,
            )
        finally:
            if original_settings is None:
                del app.state.settings
            else:
                app.state.settings = original_settings
