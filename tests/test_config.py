"""Tests for mdexport.config: dotfile loading and env overrides."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from mdexport.config import APP_NAME, MarkdownConfig, load_markdown_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MDEXPORT_STYLE_CSS", raising=False)
    monkeypatch.delenv("MDEXPORT_HIGHLIGHT_CSS", raising=False)


class TestLoadMarkdownConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_markdown_config(tmp_path / "absent.cfg") == MarkdownConfig()

    def test_reads_known_keys(self, tmp_path: Path) -> None:
        cfg = tmp_path / "mdexport.cfg"
        cfg.write_text(
            json.dumps({"rendering_style_file": "/s.css", "use_transparent_bg": True, "unknown": 1}),
            encoding="utf-8",
        )

        config = load_markdown_config(cfg)

        assert config.rendering_style_file == "/s.css"
        assert config.use_transparent_bg is True
        assert config.app_name == APP_NAME

    def test_wrong_types_are_ignored(self, tmp_path: Path) -> None:
        cfg = tmp_path / "mdexport.cfg"
        cfg.write_text(json.dumps({"use_transparent_bg": "yes", "app_name": 3}), encoding="utf-8")
        assert load_markdown_config(cfg) == MarkdownConfig()

    def test_malformed_file_gives_defaults(self, tmp_path: Path) -> None:
        cfg = tmp_path / "mdexport.cfg"
        cfg.write_text("{not json", encoding="utf-8")
        assert load_markdown_config(cfg) == MarkdownConfig()

    def test_env_overrides_style_paths(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        cfg = tmp_path / "mdexport.cfg"
        cfg.write_text(json.dumps({"rendering_style_file": "/from-file.css"}), encoding="utf-8")
        monkeypatch.setenv("MDEXPORT_STYLE_CSS", "/from-env.css")
        monkeypatch.setenv("MDEXPORT_HIGHLIGHT_CSS", "/hl.css")

        config = load_markdown_config(cfg)

        assert config.rendering_style_file == "/from-env.css"
        assert config.syntax_highlight_style_file == "/hl.css"
