"""Tests for mdexport.templates: skeleton generation and placeholder fills."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from PySide6.QtCore import QUrl

from mdexport.config import MarkdownConfig
from mdexport.templates import (
    BODY_CONTENT_PLACEHOLDER,
    DEFAULT_STYLE,
    MATHJAX_CDN_SOURCES,
    MERMAID_CDN_SOURCES,
    TITLE_PLACEHOLDER,
    fill_body_content,
    fill_title,
    generate_export_template,
    generate_viewer_template,
    mathjax_script_sources,
    mermaid_script_sources,
)


class TestViewerTemplate:
    def test_default_style_and_page_hooks(self) -> None:
        page = generate_viewer_template(MarkdownConfig(), "", "", False)
        assert DEFAULT_STYLE in page
        assert 'id="mdx-content"' in page
        for hook in ("mdxSetContent", "mdxIsReady", "mdxSaveContent"):
            assert f"window.{hook}" in page
        assert "background: transparent !important" not in page

    def test_transparent_background(self) -> None:
        page = generate_viewer_template(MarkdownConfig(), "", "", True)
        assert "background: transparent !important" in page

    def test_style_file_urls_become_absolute(self, tmp_path: Path) -> None:
        css = tmp_path / "theme" / "style.css"
        css.parent.mkdir()
        css.write_text(
            'body { background: url("bg.png"); }\n'
            ".a { background: url(https://example.com/x.png); }\n"
            ".b { background: url('data:image/png;base64,AAAA'); }\n",
            encoding="utf-8",
        )

        page = generate_viewer_template(MarkdownConfig(), str(css), "", False)

        expected = QUrl.fromLocalFile(str((tmp_path / "theme" / "bg.png").resolve())).toString()
        assert f'url("{expected}")' in page
        assert "url(https://example.com/x.png)" in page
        assert "url('data:image/png;base64,AAAA')" in page
        assert DEFAULT_STYLE not in page

    def test_config_style_used_when_option_empty(self, tmp_path: Path) -> None:
        css = tmp_path / "configured.css"
        css.write_text("h1 { color: teal; }", encoding="utf-8")
        config = MarkdownConfig(rendering_style_file=str(css))

        page = generate_viewer_template(config, "", "", False)

        assert "h1 { color: teal; }" in page

    def test_unreadable_style_falls_back_to_default(self, tmp_path: Path) -> None:
        page = generate_viewer_template(MarkdownConfig(), str(tmp_path / "nope.css"), "", False)
        assert DEFAULT_STYLE in page


class TestExportTemplate:
    def test_placeholders_present(self) -> None:
        page = generate_export_template(MarkdownConfig(), False)
        assert TITLE_PLACEHOLDER in page
        assert BODY_CONTENT_PLACEHOLDER in page
        assert "mdx-outline" not in page

    def test_outline_panel(self) -> None:
        page = generate_export_template(MarkdownConfig(), True)
        assert '<nav id="mdx-outline"></nav>' in page
        assert "DOMContentLoaded" in page

    def test_content_width_from_config(self) -> None:
        page = generate_export_template(MarkdownConfig(content_max_width="42rem"), False)
        assert "max-width: 42rem;" in page


class TestFills:
    def test_title_is_escaped(self) -> None:
        page = fill_title(generate_export_template(MarkdownConfig(), False), "a<b> - mdexport")
        assert "<title>a&lt;b&gt; - mdexport</title>" in page

    def test_fill_replaces_one_placeholder_only(self) -> None:
        template = f"{BODY_CONTENT_PLACEHOLDER}|{BODY_CONTENT_PLACEHOLDER}"
        assert fill_body_content(template, "X") == f"X|{BODY_CONTENT_PLACEHOLDER}"


class TestTypesettingScripts:
    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MDEXPORT_MATHJAX_JS", raising=False)
        monkeypatch.delenv("MDEXPORT_MERMAID_JS", raising=False)

    def test_viewer_loads_mathjax_and_mermaid(self) -> None:
        page = generate_viewer_template(MarkdownConfig(), "", "", False)

        assert "window.MathJax = {" in page
        assert "MathJax.typesetPromise([host])" in page
        assert "mermaid.run(" in page
        assert json.dumps(mathjax_script_sources()) in page
        assert json.dumps(mermaid_script_sources()) in page

    def test_ready_waits_for_typesetting(self) -> None:
        page = generate_viewer_template(MarkdownConfig(), "", "", False)
        assert "!window.__mdxTypesetDone" in page

    def test_cdn_fallback_is_last(self) -> None:
        assert mathjax_script_sources()[-len(MATHJAX_CDN_SOURCES) :] == list(MATHJAX_CDN_SOURCES)
        assert mermaid_script_sources()[-1] == MERMAID_CDN_SOURCES[-1]

    def test_local_bundle_from_env_comes_first(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        mathjax = tmp_path / "tex-svg.js"
        mathjax.write_text("// mathjax", encoding="utf-8")
        mermaid = tmp_path / "mermaid.min.js"
        mermaid.write_text("// mermaid", encoding="utf-8")
        monkeypatch.setenv("MDEXPORT_MATHJAX_JS", str(mathjax))
        monkeypatch.setenv("MDEXPORT_MERMAID_JS", str(mermaid))

        assert mathjax_script_sources()[0] == mathjax.resolve().as_uri()
        assert mermaid_script_sources()[0] == mermaid.resolve().as_uri()

    def test_missing_env_bundle_is_skipped(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MDEXPORT_MERMAID_JS", str(tmp_path / "absent.js"))
        assert (tmp_path / "absent.js").as_uri() not in mermaid_script_sources()
