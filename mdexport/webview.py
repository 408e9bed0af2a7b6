"""Qt WebEngine rendering backend (hidden QWebEngineView)."""

from __future__ import annotations

import json
import logging

from PySide6.QtCore import QObject, QTimer, QUrl
from PySide6.QtWebEngineCore import QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView

from mdexport.backend import RenderBackend
from mdexport.renderer import MarkdownRenderer

LOGGER = logging.getLogger(__name__)

WORK_PROBE_INTERVAL_MS = 140
WORK_PROBE_MAX_ATTEMPTS = 60


class WebViewRenderBackend(RenderBackend):
    """Renders into a hidden QWebEngineView.

    Markdown is converted with markdown-it and pushed into the loaded page via
    `mdxSetContent()`; readiness is probed with `mdxIsReady()` until images and
    fonts settle, and fragments are collected with `mdxSaveContent()`.
    Requires a running QApplication.
    """

    def __init__(
        self,
        parent: QObject | None = None,
        renderer: MarkdownRenderer | None = None,
        view: QWebEngineView | None = None,
    ) -> None:
        super().__init__(parent)
        self._renderer = renderer or MarkdownRenderer()
        self._view = view if view is not None else QWebEngineView()
        self._view.hide()
        self._view.settings().setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, True)
        self._view.loadFinished.connect(self._on_load_finished)
        self._page_loaded = False
        self._pending_body: str | None = None
        # Bumped per set_html() so late callbacks from a previous page are dropped.
        self._session = 0

    def set_html(self, html_doc: str, base_url: QUrl) -> None:
        self._session += 1
        self._page_loaded = False
        self._pending_body = None
        self._view.setHtml(html_doc, base_url)

    def set_text(self, markdown_text: str) -> None:
        self._pending_body = self._renderer.render_body(markdown_text)
        if self._page_loaded:
            self._push_body()

    def save_content(self) -> None:
        self._view.page().runJavaScript(
            "window.mdxSaveContent ? window.mdxSaveContent() : null;",
            self._on_content_saved,
        )

    def close(self) -> None:
        self._session += 1
        self._view.deleteLater()
        super().close()

    def _on_load_finished(self, ok: bool) -> None:
        self._page_loaded = bool(ok)
        self.load_finished.emit(bool(ok))
        if ok and self._pending_body is not None:
            self._push_body()

    def _push_body(self) -> None:
        body = self._pending_body or ""
        self._pending_body = None
        session = self._session
        js = f"window.mdxSetContent({json.dumps(body)});"
        self._view.page().runJavaScript(js, lambda _result, key=session: self._probe_work(key, 0))

    def _probe_work(self, session: int, attempt: int) -> None:
        if session != self._session:
            return
        self._view.page().runJavaScript(
            "window.mdxIsReady ? window.mdxIsReady() : false;",
            lambda result, key=session, tries=attempt: self._on_work_probe(key, tries, result),
        )

    def _on_work_probe(self, session: int, attempt: int, result) -> None:
        if session != self._session:
            return
        if bool(result):
            self.work_finished.emit()
            return
        if attempt < WORK_PROBE_MAX_ATTEMPTS:
            QTimer.singleShot(
                WORK_PROBE_INTERVAL_MS,
                lambda key=session, tries=attempt + 1: self._probe_work(key, tries),
            )
            return
        # Proceed rather than stall the export if some image never finishes decoding.
        LOGGER.warning("Rendered page did not report ready after %d probes; continuing", attempt + 1)
        self.work_finished.emit()

    def _on_content_saved(self, result) -> None:
        if not isinstance(result, dict):
            LOGGER.warning("Rendered page returned no content")
            self.content_ready.emit("", "", "")
            return
        self.content_ready.emit(
            str(result.get("head") or ""),
            str(result.get("style") or ""),
            str(result.get("body") or ""),
        )
