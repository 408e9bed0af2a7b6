"""Rendering backend interface.

A backend is the embedded surface that turns markdown into HTML fragments. It
loads a base page, accepts raw markdown, and reports progress with three
signals:

- `load_finished(ok)` once the base page has loaded,
- `work_finished()` once the pushed content has been rendered,
- `content_ready(head, style, body)` in answer to `save_content()`.

The Qt WebEngine implementation lives in `mdexport.webview`.
"""

from __future__ import annotations

from PySide6.QtCore import QObject, QUrl, Signal


class RenderBackend(QObject):
    """Signal interface every backend implements; owned by one coordinator."""

    load_finished = Signal(bool)
    work_finished = Signal()
    content_ready = Signal(str, str, str)

    def set_html(self, html_doc: str, base_url: QUrl) -> None:
        raise NotImplementedError

    def set_text(self, markdown_text: str) -> None:
        raise NotImplementedError

    def save_content(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        self.deleteLater()
