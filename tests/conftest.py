"""Shared test fixtures for mdexport."""

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from collections.abc import Callable
from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication, QObject, QTimer, QUrl

from mdexport.backend import RenderBackend
from mdexport.config import MarkdownConfig
from mdexport.coordinator import ExportCoordinator

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"


class FakeBackend(RenderBackend):
    """Backend stand-in that answers through Qt timers like a real page would.

    `contents` lists the (head, style, body) tuples emitted, in order, for each
    `save_content()` call; more than one entry simulates duplicate delivery.
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        contents: list[tuple[str, str, str]] | None = None,
        load_ok: bool = True,
        finish_work: bool = True,
        work_first: bool = False,
    ) -> None:
        super().__init__(parent)
        self.contents = contents if contents is not None else [("", "", "<p>Hello</p>")]
        self.load_ok = load_ok
        self.finish_work = finish_work
        self.work_first = work_first
        self.loaded_html: str | None = None
        self.base_url: QUrl | None = None
        self.text: str | None = None
        self.save_content_calls = 0
        self.closed = False
        self.on_set_text: Callable[[], None] | None = None

    def set_html(self, html_doc: str, base_url: QUrl) -> None:
        self.loaded_html = html_doc
        self.base_url = base_url
        delay = 15 if self.work_first else 0
        QTimer.singleShot(delay, lambda: self.load_finished.emit(self.load_ok))

    def set_text(self, markdown_text: str) -> None:
        self.text = markdown_text
        if self.on_set_text is not None:
            self.on_set_text()
        if self.finish_work:
            delay = 0 if self.work_first else 5
            QTimer.singleShot(delay, self.work_finished.emit)

    def save_content(self) -> None:
        self.save_content_calls += 1
        for head, style, body in self.contents:
            QTimer.singleShot(0, lambda h=head, s=style, b=body: self.content_ready.emit(h, s, b))

    def close(self) -> None:
        self.closed = True
        super().close()


@pytest.fixture(scope="session")
def qt_app() -> QCoreApplication:
    """Process-wide Qt application; nested event loops need one to exist."""
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def make_coordinator(qt_app: QCoreApplication):
    """Build a coordinator wired to FakeBackend instances.

    Returns ``(coordinator, backends)``; ``backends`` collects every backend
    the coordinator creates, in creation order.
    """

    def factory(
        *, config: MarkdownConfig | None = None, **backend_kwargs
    ) -> tuple[ExportCoordinator, list[FakeBackend]]:
        backends: list[FakeBackend] = []

        def backend_factory(parent: QObject) -> FakeBackend:
            backend = FakeBackend(parent, **backend_kwargs)
            backends.append(backend)
            return backend

        coordinator = ExportCoordinator(
            backend_factory=backend_factory,
            config=config or MarkdownConfig(),
            poll_interval_ms=10,
            settle_delay_ms=10,
        )
        return coordinator, backends

    return factory


@pytest.fixture
def notes_doc(tmp_path: Path) -> Path:
    """``notes/a.md`` with an image at ``notes/img/x.png``."""
    notes = tmp_path / "notes"
    (notes / "img").mkdir(parents=True)
    (notes / "img" / "x.png").write_bytes(PNG_BYTES)
    doc = notes / "a.md"
    doc.write_text("# A\n\n![x](img/x.png)\n", encoding="utf-8")
    return doc
