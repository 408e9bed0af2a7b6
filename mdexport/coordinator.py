"""Export coordinator: drives a rendering backend through one export at a time.

The coordinator runs on the Qt thread. Its waits never block the event loop:
they spin a nested QEventLoop for one polling slice at a time, so backend
signals keep arriving while `do_export()` appears synchronous to its caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum, Flag, auto
from pathlib import Path

from PySide6.QtCore import QEventLoop, QObject, QTimer, QUrl

from mdexport.assembler import DocumentAssembler
from mdexport.backend import RenderBackend
from mdexport.config import MarkdownConfig, load_markdown_config
from mdexport.document import MarkdownFile
from mdexport.options import ExportFormat, ExportOptions, HtmlExportOptions
from mdexport.templates import generate_export_template, generate_viewer_template

LOGGER = logging.getLogger(__name__)

POLL_INTERVAL_MS = 100
# The backend can still be finishing internal async work after both readiness
# signals fire; this delay is a heuristic, not a guarantee.
SETTLE_DELAY_MS = 200


class ReadinessState(Flag):
    NONE = 0
    LOAD_FINISHED = auto()
    WORK_FINISHED = auto()
    FAILED = auto()


class RenderPhase(Enum):
    IDLE = "idle"
    WAITING_LOAD = "waiting_load"
    WAITING_RENDER = "waiting_render"
    READY = "ready"
    FAILED = "failed"


class ExportOutcome(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class _ContentState(Enum):
    PENDING = 0
    SUCCEEDED = 1
    FAILED = -1


def sleep_wait(milliseconds: int) -> None:
    """Process Qt events for about `milliseconds` without blocking the loop."""
    loop = QEventLoop()
    QTimer.singleShot(max(0, int(milliseconds)), loop.quit)
    loop.exec()


class ExportCoordinator(QObject):
    """Owns one rendering backend and exports markdown documents through it.

    Call `prepare()` once per export session, then `do_export()`. `stop()`
    may be called from any event handler to cancel the export in flight;
    cancellation is noticed within one polling slice. `clear()` tears the
    session down so `prepare()` can be called again.
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        backend_factory: Callable[[QObject], RenderBackend] | None = None,
        config: MarkdownConfig | None = None,
        poll_interval_ms: int = POLL_INTERVAL_MS,
        settle_delay_ms: int = SETTLE_DELAY_MS,
    ) -> None:
        super().__init__(parent)
        self._backend_factory = backend_factory or _create_webview_backend
        self._config = config
        self._poll_interval_ms = poll_interval_ms
        self._settle_delay_ms = settle_delay_ms
        self._backend: RenderBackend | None = None
        self._html_template = ""
        self._assembler: DocumentAssembler | None = None
        self._states = ReadinessState.NONE
        self._asked_to_stop = False
        self._export_ongoing = False
        self._last_outcome: ExportOutcome | None = None

    @property
    def is_exporting(self) -> bool:
        return self._export_ongoing

    @property
    def last_outcome(self) -> ExportOutcome | None:
        """Result of the most recent `do_export()`; tells cancellation from failure."""
        return self._last_outcome

    @property
    def render_phase(self) -> RenderPhase:
        if not self._export_ongoing and self._states == ReadinessState.NONE:
            return RenderPhase.IDLE
        if ReadinessState.FAILED in self._states:
            return RenderPhase.FAILED
        if self._is_ready():
            return RenderPhase.READY
        if ReadinessState.LOAD_FINISHED in self._states:
            return RenderPhase.WAITING_RENDER
        return RenderPhase.WAITING_LOAD

    def prepare(self, options: ExportOptions) -> None:
        if self._backend is not None or self._export_ongoing:
            raise RuntimeError("Export session already prepared; call clear() before prepare()")

        config = self._config or load_markdown_config()
        backend = self._backend_factory(self)
        backend.load_finished.connect(self._on_load_finished)
        backend.work_finished.connect(self._on_work_finished)
        self._backend = backend

        self._html_template = generate_viewer_template(
            config,
            options.rendering_style_file,
            options.syntax_highlight_style_file,
            options.use_transparent_bg or config.use_transparent_bg,
        )
        add_outline_panel = options.html_option.add_outline_panel if options.html_option else False
        self._assembler = DocumentAssembler(
            generate_export_template(config, add_outline_panel),
            config.app_name,
        )

    def clear(self) -> None:
        if self._export_ongoing:
            raise RuntimeError("Cannot clear the export session while an export is in progress")
        self._asked_to_stop = False
        if self._backend is not None:
            self._backend.close()
            self._backend = None
        self._html_template = ""
        self._assembler = None
        self._states = ReadinessState.NONE

    def stop(self) -> None:
        self._asked_to_stop = True

    def do_export(self, options: ExportOptions, source: MarkdownFile, output_path: Path | str) -> bool:
        """Render `source` and write it to `output_path`; True on success.

        Raises on programming errors: a non-markdown source, a missing
        `prepare()`, a re-entrant call, or MIME HTML output (unsupported).
        Render, empty-content, and write failures as well as cancellation
        return False; `last_outcome` distinguishes cancellation.
        """
        if not source.content_type.is_markdown:
            raise ValueError(f"Only markdown documents can be exported: {source.path}")
        if self._backend is None or self._assembler is None:
            raise RuntimeError("do_export() called before prepare()")
        if self._export_ongoing:
            raise RuntimeError("An export is already in progress on this coordinator")

        html_option: HtmlExportOptions | None = None
        if options.target_format is ExportFormat.HTML:
            if options.html_option is None:
                raise ValueError("HTML export requires html_option")
            if options.html_option.use_mime_html_format:
                raise NotImplementedError("MIME HTML export is not supported")
            html_option = options.html_option

        self._asked_to_stop = False
        self._export_ongoing = True
        ok = False
        try:
            ok = self._run_export(options.target_format, html_option, source, Path(output_path))
        finally:
            self._export_ongoing = False
            if ok:
                self._last_outcome = ExportOutcome.SUCCEEDED
            elif self._asked_to_stop:
                self._last_outcome = ExportOutcome.CANCELLED
            else:
                self._last_outcome = ExportOutcome.FAILED
        return ok

    def _run_export(
        self,
        target_format: ExportFormat,
        html_option: HtmlExportOptions | None,
        source: MarkdownFile,
        output_path: Path,
    ) -> bool:
        try:
            markdown_text = source.read()
        except OSError as exc:
            LOGGER.warning("Cannot read %s for export: %s", source.path, exc)
            return False

        self._states = ReadinessState.NONE
        base_url = source.base_url()
        self._backend.set_html(self._html_template, base_url)
        self._backend.set_text(markdown_text)

        while not self._is_ready():
            sleep_wait(self._poll_interval_ms)
            if self._asked_to_stop:
                LOGGER.info("Export of %s stopped while rendering", source.path)
                return False
            if ReadinessState.FAILED in self._states:
                LOGGER.warning("Rendering backend failed when exporting %s", source.path)
                return False

        LOGGER.debug("Rendering backend is ready for %s", source.path)
        sleep_wait(self._settle_delay_ms)
        if self._asked_to_stop:
            return False

        if target_format is not ExportFormat.HTML:
            LOGGER.warning("Export format %r is not implemented", target_format.value)
            return False
        return self._export_html(html_option, output_path, base_url)

    def _export_html(self, html_option: HtmlExportOptions, output_path: Path, base_url: QUrl) -> bool:
        backend = self._backend
        assembler = self._assembler
        state = _ContentState.PENDING
        subscription = {"connected": True}

        def unsubscribe() -> None:
            if subscription["connected"]:
                subscription["connected"] = False
                backend.content_ready.disconnect(on_content_ready)

        def on_content_ready(head: str, style: str, body: str) -> None:
            nonlocal state
            unsubscribe()
            if state is not _ContentState.PENDING:
                return
            if not body or self._asked_to_stop:
                state = _ContentState.FAILED
                return
            try:
                written = assembler.write_html_file(
                    output_path,
                    base_url,
                    head,
                    style,
                    body,
                    embed_styles=html_option.embed_styles,
                    complete_page=html_option.complete_page,
                    embed_images=html_option.embed_images,
                )
            except Exception:
                # Raised inside a Qt slot; the content wait must still end.
                LOGGER.exception("Unexpected error writing %s", output_path)
                written = False
            state = _ContentState.SUCCEEDED if written else _ContentState.FAILED

        backend.content_ready.connect(on_content_ready)
        try:
            backend.save_content()
            while state is _ContentState.PENDING:
                sleep_wait(self._poll_interval_ms)
                if self._asked_to_stop:
                    break
        finally:
            unsubscribe()

        if state is _ContentState.FAILED:
            LOGGER.warning("HTML export to %s failed", output_path)
        return state is _ContentState.SUCCEEDED

    def _is_ready(self) -> bool:
        return self._states == (ReadinessState.LOAD_FINISHED | ReadinessState.WORK_FINISHED)

    def _on_load_finished(self, ok: bool) -> None:
        if ok:
            self._states |= ReadinessState.LOAD_FINISHED
        else:
            self._states |= ReadinessState.FAILED

    def _on_work_finished(self) -> None:
        self._states |= ReadinessState.WORK_FINISHED


def _create_webview_backend(parent: QObject) -> RenderBackend:
    # Imported lazily so the coordinator works without Qt WebEngine installed.
    from mdexport.webview import WebViewRenderBackend

    return WebViewRenderBackend(parent)
