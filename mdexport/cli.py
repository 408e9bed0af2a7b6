"""Command-line entry point: export one markdown file to standalone HTML."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from mdexport.config import load_markdown_config
from mdexport.coordinator import ExportCoordinator, ExportOutcome
from mdexport.document import MarkdownFile
from mdexport.options import ExportFormat, ExportOptions, HtmlExportOptions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdexport",
        description="Render a markdown file in Qt WebEngine and export it as standalone HTML.",
    )
    parser.add_argument("source", help="Markdown file to export.")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output HTML file (default: SOURCE with an .html suffix).",
    )
    parser.add_argument("--no-embed-styles", action="store_true", help="Do not embed the rendered stylesheet.")
    parser.add_argument(
        "--no-complete-page",
        action="store_true",
        help="Keep image references untouched instead of inlining or copying them.",
    )
    parser.add_argument(
        "--no-embed-images",
        action="store_true",
        help="Copy images into a <name>_files folder next to the output instead of inlining them.",
    )
    parser.add_argument("--outline", action="store_true", help="Add an outline panel built from headings.")
    parser.add_argument("--style", default="", help="Rendering stylesheet (CSS file).")
    parser.add_argument("--highlight", default="", help="Syntax highlight stylesheet (CSS file).")
    parser.add_argument("--transparent", action="store_true", help="Render with a transparent background.")
    parser.add_argument("--config", default=None, help="Config file (default: ~/.mdexport.cfg).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr.")
    return parser


def options_from_args(args: argparse.Namespace) -> ExportOptions:
    return ExportOptions(
        target_format=ExportFormat.HTML,
        html_option=HtmlExportOptions(
            embed_styles=not args.no_embed_styles,
            complete_page=not args.no_complete_page,
            embed_images=not args.no_embed_images,
            add_outline_panel=args.outline,
        ),
        rendering_style_file=args.style,
        syntax_highlight_style_file=args.highlight,
        use_transparent_bg=args.transparent,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    source = Path(args.source).expanduser()
    if not source.is_file():
        print(f"Path is not a file: {source}", file=sys.stderr)
        return 2
    document = MarkdownFile(source)
    if not document.content_type.is_markdown:
        print(f"Not a markdown file: {source}", file=sys.stderr)
        return 2

    output = Path(args.output).expanduser() if args.output else source.with_suffix(".html")
    config = load_markdown_config(Path(args.config).expanduser() if args.config else None)
    options = options_from_args(args)

    # Qt WebEngine must be imported before the QApplication is created.
    import mdexport.webview  # noqa: F401
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName(config.app_name)

    coordinator = ExportCoordinator(config=config)
    # Waits return to Python every polling slice, so Ctrl+C is seen promptly.
    signal.signal(signal.SIGINT, lambda *_args: coordinator.stop())

    coordinator.prepare(options)
    try:
        ok = coordinator.do_export(options, document, output)
    finally:
        coordinator.clear()

    if ok:
        print(f"Exported HTML: {output}")
        return 0
    if coordinator.last_outcome is ExportOutcome.CANCELLED:
        print("Export cancelled", file=sys.stderr)
    else:
        print(f"Export failed: {source}", file=sys.stderr)
    return 1
