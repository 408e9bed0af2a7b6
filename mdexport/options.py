"""Export option records passed from orchestrating code to the coordinator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExportFormat(Enum):
    HTML = "html"
    PDF = "pdf"
    CUSTOM = "custom"


@dataclass
class HtmlExportOptions:
    embed_styles: bool = True
    complete_page: bool = True
    embed_images: bool = True
    add_outline_panel: bool = False
    # MIME HTML (.mht) output is not implemented; the coordinator rejects it.
    use_mime_html_format: bool = False


@dataclass
class ExportOptions:
    """Everything one export session needs besides the source and target paths.

    `html_option` is required when `target_format` is HTML. Style paths are
    local CSS files; empty strings mean "use the configured/built-in style".
    """

    target_format: ExportFormat = ExportFormat.HTML
    html_option: HtmlExportOptions | None = None
    rendering_style_file: str = ""
    syntax_highlight_style_file: str = ""
    use_transparent_bg: bool = False
