"""Persisted markdown/export configuration (`~/.mdexport.cfg`)."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path

APP_NAME = "mdexport"
CONFIG_FILE_NAME = ".mdexport.cfg"


@dataclass(frozen=True)
class MarkdownConfig:
    rendering_style_file: str = ""
    syntax_highlight_style_file: str = ""
    use_transparent_bg: bool = False
    content_max_width: str = "980px"
    app_name: str = APP_NAME


def config_file_path() -> Path:
    return Path.home() / CONFIG_FILE_NAME


def load_markdown_config(path: Path | None = None) -> MarkdownConfig:
    """Read the JSON config dotfile, falling back to defaults on any problem.

    Unknown keys and values of the wrong type are ignored. The environment
    variables MDEXPORT_STYLE_CSS and MDEXPORT_HIGHLIGHT_CSS override the style
    paths found in the file.
    """
    cfg_path = path if path is not None else config_file_path()
    values: dict[str, object] = {}
    try:
        if cfg_path.is_file():
            raw = json.loads(cfg_path.read_text(encoding="utf-8") or "{}")
            if isinstance(raw, dict):
                values = raw
    except (OSError, ValueError):
        # Unreadable or malformed config should never block an export.
        values = {}

    defaults = MarkdownConfig()
    accepted: dict[str, object] = {}
    for field in fields(MarkdownConfig):
        value = values.get(field.name)
        if value is not None and isinstance(value, type(getattr(defaults, field.name))):
            accepted[field.name] = value

    style_env = os.environ.get("MDEXPORT_STYLE_CSS", "").strip()
    if style_env:
        accepted["rendering_style_file"] = str(Path(style_env).expanduser())
    highlight_env = os.environ.get("MDEXPORT_HIGHLIGHT_CSS", "").strip()
    if highlight_env:
        accepted["syntax_highlight_style_file"] = str(Path(highlight_env).expanduser())

    return MarkdownConfig(**accepted)
