"""Source document wrapper handed to the export coordinator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from PySide6.QtCore import QUrl

MARKDOWN_SUFFIXES = frozenset({".md", ".markdown", ".mdown", ".mkd", ".mkdn"})


class ContentType(Enum):
    MARKDOWN = "markdown"
    TEXT = "text"
    OTHER = "other"

    @property
    def is_markdown(self) -> bool:
        return self is ContentType.MARKDOWN


@dataclass(frozen=True)
class MarkdownFile:
    path: Path

    @property
    def content_type(self) -> ContentType:
        suffix = self.path.suffix.casefold()
        if suffix in MARKDOWN_SUFFIXES:
            return ContentType.MARKDOWN
        if suffix == ".txt":
            return ContentType.TEXT
        return ContentType.OTHER

    def base_url(self) -> QUrl:
        """File URL of the document; relative refs resolve against its folder."""
        return QUrl.fromLocalFile(str(self.path.resolve()))

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8", errors="replace")
