"""Resource reference rewriting for exported HTML.

Three passes share one scanner: a left-to-right regex search whose cursor only
moves forward. After a replacement the cursor jumps past the inserted text, so
neither already-processed text nor freshly spliced data is ever rescanned.

A reference that cannot be resolved, read, or copied is left exactly as it
was; the pass keeps going and the document stays well-formed.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from PySide6.QtCore import QFile, QFileInfo, QIODevice, QUrl

LOGGER = logging.getLogger(__name__)

# Captures (1) attributes before src, (2) the URL, (3) attributes after src.
IMG_TAG_PATTERN = re.compile(r'<img ([^>]*)src="([^"]+)"([^>]*)>')
# Only file:/qrc: values inside a semicolon-terminated url("...") declaration.
STYLE_URL_PATTERN = re.compile(r'\burl\("((file|qrc):[^")]+)"\);')

DATA_URI_MAX_BYTES = 32 * 1024 * 1024

# Types browsers handle inline that some platform mime tables miss.
_EXTRA_MIME_TYPES = {
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
}


@dataclass(frozen=True)
class ResourceReference:
    """One located match inside a fragment, valid for a single rewrite step."""

    prefix: str
    url: str
    suffix: str
    start: int
    end: int


def _image_reference(match: re.Match[str]) -> ResourceReference:
    return ResourceReference(match.group(1), match.group(2), match.group(3), match.start(), match.end())


def _style_reference(match: re.Match[str]) -> ResourceReference:
    return ResourceReference("", match.group(1), "", match.start(), match.end())


def rewrite_references(
    text: str,
    pattern: re.Pattern[str],
    to_reference: Callable[[re.Match[str]], ResourceReference],
    replace: Callable[[ResourceReference], str | None],
) -> tuple[str, bool]:
    """Scan `text` once, splicing in `replace(ref)` wherever it returns a string.

    `replace` returning None (or an empty string) skips the match untouched.
    Returns the rewritten text and whether anything was replaced.
    """
    altered = False
    pos = 0
    while pos < len(text):
        match = pattern.search(text, pos)
        if match is None:
            break
        ref = to_reference(match)
        replacement = replace(ref)
        if not replacement:
            pos = ref.end
            continue
        text = text[: ref.start] + replacement + text[ref.end :]
        pos = ref.start + len(replacement)
        altered = True
    return text, altered


def _resource_source_path(url: QUrl, must_be_file: bool) -> str:
    """Map a file:/qrc: URL to a path QFile can open, or "" if unsupported."""
    if url.isLocalFile():
        path = url.toLocalFile()
        info = QFileInfo(path)
        if not info.isFile() or not info.isReadable():
            return ""
        return path
    if url.scheme() == "qrc" and not must_be_file:
        path = ":" + url.path()
        return path if QFileInfo(path).exists() else ""
    return ""


def _guess_mime(file_name: str) -> str:
    suffix = Path(file_name).suffix.casefold()
    if suffix in _EXTRA_MIME_TYPES:
        return _EXTRA_MIME_TYPES[suffix]
    mime, _encoding = mimetypes.guess_type(file_name)
    return mime or ""


def _read_resource(path: str, max_bytes: int | None) -> bytes | None:
    if max_bytes is not None and QFileInfo(path).size() > max_bytes:
        return None
    source = QFile(path)
    if not source.open(QIODevice.OpenModeFlag.ReadOnly):
        return None
    try:
        return bytes(source.readAll().data())
    finally:
        source.close()


def to_data_uri(url: QUrl, must_be_file: bool) -> str:
    """Return `data:<mime>;base64,...` for `url`, or "" when it cannot be inlined.

    `must_be_file` restricts the lookup to existing readable local files;
    otherwise packaged `qrc:` resources are accepted too. Never raises.
    """
    path = _resource_source_path(url, must_be_file)
    if not path:
        LOGGER.debug("Cannot inline %s: not a readable resource", url.toString())
        return ""
    mime = _guess_mime(path)
    if not mime:
        LOGGER.debug("Cannot inline %s: unknown mime type", url.toString())
        return ""
    data = _read_resource(path, DATA_URI_MAX_BYTES)
    if data is None:
        LOGGER.debug("Cannot inline %s: unreadable or too large", url.toString())
        return ""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def _unique_target(folder: Path, file_name: str) -> Path:
    target = folder / file_name
    stem = target.stem
    suffix = target.suffix
    counter = 1
    while target.exists():
        target = folder / f"{stem}_{counter}{suffix}"
        counter += 1
    return target


def copy_resource(url: QUrl, folder: Path) -> str:
    """Copy the local file behind `url` into `folder` and return the new path.

    The folder is created on demand. A name already taken in the folder gets a
    numeric suffix. Returns "" when the resource cannot be read or written.
    """
    path = _resource_source_path(url, must_be_file=True)
    if not path:
        return ""
    data = _read_resource(path, None)
    if data is None:
        return ""
    try:
        folder.mkdir(parents=True, exist_ok=True)
        target = _unique_target(folder, QFileInfo(path).fileName())
        target.write_bytes(data)
    except OSError as exc:
        LOGGER.debug("Cannot copy %s into %s: %s", url.toString(), folder, exc)
        return ""
    return target.as_posix()


def resource_relative_path(target_file: str) -> str:
    """`/out/a_files/x.png` -> `./a_files/x.png` (last two path segments)."""
    parts = PurePosixPath(target_file.replace("\\", "/")).parts
    if len(parts) < 2:
        raise ValueError(f"Resource path has no parent folder: {target_file!r}")
    return f"./{parts[-2]}/{parts[-1]}"


def embed_style_resources(style: str) -> tuple[str, bool]:
    """Inline every `url("file:...")`/`url("qrc:...")` declaration as a data URI."""

    def replace(ref: ResourceReference) -> str | None:
        data_uri = to_data_uri(QUrl(ref.url), False)
        if not data_uri:
            return None
        return f"url('{data_uri}');"

    return rewrite_references(style, STYLE_URL_PATTERN, _style_reference, replace)


def embed_body_resources(base_url: QUrl, html: str) -> tuple[str, bool]:
    """Inline `<img src="...">` targets resolved against `base_url`."""
    if base_url.isEmpty():
        return html, False

    def replace(ref: ResourceReference) -> str | None:
        if not ref.url:
            return None
        data_uri = to_data_uri(base_url.resolved(QUrl(ref.url)), True)
        if not data_uri:
            return None
        return f"<img {ref.prefix}src='{data_uri}'{ref.suffix}>"

    return rewrite_references(html, IMG_TAG_PATTERN, _image_reference, replace)


def fix_body_resources(base_url: QUrl, folder: Path, html: str) -> tuple[str, bool]:
    """Copy `<img>` targets into `folder` and point the tags at the copies."""
    if base_url.isEmpty():
        return html, False

    def replace(ref: ResourceReference) -> str | None:
        if not ref.url:
            return None
        target = copy_resource(base_url.resolved(QUrl(ref.url)), folder)
        if not target:
            return None
        return f'<img {ref.prefix}src="{resource_relative_path(target)}"{ref.suffix}>'

    return rewrite_references(html, IMG_TAG_PATTERN, _image_reference, replace)
