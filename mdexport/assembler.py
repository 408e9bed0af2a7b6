"""Fill the export template with rendered fragments and write the HTML file."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QUrl

from mdexport import resources, templates
from mdexport.config import APP_NAME

LOGGER = logging.getLogger(__name__)


def resource_folder_for(output_file: Path) -> Path:
    """`out/a.html` -> `out/a_files`; the folder copied images are placed in."""
    return output_file.parent / f"{output_file.stem}_files"


class DocumentAssembler:
    def __init__(self, export_template: str, app_name: str = APP_NAME) -> None:
        self.export_template = export_template
        self.app_name = app_name

    def write_html_file(
        self,
        output_file: Path,
        base_url: QUrl,
        head_content: str,
        style_content: str,
        body_content: str,
        *,
        embed_styles: bool,
        complete_page: bool,
        embed_images: bool,
    ) -> bool:
        """Write one exported page; returns False if the file was not written.

        With `complete_page`, body images are either inlined (`embed_images`)
        or copied into the `<stem>_files` folder next to the output. That
        folder only comes into existence when something is copied, and is
        removed again if it ends up empty.
        """
        output_file = Path(output_file)
        base_name = output_file.stem
        title = f"{base_name} - {self.app_name}"
        resource_folder = resource_folder_for(output_file)
        LOGGER.debug("HTML resource folder: %s", resource_folder)

        page = templates.fill_title(self.export_template, title)

        if style_content and embed_styles:
            style_content, _altered = resources.embed_style_resources(style_content)
            page = templates.fill_style_content(page, style_content)

        if head_content:
            page = templates.fill_head_content(page, head_content)

        if complete_page:
            if embed_images:
                body, _altered = resources.embed_body_resources(base_url, body_content)
            else:
                body, _altered = resources.fix_body_resources(base_url, resource_folder, body_content)
            page = templates.fill_body_content(page, body)
        else:
            page = templates.fill_body_content(page, body_content)

        written = True
        try:
            output_file.write_text(page, encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("Failed to write exported HTML %s: %s", output_file, exc)
            written = False

        try:
            if resource_folder.is_dir() and not any(resource_folder.iterdir()):
                resource_folder.rmdir()
        except OSError as exc:
            LOGGER.debug("Could not remove empty resource folder %s: %s", resource_folder, exc)

        return written
