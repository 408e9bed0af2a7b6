"""mdexport: render markdown in Qt WebEngine and export it as standalone HTML."""

from mdexport.coordinator import ExportCoordinator, ExportOutcome, ReadinessState, RenderPhase
from mdexport.document import ContentType, MarkdownFile
from mdexport.options import ExportFormat, ExportOptions, HtmlExportOptions

__version__ = "0.1.0"

__all__ = [
    "ContentType",
    "ExportCoordinator",
    "ExportFormat",
    "ExportOptions",
    "ExportOutcome",
    "HtmlExportOptions",
    "MarkdownFile",
    "ReadinessState",
    "RenderPhase",
    "__version__",
]
