"""Format-neutral export documents produced by the formatters."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class ExportFormat(str, Enum):
    TXT = "txt"
    PDF = "pdf"
    EXCEL = "excel"
    WHATSAPP = "whatsapp"


@dataclass
class ExportTable:
    """
    A table for the PDF and spreadsheet sinks.

    ``columns`` are in reading order (right to left on the page). A table
    without columns is written as bare key/value rows.
    """
    rows: List[List[Any]]
    columns: Optional[List[str]] = None
    title: Optional[str] = None
    sheet_name: str = "Report"


@dataclass
class ExportDocument:
    """
    Everything a sink needs to render one export.

    ``text`` is the markdown-flavoured message used by the text and share
    sinks; ``heading`` lines and ``tables`` feed the PDF and spreadsheet sinks.
    """
    title: str
    filename: str
    text: str
    heading: List[str] = field(default_factory=list)
    tables: List[ExportTable] = field(default_factory=list)
    phone: Optional[str] = None
