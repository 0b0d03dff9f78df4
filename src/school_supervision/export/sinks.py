"""
Document sinks: plain text, PDF, spreadsheet and WhatsApp share URL.

Sinks only render what the formatters give them; they make no decisions
about content.
"""

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote
from xml.sax.saxutils import escape

import arabic_reshaper
import pandas as pd
from bidi.algorithm import get_display
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .document import ExportDocument, ExportFormat, ExportTable

logger = logging.getLogger(__name__)

WHATSAPP_ENDPOINT = "https://api.whatsapp.com/send"

PRIMARY_COLOR = colors.Color(22 / 255, 120 / 255, 109 / 255)

# Pictographs, dingbats, variation selectors and joiners used as decoration.
_DECORATION = re.compile(
    "(?:[\U0001F000-\U0001FAFF\u2190-\u21ff\u25aa-\u25fe\u2600-\u27bf\u2b00-\u2bff\u2139]"
    "[\ufe0f\u200d]*)+ ?"
)

EXCEL_SHEET_NAME_LIMIT = 31


@dataclass
class RenderedExport:
    """Sink output: file bytes, or a URL for the share sink."""
    format: ExportFormat
    filename: str
    content: Union[bytes, str]
    media_type: str


def strip_markup(text: str) -> str:
    """Remove markdown asterisks and decorative emoji."""
    return _DECORATION.sub("", text.replace("*", ""))


def render_txt(document: ExportDocument) -> bytes:
    return strip_markup(document.text).encode("utf-8")


def whatsapp_url(text: str, phone: Optional[str] = None) -> str:
    """Share-intent URL; the phone keeps its digits only."""
    digits = re.sub(r"[^0-9]", "", phone or "")
    encoded = quote(text, safe="")
    if digits:
        return f"{WHATSAPP_ENDPOINT}?phone={digits}&text={encoded}"
    return f"{WHATSAPP_ENDPOINT}?text={encoded}"


def render_excel(document: ExportDocument) -> bytes:
    """
    Tables sharing a ``sheet_name`` are stacked on one sheet with a blank row
    between them. Documents without tables get their text lines.
    """
    tables = document.tables or [
        ExportTable(rows=[[line] for line in strip_markup(document.text).splitlines()])
    ]
    buffer = io.BytesIO()
    next_row: Dict[str, int] = {}
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for table in tables:
            name = (table.sheet_name or "Report")[:EXCEL_SHEET_NAME_LIMIT]
            row = next_row.get(name, 0)
            if table.title:
                pd.DataFrame([[strip_markup(table.title)]]).to_excel(
                    writer, sheet_name=name, startrow=row, index=False, header=False
                )
                row += 1
            frame = pd.DataFrame(table.rows, columns=table.columns) if table.columns else pd.DataFrame(table.rows)
            frame.to_excel(writer, sheet_name=name, startrow=row, index=False, header=bool(table.columns))
            next_row[name] = row + len(table.rows) + (1 if table.columns else 0) + 1
    buffer.seek(0)
    return buffer.getvalue()


def _register_font(font_path: Optional[Path], font_name: str) -> Optional[str]:
    if font_path is None:
        return None
    if font_name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
    return font_name


def shape_text(text: str) -> str:
    """Join Arabic letters and put each line in visual order for drawing."""
    return "\n".join(get_display(arabic_reshaper.reshape(line)) for line in text.split("\n"))


def _draw_border(canvas, doc) -> None:
    canvas.saveState()
    canvas.setStrokeColor(PRIMARY_COLOR)
    canvas.setLineWidth(0.5 * mm)
    width, height = doc.pagesize
    canvas.rect(5 * mm, 5 * mm, width - 10 * mm, height - 10 * mm)
    canvas.restoreState()


def render_pdf(
    document: ExportDocument,
    font_path: Optional[Path] = None,
    font_name: str = "Amiri"
) -> bytes:
    """
    Bordered A4 pages with right-aligned text and tables.

    Arabic text is shaped and reordered before drawing, and table columns
    are laid out right to left. Without ``font_path`` the
    built-in Helvetica is used, which has no Arabic glyphs.
    """
    font = _register_font(font_path, font_name) or "Helvetica"
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        name="ExportTitle",
        parent=styles["Title"],
        fontName=font,
        fontSize=16,
        alignment=TA_RIGHT,
        textColor=PRIMARY_COLOR,
        spaceAfter=6,
    )
    line_style = ParagraphStyle(name="ExportLine", parent=styles["Normal"], fontName=font, fontSize=10, alignment=TA_RIGHT, leading=14)
    head_style = ParagraphStyle(name="ExportHead", parent=line_style, alignment=TA_CENTER, textColor=colors.white)
    cell_style = ParagraphStyle(name="ExportCell", parent=line_style, fontSize=9, leading=12, wordWrap="CJK")

    def _cell(value: Any, style: ParagraphStyle) -> Paragraph:
        text = escape(shape_text("" if value is None else str(value))).replace("\n", "<br/>")
        return Paragraph(text, style)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=10 * mm, rightMargin=10 * mm, topMargin=12 * mm, bottomMargin=12 * mm)
    elements: List[Any] = [Paragraph(escape(shape_text(strip_markup(document.title))), title_style)]
    for line in document.heading:
        elements.append(_cell(strip_markup(line), line_style))
    elements.append(Spacer(1, 8))

    for table in document.tables:
        if table.title:
            elements.append(_cell(strip_markup(table.title), line_style))
        data = []
        if table.columns:
            data.append([_cell(c, head_style) for c in reversed(table.columns)])
        data.extend([_cell(v, cell_style) for v in reversed(row)] for row in table.rows)
        if not data:
            continue
        commands = [
            ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("GRID", (0, 0), (-1, -1), 0.4, colors.HexColor("#9ca3af")),
        ]
        if table.columns:
            commands.append(("BACKGROUND", (0, 0), (-1, 0), PRIMARY_COLOR))
        pdf_table = Table(data, repeatRows=1 if table.columns else 0, hAlign="RIGHT")
        pdf_table.setStyle(TableStyle(commands))
        elements.append(pdf_table)
        elements.append(Spacer(1, 8))

    doc.build(elements, onFirstPage=_draw_border, onLaterPages=_draw_border)
    pdf_value = buffer.getvalue()
    buffer.close()
    return pdf_value


def render(
    document: ExportDocument,
    fmt: Union[ExportFormat, str],
    font_path: Optional[Path] = None,
    font_name: str = "Amiri"
) -> RenderedExport:
    """Render a document through the sink named by ``fmt``."""
    fmt = ExportFormat(fmt)
    if fmt == ExportFormat.TXT:
        rendered = RenderedExport(fmt, f"{document.filename}.txt", render_txt(document), "text/plain; charset=utf-8")
    elif fmt == ExportFormat.PDF:
        rendered = RenderedExport(fmt, f"{document.filename}.pdf", render_pdf(document, font_path, font_name), "application/pdf")
    elif fmt == ExportFormat.EXCEL:
        rendered = RenderedExport(
            fmt,
            f"{document.filename}.xlsx",
            render_excel(document),
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    else:
        rendered = RenderedExport(fmt, document.filename, whatsapp_url(document.text, document.phone), "text/uri-list")
    logger.info(f"Rendered {rendered.filename} as {fmt.value}")
    return rendered


def write(rendered: RenderedExport, directory: Path) -> Path:
    """Write a rendered file export into ``directory``."""
    if rendered.format == ExportFormat.WHATSAPP:
        raise ValueError("Share URLs are opened, not written to disk")
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / rendered.filename
    path.write_bytes(rendered.content)
    return path
