"""
Exports of reports and supervisory records.

Formatters build a format-neutral :class:`ExportDocument`; sinks render it
as plain text, PDF, a spreadsheet or a WhatsApp share URL.
"""

from .document import ExportFormat, ExportTable, ExportDocument
from .sinks import (
    RenderedExport,
    strip_markup,
    whatsapp_url,
    render_txt,
    render_excel,
    render_pdf,
    shape_text,
    render,
    write,
)
from .formatters import (
    SEPARATOR,
    report_text,
    report_document,
    aggregated_document,
    final_report_document,
    analysis_document,
    key_metrics_document,
    tasks_document,
    meeting_document,
    meeting_summary_document,
    peer_visits_document,
    delivery_document,
    supervisory_summary_document,
    peer_visit_summary_lines,
    syllabus_dashboard_lines,
    delivery_summary_lines,
    syllabus_plan_document,
    coverage_document,
)

__all__ = [
    "ExportFormat",
    "ExportTable",
    "ExportDocument",

    # Sinks
    "RenderedExport",
    "strip_markup",
    "whatsapp_url",
    "render_txt",
    "render_excel",
    "render_pdf",
    "shape_text",
    "render",
    "write",

    # Formatters
    "SEPARATOR",
    "report_text",
    "report_document",
    "aggregated_document",
    "final_report_document",
    "analysis_document",
    "key_metrics_document",
    "tasks_document",
    "meeting_document",
    "meeting_summary_document",
    "peer_visits_document",
    "delivery_document",
    "supervisory_summary_document",
    "peer_visit_summary_lines",
    "syllabus_dashboard_lines",
    "delivery_summary_lines",
    "syllabus_plan_document",
    "coverage_document",
]
