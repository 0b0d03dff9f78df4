"""
Formatters: turn records and analytics into :class:`ExportDocument` objects.

Texts are WhatsApp-flavoured markdown (``*bold*`` and emoji); the text sink
strips the decoration. Tables list their columns in reading order.
"""

from datetime import date
from typing import Any, Iterable, List, Optional, Sequence

from ..models import (
    Branch,
    ClassSessionReport,
    DeliveryRecord,
    GeneralReport,
    Meeting,
    PeerVisit,
    SpecialReport,
    SyllabusCoverageReport,
    SyllabusPlan,
    Task,
    Teacher,
    WorkStatus,
    branch_label,
)
from ..models.reports import MAX_CRITERION_SCORE
from ..scoring import (
    CriterionAnalysis,
    DeliveryStats,
    FinalReport,
    KeyMetrics,
    PeerVisitStats,
    PercentageColor,
    StatusBreakdown,
    SyllabusTeacherStats,
    UsageStatistics,
    percentage_color,
    round_half_up,
    score_of,
)
from .document import ExportDocument, ExportTable
from .sinks import strip_markup

SEPARATOR = "\n\n━━━━━━━━━━ ✨ ━━━━━━━━━━\n\n"
ENTRY_RULE = "-----------------\n"
UNKNOWN_TEACHER = "غير معروف"

EVALUATION_TYPE_LABELS = {
    "general": "عام",
    "class_session": "حصة دراسية",
}

COVERAGE_STATUS_LABELS = {
    "ahead": "متقدم عن الخطة",
    "on_track": "مطابق للخطة",
    "behind": "متأخر عن الخطة",
}

COVERAGE_STATUS_EMOJI = {
    "ahead": "🟢",
    "on_track": "🔵",
    "behind": "🔴",
}

PERCENTAGE_ICONS = {
    PercentageColor.RED: "🔴",
    PercentageColor.ORANGE: "🟡",
    PercentageColor.BLUE: "🔵",
    PercentageColor.GREEN: "🟢",
}

USAGE_LABELS = {
    "strategies": "الاستراتيجيات المستخدمة",
    "tools": "الوسائل المستخدمة",
    "sources": "المصادر المستخدمة",
    "programs": "البرامج المستخدمة",
}

TEACHER_CARD_FIELDS = (
    ("qualification", "المؤهل الدراسي"),
    ("specialization", "التخصص"),
    ("subjects", "المواد التي يدرسها"),
    ("grades_taught", "الصفوف التي يدرسها"),
    ("sections_taught", "الشعب التي يدرسها"),
    ("weekly_hours", "نصاب الحصص الأسبوعي"),
    ("years_of_experience", "سنوات الخبرة"),
    ("years_in_school", "سنوات العمل بالمدرسة"),
    ("phone_number", "رقم الهاتف"),
)


def _fixed(value: float, digits: int = 1) -> str:
    return f"{round_half_up(value, digits):.{digits}f}"


def _criterion_percent(score: int) -> str:
    return _fixed(score / MAX_CRITERION_SCORE * 100, 0)


def _joined(value: Any, separator: str = "، ") -> str:
    if isinstance(value, (list, tuple)):
        return separator.join(str(v) for v in value if v)
    return "" if value is None else str(value)


def _coverage_branch_label(branch: Optional[str]) -> str:
    return branch_label(branch if branch in (Branch.BOYS.value, Branch.GIRLS.value) else Branch.MAIN.value)


def _evaluation_title(report) -> str:
    if isinstance(report, SpecialReport):
        return f"تقرير خاص: {report.template_name}"
    return "تقييم عام"


# --- Single report ---

def report_text(report, teacher: Teacher) -> str:
    """Full markdown text of one evaluation report."""
    content = f"*👤 تقرير لـ:* {teacher.name}\n"
    content += f"*📅 تاريخ:* {report.date}\n"
    if report.academic_year:
        content += f"*🎓 العام الدراسي:* {report.academic_year}\n"
    content += f"*🏫 المدرسة:* {report.school or ''}\n"
    if report.supervisor_name:
        content += f"*🧑‍🏫 المشرف:* {report.supervisor_name}\n"
    if report.semester:
        content += f"*🗓️ الفصل الدراسي:* {report.semester}\n"
    content += f"*📖 المادة:* {report.subject or ''}\n*👨‍🏫 الصفوف:* {report.grades or ''}\n"

    content += f"{SEPARATOR}--- *بطاقة معلومات المعلم* ---\n\n"
    for field_name, label in TEACHER_CARD_FIELDS:
        value = getattr(teacher, field_name, None)
        if value:
            content += f"*{label}:* {value}\n"

    final_line = f"\n*📊 النسبة المئوية النهائية:* {_fixed(score_of(report), 2)}%\n"

    if isinstance(report, (GeneralReport, SpecialReport)):
        content += f"{SEPARATOR}--- *{_evaluation_title(report)}* ---\n\n"
        for c in report.criteria:
            content += f"- 📋 *{c.label}:* {c.score} / 4 (⭐ {_criterion_percent(c.score)}%)\n"
        content += final_line
        if isinstance(report, GeneralReport):
            content += f"{SEPARATOR}*💡 أهم الاستراتيجيات المنفذة:*\n{report.strategies}\n"
            content += f"\n*🔧 أهم الوسائل المستخدمة:*\n{report.tools}\n"
            content += f"\n*💻 أهم البرامج المنفذة:*\n{report.programs}\n"

    elif isinstance(report, ClassSessionReport):
        content += f"{SEPARATOR}--- *تقييم حصة دراسية ({report.sub_type})* ---\n\n"
        content += f"*🔎 نوع الزيارة:* {report.visit_type}\n"
        content += f"*🏫 الصف:* {report.class_number or ''} / {report.section or ''}\n"
        content += f"*📘 عنوان الدرس:* {report.lesson_name}\n"
        for group in report.criterion_groups:
            content += f"\n*📌 {group.title}:*\n"
            for c in group.criteria:
                content += f"  - {c.label}: {c.score} / 4 (⭐ {_criterion_percent(c.score)}%)\n"
        content += final_line
        content += f"{SEPARATOR}*👍 الإيجابيات:*\n{report.positives}\n"
        content += f"\n*📝 ملاحظات للتحسين:*\n{report.notes_for_improvement}\n"
        content += f"\n*🎯 التوصيات:*\n{report.recommendations}\n"
        content += f"\n*✍️ تعليق الموظف:*\n{report.employee_comment}\n"

    return content


def _report_tables(report, teacher: Teacher) -> List[ExportTable]:
    info = [
        ["المعلم", teacher.name],
        ["التاريخ", report.date],
    ]
    if report.academic_year:
        info.append(["العام الدراسي", report.academic_year])
    info.append(["المدرسة", report.school or ""])
    if report.supervisor_name:
        info.append(["المشرف", report.supervisor_name])
    if report.semester:
        info.append(["الفصل الدراسي", report.semester])
    info.extend([["المادة", report.subject or ""], ["الصفوف", report.grades or ""]])

    card = [[label, getattr(teacher, name, None) or ""] for name, label in TEACHER_CARD_FIELDS]
    tables = [
        ExportTable(rows=info),
        ExportTable(rows=card, title="بطاقة معلومات المعلم"),
    ]
    final_row = [["النسبة النهائية", f"{_fixed(score_of(report), 2)}%"]]

    if isinstance(report, (GeneralReport, SpecialReport)):
        tables.append(ExportTable(
            title=_evaluation_title(report),
            columns=["المعيار", "الدرجة", "النسبة"],
            rows=[[c.label, c.score, f"{_criterion_percent(c.score)}%"] for c in report.criteria],
        ))
        tables.append(ExportTable(rows=final_row))
        if isinstance(report, GeneralReport):
            tables.append(ExportTable(rows=[
                ["الاستراتيجيات", report.strategies],
                ["الوسائل", report.tools],
                ["البرامج", report.programs],
                ["المصادر", report.sources],
            ]))
    elif isinstance(report, ClassSessionReport):
        tables.append(ExportTable(
            title=f"تقييم حصة دراسية ({report.sub_type})",
            rows=[
                ["نوع الزيارة", report.visit_type],
                ["الصف", f"{report.class_number or ''} / {report.section or ''}"],
                ["عنوان الدرس", report.lesson_name],
            ],
        ))
        for group in report.criterion_groups:
            tables.append(ExportTable(columns=[group.title, "الدرجة"], rows=[[c.label, c.score] for c in group.criteria]))
        tables.append(ExportTable(rows=final_row))
        tables.append(ExportTable(rows=[
            ["الاستراتيجيات", report.strategies],
            ["الوسائل", report.tools],
            ["المصادر", report.sources],
            ["البرامج", report.programs],
            ["الإيجابيات", report.positives],
            ["ملاحظات للتحسين", report.notes_for_improvement],
            ["التوصيات", report.recommendations],
            ["تعليق الموظف", report.employee_comment],
        ]))
    return tables


def report_document(report, teacher: Teacher) -> ExportDocument:
    """One evaluation report; the share URL targets the teacher's phone."""
    return ExportDocument(
        title=f"تقرير لـ: {teacher.name}",
        filename=f"report_{teacher.name}_{report.date}",
        text=report_text(report, teacher),
        heading=[
            f"تاريخ: {report.date}",
            f"المدرسة: {report.school or ''} | المادة: {report.subject or ''} | الصفوف: {report.grades or ''}",
        ],
        tables=_report_tables(report, teacher),
        phone=teacher.phone_number,
    )


# --- Report lists and analytics ---

def aggregated_document(reports: Sequence, teachers: Sequence[Teacher], today: Optional[date] = None) -> ExportDocument:
    """Several reports in one document, plus a one-row-per-report table."""
    today = today or date.today()
    teacher_map = {t.id: t for t in teachers}

    text = "--- تقارير مجمعة ---\n\n"
    rows = []
    for report in reports:
        teacher = teacher_map.get(report.teacher_id) if isinstance(report.teacher_id, str) else None
        if teacher is not None:
            text += strip_markup(report_text(report, teacher))
            text += "\n================================\n\n"
        if isinstance(report, SpecialReport):
            kind = report.template_name
        else:
            kind = EVALUATION_TYPE_LABELS.get(str(report.evaluation_type), "")
        rows.append([
            teacher.name if teacher else UNKNOWN_TEACHER,
            report.date,
            report.academic_year or "",
            report.school or "",
            kind,
            f"{_fixed(score_of(report), 2)}%",
        ])

    return ExportDocument(
        title="تقارير مجمعة",
        filename=f"aggregated_reports_{today.isoformat()}",
        text=text,
        tables=[ExportTable(
            columns=["المعلم", "التاريخ", "العام الدراسي", "المدرسة", "نوع التقييم", "النسبة المئوية"],
            rows=rows,
            sheet_name="Aggregated Reports",
        )],
    )


def final_report_document(
    final: FinalReport,
    school: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    teacher_ids: Optional[Iterable[str]] = None,
    labels: Optional[Iterable[str]] = None,
    today: Optional[date] = None
) -> ExportDocument:
    """
    The final teacher table. ``teacher_ids`` and ``labels`` narrow the
    shared message; the table always carries every row and column.
    """
    today = today or date.today()
    chosen_teachers = set(teacher_ids or ())
    chosen_labels = set(labels or ())
    message_rows = [r for r in final.rows if not chosen_teachers or r.teacher_id in chosen_teachers]
    message_labels = [label for label in final.criteria_labels if not chosen_labels or label in chosen_labels]

    text = f"*📊 التقرير الختامي للأداء: {school}*\n"
    text += f"*🕒 النطاق:* {start_date or 'البداية'} إلى {end_date or 'الآن'}\n\n"
    for row in message_rows:
        text += f"👤 *المعلم:* {row.name}\n"
        text += f"📖 *المادة:* {row.subject} | *📈 النسبة:* {_fixed(row.percentage)}%\n"
        for label in message_labels:
            text += f"▫️ {label}: {_fixed(row.criteria_averages[label])}/4\n"
        text += "------------------\n"

    rows = [
        [index, row.name, row.subject, row.grade, row.branch]
        + [_fixed(row.criteria_averages[label]) for label in final.criteria_labels]
        + [_fixed(row.total_score), f"{_fixed(row.percentage)}%"]
        for index, row in enumerate(final.rows, start=1)
    ]
    return ExportDocument(
        title=f"التقرير الختامي للأداء: {school}",
        filename=f"Final_Report_{school}_{today.isoformat()}",
        text=text,
        heading=[
            f"النطاق: {start_date or 'البداية'} إلى {end_date or 'الآن'}",
            f"المشرف: {final.first_supervisor}",
            f"متوسط المدرسة: {_fixed(final.school_average)}%",
        ],
        tables=[ExportTable(
            columns=["الرقم", "اسم المعلم", "المادة", "الصف", "الفرع", *final.criteria_labels, "المجموع", "النسبة"],
            rows=rows,
            sheet_name="التقرير الختامي",
        )],
    )


def analysis_document(items: Sequence[CriterionAnalysis], today: Optional[date] = None) -> ExportDocument:
    today = today or date.today()
    text = "*📊 تحليل عناصر التقييم*\n"
    for item in items:
        text += f"📌 *{item.label}*\n"
        text += f"   المتوسط: {_fixed(item.percentage)}% ({item.count} تكرار)\n"
        text += "   🔻 *تفصيل المعلمين (تصاعدياً):*\n"
        for detail in item.teacher_details:
            icon = PERCENTAGE_ICONS[percentage_color(detail.percentage)]
            text += f"   {icon} {detail.name} ({_fixed(detail.percentage, 0)}%)\n"
        text += "\n"

    teacher_names: List[str] = []
    for item in items:
        for detail in item.teacher_details:
            if detail.name not in teacher_names:
                teacher_names.append(detail.name)
    rows = []
    for item in items:
        by_name = {d.name: d for d in item.teacher_details}
        rows.append(
            [item.label, _fixed(item.percentage)]
            + [_fixed(by_name[name].percentage) if name in by_name else "-" for name in teacher_names]
        )

    return ExportDocument(
        title="تحليل عناصر التقييم",
        filename=f"evaluation_analysis_{today.isoformat()}",
        text=text,
        tables=[ExportTable(columns=["المعيار", "المتوسط العام", *teacher_names], rows=rows, sheet_name="Analysis")],
    )


def key_metrics_document(metrics: KeyMetrics, usage: Optional[UsageStatistics] = None, today: Optional[date] = None) -> ExportDocument:
    today = today or date.today()
    text = "*📊 المؤشرات الرئيسية*\n"
    text += f"*👨‍🏫 إجمالي المعلمين:* {metrics.total_teachers}\n"
    text += f"*📋 إجمالي التقارير:* {metrics.total_reports}\n"
    text += f"*📈 متوسط الأداء العام:* {_fixed(metrics.overall_average)}%\n"
    tables = [ExportTable(
        columns=["المؤشر", "القيمة"],
        rows=[
            ["إجمالي المعلمين", metrics.total_teachers],
            ["إجمالي التقارير", metrics.total_reports],
            ["متوسط الأداء العام", f"{_fixed(metrics.overall_average)}%"],
        ],
        sheet_name="Summary",
    )]

    if usage is not None:
        text += f"{SEPARATOR}*إحصائيات الاستخدام*\n"
        for name, label in USAGE_LABELS.items():
            text += f"{label}: {_fixed(usage.percentages[name])}%\n"
        tables.append(ExportTable(
            title="إحصائيات الاستخدام",
            columns=["المؤشر", "النسبة"],
            rows=[[label, f"{_fixed(usage.percentages[name])}%"] for name, label in USAGE_LABELS.items()],
            sheet_name="Summary",
        ))
        for name, label in USAGE_LABELS.items():
            details = usage.details[name]
            text += f"{SEPARATOR}{label}\n"
            if not details:
                text += "(لا توجد بيانات للفترة المحددة)\n"
            detail_rows = []
            for item, counts in details.items():
                text += f"  - {item}:\n"
                for teacher_name, count in sorted(counts.items(), key=lambda kv: kv[1], reverse=True):
                    text += f"    - {teacher_name} ({count})\n"
                    detail_rows.append([item, teacher_name, count])
            tables.append(ExportTable(columns=["العنصر", "المعلم", "العدد"], rows=detail_rows, title=label, sheet_name=label))

    return ExportDocument(
        title="المؤشرات الرئيسية",
        filename=f"key_metrics_{today.isoformat()}",
        text=text,
        tables=tables,
    )


# --- Supervisory records ---

def tasks_document(tasks: Sequence[Task], academic_year: Optional[str] = None, today: Optional[date] = None) -> ExportDocument:
    today = today or date.today()
    text = "*📋 تقرير خطة المهام*\n"
    if academic_year:
        text += f"*🎓 العام الدراسي:* {academic_year}\n"
    text += f"*تاريخ:* {today.isoformat()}\n"
    text += SEPARATOR
    for task in tasks:
        text += f"*📝 المهمة:* {task.description}\n"
        text += f"*🏷️ النوع:* {_joined(task.type)}\n"
        text += f"*📅 تاريخ الاستحقاق:* {_joined(task.due_date) or 'غير محدد'}\n"
        text += f"*📊 الحالة:* {task.status} ({task.completion_percentage}%)\n"
        if task.notes:
            text += f"*💬 ملاحظات:* {task.notes}\n"
        if task.is_off_plan:
            text += "*✨ (عمل خارج الخطة)*\n"
        text += ENTRY_RULE

    return ExportDocument(
        title="تقرير خطة المهام",
        filename=f"task_plan_{today.isoformat()}",
        text=text,
        heading=[f"العام الدراسي: {academic_year}"] if academic_year else [],
        tables=[ExportTable(
            columns=["المهمة", "النوع", "تاريخ الاستحقاق", "الحالة", "نسبة الإنجاز", "ملاحظات", "خارج الخطة"],
            rows=[
                [t.description, _joined(t.type), _joined(t.due_date), t.status, t.completion_percentage, t.notes,
                 "نعم" if t.is_off_plan else "لا"]
                for t in tasks
            ],
            sheet_name="Task Plan",
        )],
    )


def meeting_document(meeting: Meeting) -> ExportDocument:
    """Meeting minutes: outcomes, attendees and signatures."""
    done = WorkStatus.DONE.value
    text = "*📋 محضر اجتماع*\n"
    if meeting.academic_year:
        text += f"*🎓 العام الدراسي:* {meeting.academic_year}\n"
    text += f"*تاريخ:* {meeting.date} | *الوقت:* {meeting.time}\n"
    text += f"*المجتمع بهم:* {meeting.subject}\n"
    text += SEPARATOR
    text += "*المخرجات:*\n"
    for o in meeting.outcomes:
        status = o.status
        if o.status == done and o.completion_percentage:
            status += f" (بنسبة {o.completion_percentage}%)"
        text += f"- {o.outcome} (المنفذ: {o.assignee}, الموعد: {o.deadline}, الحالة: {status})\n"
        if o.notes:
            text += f"  *ملاحظات:* {o.notes}\n"
    text += SEPARATOR
    text += f"*الحضور:*\n{meeting.attendees}\n"

    tables = [
        ExportTable(
            rows=[
                ["العام الدراسي", meeting.academic_year or ""],
                ["التاريخ", meeting.date],
                ["الوقت", meeting.time],
                ["المجتمع بهم", meeting.subject],
            ],
            sheet_name="Meeting Minutes",
        ),
        ExportTable(
            columns=["المخرج", "المنفذ", "الموعد", "الحالة", "نسبة الإنجاز", "ملاحظات"],
            rows=[
                [o.outcome, o.assignee, o.deadline, o.status,
                 o.completion_percentage if o.status == done and o.completion_percentage is not None else "", o.notes]
                for o in meeting.outcomes if o.outcome
            ],
            sheet_name="Meeting Minutes",
        ),
        ExportTable(rows=[["الحضور", meeting.attendees]], sheet_name="Meeting Minutes"),
    ]
    if meeting.signatures:
        tables.append(ExportTable(
            title="التوقيعات",
            rows=[[name, signature] for name, signature in meeting.signatures.items()],
            sheet_name="Meeting Minutes",
        ))

    return ExportDocument(title="محضر اجتماع", filename=f"meeting_{meeting.date}", text=text, tables=tables)


def meeting_summary_document(stats: StatusBreakdown, start_date: str = "", end_date: str = "") -> ExportDocument:
    text = "*📊 تقرير مخرجات الاجتماعات*\n"
    text += f"*📅 من تاريخ:* {start_date} | *إلى تاريخ:* {end_date}\n"
    text += SEPARATOR
    text += f"*إجمالي المخرجات:* {stats.total}\n"
    text += f"*✅ تم التنفيذ:* {stats.done} ({_fixed(stats.done_percentage)}%)\n"
    text += f"*⏳ قيد التنفيذ:* {stats.in_progress} ({_fixed(stats.in_progress_percentage)}%)\n"
    text += f"*❌ لم يتم:* {stats.not_done} ({_fixed(stats.not_done_percentage)}%)\n"
    return ExportDocument(
        title="تقرير مخرجات الاجتماعات",
        filename=f"meeting_summary_{start_date}_to_{end_date}",
        text=text,
        heading=[f"من تاريخ: {start_date} | إلى تاريخ: {end_date}"],
        tables=[ExportTable(
            columns=["الحالة", "العدد", "النسبة"],
            rows=[
                ["تم التنفيذ", stats.done, f"{_fixed(stats.done_percentage)}%"],
                ["قيد التنفيذ", stats.in_progress, f"{_fixed(stats.in_progress_percentage)}%"],
                ["لم يتم", stats.not_done, f"{_fixed(stats.not_done_percentage)}%"],
            ],
            sheet_name="Summary",
        )],
    )


def peer_visits_document(visits: Sequence[PeerVisit], academic_year: Optional[str] = None, today: Optional[date] = None) -> ExportDocument:
    today = today or date.today()
    text = "*🤝 تقرير الزيارات التبادلية*\n"
    if academic_year:
        text += f"*🎓 العام الدراسي:* {academic_year}\n"
    text += SEPARATOR
    for v in visits:
        text += f"*المعلم الزائر:* {v.visiting_teacher} ({v.visiting_subject} - {v.visiting_grade})\n"
        text += f"*المعلم المزور:* {v.visited_teacher} ({v.visited_subject} - {v.visited_grade})\n"
        text += ENTRY_RULE

    return ExportDocument(
        title="تقرير الزيارات التبادلية",
        filename=f"peer_visits_{today.isoformat()}",
        text=text,
        heading=[f"العام الدراسي: {academic_year}"] if academic_year else [],
        tables=[ExportTable(
            columns=["المعلم الزائر", "مادة الزائر", "صف الزائر", "المعلم المزور", "مادة المزور", "صف المزور"],
            rows=[
                [v.visiting_teacher, v.visiting_subject, v.visiting_grade, v.visited_teacher, v.visited_subject, v.visited_grade]
                for v in visits
            ],
            sheet_name="Peer Visits",
        )],
    )


def delivery_document(
    records: Sequence[DeliveryRecord],
    sheet_name: str,
    academic_year: Optional[str] = None,
    today: Optional[date] = None
) -> ExportDocument:
    today = today or date.today()
    text = f"*📦 تقرير كشف: {sheet_name}*\n"
    if academic_year:
        text += f"*🎓 العام الدراسي:* {academic_year}\n"
    text += SEPARATOR
    for r in records:
        text += f"*المعلم:* {r.teacher_name}\n*المادة:* {r.subject} - {r.grade}\n"
        text += f"*العدد:* {r.form_count}\n*ت. الاستلام:* {r.receive_date}\n*ت. التسليم:* {r.delivery_date}\n"
        text += ENTRY_RULE

    return ExportDocument(
        title=f"تقرير كشف: {sheet_name}",
        filename=f"{sheet_name}_{today.isoformat()}",
        text=text,
        heading=[f"العام الدراسي: {academic_year}"] if academic_year else [],
        tables=[ExportTable(
            columns=["المعلم", "الصف", "المادة", "العدد", "ت. الاستلام", "ت. التسليم"],
            rows=[[r.teacher_name, r.grade, r.subject, r.form_count, r.receive_date, r.delivery_date] for r in records],
            sheet_name=sheet_name,
        )],
    )


def supervisory_summary_document(title: str, lines: Sequence[str], today: Optional[date] = None) -> ExportDocument:
    """A titled list of summary lines."""
    today = today or date.today()
    return ExportDocument(
        title=title,
        filename=f"{title}_{today.isoformat()}",
        text=f"{title}\n{SEPARATOR}" + "\n".join(lines),
        tables=[ExportTable(rows=[[line] for line in lines], sheet_name="Summary")],
    )


def peer_visit_summary_lines(stats: PeerVisitStats) -> List[str]:
    return [
        f"📌 إجمالي الزيارات: {stats.total}",
        f"✅ تمت الزيارة: {stats.done}",
        f"⏳ قيد التنفيذ: {stats.in_progress}",
        f"❌ لم تتم: {stats.not_done}",
        "",
        "📋 الزيارات المنفذة حسب المعلم:",
        *[f"🔹 {teacher}: {count}" for teacher, count in stats.visits_by_teacher.items()],
    ]


def syllabus_dashboard_lines(stats: Sequence[SyllabusTeacherStats]) -> List[str]:
    return [f"{s.name}: متأخر({s.behind}) متقدم({s.ahead})" for s in stats]


def delivery_summary_lines(stats: DeliveryStats) -> List[str]:
    return [f"تم التسليم: {stats.delivered} / {stats.total}"]


# --- Syllabus ---

def syllabus_plan_document(plan: SyllabusPlan) -> ExportDocument:
    text = "*🗓️ خطة المنهج*\n"
    text += f"*📖 المادة:* {plan.subject}\n"
    text += f"*👨‍🏫 الصف:* {plan.grade}\n"
    text += SEPARATOR
    for lesson in plan.lessons:
        text += f"- *عنوان الدرس:* {lesson.title}\n"
        text += f"  *التاريخ المخطط:* {lesson.planned_date}\n"

    return ExportDocument(
        title="خطة المنهج",
        filename=f"syllabus_plan_{plan.subject}_{plan.grade}",
        text=text,
        heading=[f"المادة: {plan.subject} | الصف: {plan.grade}"],
        tables=[ExportTable(
            columns=["عنوان الدرس", "التاريخ المخطط"],
            rows=[[lesson.title, lesson.planned_date] for lesson in plan.lessons],
            sheet_name="Syllabus Plan",
        )],
    )


def _coverage_status_text(status: str, difference: Any) -> str:
    text = COVERAGE_STATUS_LABELS.get(status, "--")
    if status in ("ahead", "behind"):
        try:
            lessons = int(str(difference).strip())
        except ValueError:
            lessons = 0
        if lessons > 0:
            text += f" ({difference} دروس)"
    return text


def coverage_document(report: SyllabusCoverageReport, teacher_name: str) -> ExportDocument:
    """A syllabus coverage report, one row per branch."""
    branch = _coverage_branch_label(report.branch)
    text = "*📊 تقرير سير المنهج*\n\n"
    text += "*--- ℹ️ المعلومات الأساسية ---*\n"
    text += f"*👨‍🏫 المعلم:* {teacher_name}\n"
    text += f"*🏫 المدرسة:* {report.school_name} ({branch})\n"
    text += f"*📖 المادة:* {report.subject} - *الصف:* {report.grade}\n"
    text += f"*📅 التاريخ:* {report.date} | *الفصل:* {report.semester}\n"
    text += f"*🎓 العام الدراسي:* {report.academic_year}\n\n"
    text += "*--- 📈 تفاصيل السير في المنهج ---*\n"

    if report.branches:
        for b in report.branches:
            emoji = COVERAGE_STATUS_EMOJI.get(b.status, "⚪️")
            text += f"\n*📚 فرع: {b.branch_name}*\n"
            text += f"{emoji} *الحالة:* {_coverage_status_text(b.status, b.lesson_difference)}\n"
            text += f"*✍️ آخر درس:* {b.last_lesson or 'لم يحدد'}\n"
            text += f"*🔢 النسبة:* {b.percentage}%\n"
    else:
        text += "لا توجد فروع محددة لهذا التقرير.\n"

    info = [
        ["المعلم", teacher_name],
        ["التاريخ", report.date],
        ["المدرسة", report.school_name or ""],
        ["الفرع", branch],
        ["المادة", report.subject],
        ["الصف", report.grade],
        ["العام الدراسي", report.academic_year or ""],
        ["الفصل الدراسي", report.semester],
    ]
    tables = [ExportTable(rows=info, title="تقرير سير المنهج", sheet_name="Syllabus Report")]
    if report.branches:
        tables.append(ExportTable(
            columns=["الفرع", "حالة السير", "آخر درس", "النسبة المئوية"],
            rows=[
                [b.branch_name, _coverage_status_text(b.status, b.lesson_difference), b.last_lesson, f"{b.percentage}%"]
                for b in report.branches
            ],
            sheet_name="Syllabus Report",
        ))

    return ExportDocument(
        title="تقرير سير المنهج",
        filename=f"syllabus_report_{teacher_name}_{report.date}",
        text=text,
        heading=[
            f"المعلم: {teacher_name} | التاريخ: {report.date}",
            f"المدرسة: {report.school_name} | الفرع: {branch}",
        ],
        tables=tables,
    )
