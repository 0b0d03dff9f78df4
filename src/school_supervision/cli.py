"""Command-line interface for the supervision toolkit."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .ai import create_llm_client
from .config import Settings
from .errors import BackupFormatError, RecordNotFoundError
from .export import (
    ExportFormat,
    analysis_document,
    final_report_document,
    render,
    report_document,
    write,
)
from .models import SessionContext
from .scoping import ScopedFilteringEngine
from .scoring import (
    FinalReportFilter,
    ReportFilter,
    analyze_criteria,
    build_final_report,
    filter_reports,
    format_percentage,
    score_of,
)
from .storage import BackupManager, ExportMode, JsonFileStorage, PersistentStore, UserDirectory, Workspace

app = typer.Typer(
    name="school-supervision",
    help="School supervision records: scoped reports, scoring, exports and backups",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)

CODE_OPTION = typer.Option(..., "--code", "-c", help="Login code of the acting user")
SCHOOL_OPTION = typer.Option(None, "--school", "-s", help="School to work in (defaults to the user's school)")
YEAR_OPTION = typer.Option(None, "--year", "-y", help="Academic year, e.g. 2025-2026")


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.app.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _open_workspace(settings: Settings) -> Workspace:
    store = PersistentStore(JsonFileStorage(settings.storage.data_file))
    workspace = Workspace(store, default_school_name=settings.app.default_school_name)
    if not settings.app.legacy_school_fallback:
        # untagged records would otherwise vanish from every school
        workspace.migrate_untagged_records()
    return workspace


def _login(workspace: Workspace, code: str, school: Optional[str], year: Optional[str]) -> SessionContext:
    user = UserDirectory(workspace).authenticate(code)
    if user is None:
        console.print("[red]❌ Unknown login code[/red]")
        raise typer.Exit(code=1)

    schools = tuple(workspace.schools)
    selected = school or user.school_name or (schools[0].name if schools else None)
    if not selected:
        console.print("[red]❌ No school selected and none configured[/red]")
        raise typer.Exit(code=1)
    return SessionContext(current_user=user, selected_school=selected, academic_year=year, schools=schools)


def _scoped(code: str, school: Optional[str], year: Optional[str]):
    settings = Settings.load()
    _configure_logging(settings)
    workspace = _open_workspace(settings)
    session = _login(workspace, code, school, year)
    engine = ScopedFilteringEngine(workspace, legacy_fallback=settings.app.legacy_school_fallback)
    return settings, workspace, session, engine.view(session)


def _emit(settings: Settings, document, fmt: ExportFormat, out: Optional[Path]) -> None:
    rendered = render(document, fmt, settings.export.pdf_font_path, settings.export.pdf_font_name)
    if fmt == ExportFormat.WHATSAPP:
        console.print(rendered.content)
        return
    path = write(rendered, out or settings.export.dir)
    console.print(f"[green]✅ Written {path}[/green]")


@app.command()
def version():
    """Show version information."""
    from school_supervision import __version__

    console.print(Panel.fit(
        f"[bold blue]School Supervision[/bold blue]\n"
        f"Version: [green]{__version__}[/green]",
        title="Version Info"
    ))


def _teacher_row(teacher) -> Tuple[str, str, str, str]:
    return teacher.id, teacher.name, teacher.subjects or teacher.subject or "", teacher.branch or ""


@app.command()
def teachers(code: str = CODE_OPTION, school: Optional[str] = SCHOOL_OPTION, year: Optional[str] = YEAR_OPTION):
    """List the teachers visible to the user."""
    _, _, session, view = _scoped(code, school, year)

    table = Table(title=f"Teachers - {session.selected_school}")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Subject")
    table.add_column("Branch")
    for teacher in view.teachers:
        table.add_row(*_teacher_row(teacher))
    console.print(table)


@app.command()
def reports(
    code: str = CODE_OPTION,
    school: Optional[str] = SCHOOL_OPTION,
    year: Optional[str] = YEAR_OPTION,
    evaluation_type: Optional[str] = typer.Option(None, "--type", "-t", help="general, class_session or special"),
    teacher_id: Optional[str] = typer.Option(None, "--teacher", help="Only this teacher's reports"),
    search: Optional[str] = typer.Option(None, "--search", help="Teacher name contains"),
    start_date: Optional[str] = typer.Option(None, "--from", help="First date, YYYY-MM-DD"),
    end_date: Optional[str] = typer.Option(None, "--to", help="Last date, YYYY-MM-DD"),
):
    """List scored reports, most recent first."""
    _, _, _, view = _scoped(code, school, year)
    report_filter = ReportFilter(
        evaluation_type=evaluation_type,
        teacher_id=teacher_id,
        search=search,
        start_date=start_date,
        end_date=end_date,
    )
    selected = filter_reports(view.reports, report_filter, view.teachers)
    names = {t.id: t.name for t in view.teachers}

    table = Table(title=f"Reports ({len(selected)})")
    table.add_column("ID", style="dim")
    table.add_column("Date")
    table.add_column("Teacher")
    table.add_column("Type")
    table.add_column("Score", justify="right")
    for report in selected:
        table.add_row(
            report.id,
            report.date,
            names.get(report.teacher_id, ""),
            report.evaluation_type,
            format_percentage(score_of(report)),
        )
    console.print(table)


@app.command("final-report")
def final_report(
    code: str = CODE_OPTION,
    school: Optional[str] = SCHOOL_OPTION,
    year: Optional[str] = YEAR_OPTION,
    sub_type: str = typer.Option("brief", "--sub-type", help="brief, extended or subject_specific"),
    start_date: Optional[str] = typer.Option(None, "--from", help="First date, YYYY-MM-DD"),
    end_date: Optional[str] = typer.Option(None, "--to", help="Last date, YYYY-MM-DD"),
    fmt: Optional[ExportFormat] = typer.Option(None, "--format", "-f", help="Export instead of printing"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Export directory"),
):
    """Per-teacher criterion averages over class-session reports."""
    settings, _, session, view = _scoped(code, school, year)
    report_filter = FinalReportFilter(
        school=session.selected_school,
        sub_type=sub_type,
        start_date=start_date,
        end_date=end_date,
    )
    final = build_final_report(view.reports, view.teachers, report_filter)

    if fmt is not None:
        document = final_report_document(final, session.selected_school, start_date, end_date)
        _emit(settings, document, fmt, out)
        return

    table = Table(title=f"Final report - {session.selected_school}")
    table.add_column("Teacher")
    for label in final.criteria_labels:
        table.add_column(label, justify="right")
    table.add_column("Total", justify="right")
    table.add_column("%", justify="right")
    for row in final.rows:
        table.add_row(
            row.name,
            *[f"{row.criteria_averages[label]:.1f}" for label in final.criteria_labels],
            f"{row.total_score:.1f}",
            format_percentage(row.percentage),
        )
    console.print(table)
    console.print(f"School average: [bold]{format_percentage(final.school_average)}[/bold]")


@app.command()
def analysis(
    code: str = CODE_OPTION,
    school: Optional[str] = SCHOOL_OPTION,
    year: Optional[str] = YEAR_OPTION,
    sub_type: Optional[str] = typer.Option(None, "--sub-type", help="all, general or a class-session sub type"),
    deficient: bool = typer.Option(False, "--deficient", help="Only teachers below 50%"),
    fmt: Optional[ExportFormat] = typer.Option(None, "--format", "-f", help="Export instead of printing"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Export directory"),
):
    """Criterion averages, weakest first."""
    settings, _, _, view = _scoped(code, school, year)
    items = analyze_criteria(view.reports, view.teachers, sub_type=sub_type, deficiency_only=deficient)

    if fmt is not None:
        _emit(settings, analysis_document(items), fmt, out)
        return

    table = Table(title="Criterion analysis")
    table.add_column("Criterion")
    table.add_column("Average", justify="right")
    table.add_column("Count", justify="right")
    for item in items:
        table.add_row(item.label, format_percentage(item.percentage), str(item.count))
    console.print(table)


@app.command("export-report")
def export_report(
    report_id: str = typer.Argument(..., help="Report to export"),
    code: str = CODE_OPTION,
    school: Optional[str] = SCHOOL_OPTION,
    year: Optional[str] = YEAR_OPTION,
    fmt: ExportFormat = typer.Option(ExportFormat.TXT, "--format", "-f"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Export directory"),
):
    """Export one visible report."""
    settings, _, _, view = _scoped(code, school, year)
    report = next((r for r in view.reports if r.id == report_id), None)
    teacher = next((t for t in view.teachers if report and t.id == report.teacher_id), None)
    if report is None or teacher is None:
        console.print(f"[red]❌ No visible report '{report_id}'[/red]")
        raise typer.Exit(code=1)
    _emit(settings, report_document(report, teacher), fmt, out)


def _backup_manager(code: str):
    settings = Settings.load()
    _configure_logging(settings)
    workspace = _open_workspace(settings)
    session = _login(workspace, code, None, None)
    manager = BackupManager(workspace, settings.storage.backup_slots, settings.storage.backup_operators)
    if not manager.can_manage(session):
        console.print("[red]❌ Backups are limited to administrators[/red]")
        raise typer.Exit(code=1)
    return settings, manager


@app.command("backup-export")
def backup_export(
    code: str = CODE_OPTION,
    mode: ExportMode = typer.Option(ExportMode.FULL, "--mode", "-m"),
    teacher_id: Optional[str] = typer.Option(None, "--teacher", help="For --mode teacher"),
    school_name: Optional[str] = typer.Option(None, "--school", help="For --mode school"),
    evaluation_type: Optional[str] = typer.Option(None, "--type", help="For --mode type"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Export directory"),
):
    """Write a backup file."""
    settings, manager = _backup_manager(code)
    backup = manager.export(mode, teacher_id, school_name, evaluation_type)
    path = manager.write(backup, out or settings.export.dir)
    console.print(f"[green]✅ Backup written to {path}[/green]")


@app.command("backup-import")
def backup_import(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Backup file"),
    code: str = CODE_OPTION,
):
    """Replace all data with a backup file, archiving the current data first."""
    _, manager = _backup_manager(code)
    try:
        version = manager.import_backup(path.read_text(encoding="utf-8"))
    except BackupFormatError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✅ Imported. Previous data archived as version {version.id}[/green]")


@app.command("backup-list")
def backup_list(code: str = CODE_OPTION):
    """List archived versions, newest first."""
    _, manager = _backup_manager(code)
    table = Table(title="Archived versions")
    table.add_column("ID", style="dim")
    table.add_column("Time")
    table.add_column("Label")
    for version in manager.versions():
        table.add_row(str(version.id), version.timestamp, version.label)
    console.print(table)


@app.command("backup-restore")
def backup_restore(
    version_id: str = typer.Argument(..., help="Archived version id"),
    code: str = CODE_OPTION,
):
    """Bring back an archived version."""
    _, manager = _backup_manager(code)
    try:
        version = manager.restore(version_id)
    except (RecordNotFoundError, BackupFormatError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✅ Restored version {version.id} ({version.timestamp})[/green]")


@app.command("generate-code")
def generate_code(
    use_llm: bool = typer.Option(True, "--llm/--no-llm", help="Ask the configured model first"),
):
    """Suggest an unused 4-digit login code."""
    settings = Settings.load()
    _configure_logging(settings)
    workspace = _open_workspace(settings)

    client = None
    if use_llm:
        try:
            client = create_llm_client(settings.llm)
        except ValueError as e:
            logger.warning(f"No model available, using random codes: {e}")

    directory = UserDirectory(workspace, client, settings.llm.code_generation_attempts)
    code = asyncio.run(directory.generate_code())
    console.print(Panel.fit(f"[bold green]{code}[/bold green]", title="New code"))


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
