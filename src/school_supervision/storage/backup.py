"""
Backup export, import and restore.

A backup file is a JSON object mapping storage keys to their raw stored
strings, so exporting and re-importing reproduces the store byte for byte.
Every import first archives the current application keys into a rotating
history (newest first) that can be restored later.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..errors import BackupFormatError, RecordNotFoundError
from ..models import BackupVersion, SessionContext
from .workspace import Workspace

logger = logging.getLogger(__name__)

HISTORY_KEY = "app_history_backups"

EXPORT_KEYS = (
    "teachers", "reports", "customCriteria", "specialReportTemplates",
    "syllabusPlans", "tasks", "meetings", "peerVisits", "deliverySheets",
    "bulkMessages", "syllabusCoverageReports", "supervisoryPlans", "schools",
)

# Keys cleared on import and captured in the archive snapshot.
APP_KEYS = (
    "teachers", "reports", "customCriteria", "specialReportTemplates",
    "syllabusPlans", "tasks", "meetings", "peerVisits", "deliverySheets", "schools",
)


class ExportMode(str, Enum):
    FULL = "full"
    TEACHER = "teacher"
    SCHOOL = "school"
    TYPE = "type"


@dataclass
class BackupFile:
    """A rendered backup ready to be written or sent."""
    filename: str
    content: str
    data: Dict[str, str]


class BackupManager:
    """Export/import/restore over a workspace's store."""

    def __init__(self, workspace: Workspace, slots: int = 5, operators: Sequence[str] = ()):
        self.workspace = workspace
        self.store = workspace.store
        self.slots = slots
        self.operators = tuple(operators)

    def can_manage(self, session: SessionContext) -> bool:
        """Wildcard users and named operators may manage backups."""
        if session.current_user is None:
            return False
        user = session.current_user
        return session.is_admin or user.id in self.operators or user.name in self.operators

    def collect(
        self,
        mode: ExportMode = ExportMode.FULL,
        teacher_id: Optional[str] = None,
        school_name: Optional[str] = None,
        evaluation_type: Optional[str] = None
    ) -> Dict[str, str]:
        """Gather the raw values for an export, filtered by mode."""
        data: Dict[str, str] = {}
        for key in EXPORT_KEYS:
            value = self.store.get_raw(key)
            if value:
                data[key] = value

        mode = ExportMode(mode)
        if mode == ExportMode.TEACHER and teacher_id:
            data["reports"] = self._filtered(data, "reports", lambda r: r.get("teacherId") == teacher_id)
            data["teachers"] = self._filtered(data, "teachers", lambda t: t.get("id") == teacher_id)
        elif mode == ExportMode.SCHOOL and school_name:
            data["reports"] = self._filtered(data, "reports", lambda r: r.get("school") == school_name)
            data["teachers"] = self._filtered(data, "teachers", lambda t: t.get("schoolName") == school_name)
        elif mode == ExportMode.TYPE and evaluation_type:
            data["reports"] = self._filtered(data, "reports", lambda r: r.get("evaluationType") == evaluation_type)

        return data

    def _filtered(self, data: Dict[str, str], key: str, keep) -> str:
        try:
            items = json.loads(data.get(key) or "[]")
        except json.JSONDecodeError as e:
            logger.warning(f"Key '{key}' is not valid JSON, exporting it empty: {e}")
            items = []
        kept = [item for item in items if isinstance(item, dict) and keep(item)]
        return json.dumps(kept, ensure_ascii=False)

    def export(
        self,
        mode: ExportMode = ExportMode.FULL,
        teacher_id: Optional[str] = None,
        school_name: Optional[str] = None,
        evaluation_type: Optional[str] = None,
        today: Optional[date] = None
    ) -> BackupFile:
        """Render a backup file named ``backup_{mode}_{date}.json``."""
        mode = ExportMode(mode)
        data = self.collect(mode, teacher_id, school_name, evaluation_type)
        today = today or date.today()
        backup = BackupFile(
            filename=f"backup_{mode.value}_{today.isoformat()}.json",
            content=json.dumps(data, ensure_ascii=False, indent=2),
            data=data,
        )
        logger.info(f"Exported backup {backup.filename}", extra={"keys": len(data)})
        return backup

    def write(self, backup: BackupFile, directory: Path) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / backup.filename
        path.write_text(backup.content, encoding="utf-8")
        return path

    def versions(self) -> List[BackupVersion]:
        """Archived versions, newest first."""
        raw_versions = self.store.load(HISTORY_KEY, [])
        if not isinstance(raw_versions, list):
            return []
        versions = []
        for raw in raw_versions:
            try:
                versions.append(BackupVersion.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable archived backup: {e.error_count()} error(s)")
        return versions

    def import_backup(self, content: str, now: Optional[datetime] = None) -> BackupVersion:
        """
        Replace the application data with a backup file's contents.

        The file is parsed before anything is touched; a parse failure raises
        BackupFormatError and leaves the store unchanged. Returns the archived
        snapshot of the data that was replaced.
        """
        try:
            incoming = json.loads(content)
        except (json.JSONDecodeError, TypeError) as e:
            raise BackupFormatError(f"Backup file is invalid or corrupted: {e}")
        if not isinstance(incoming, dict):
            raise BackupFormatError("Backup file is invalid or corrupted: expected a JSON object")

        now = now or datetime.now()
        snapshot = {}
        for key in APP_KEYS:
            value = self.store.get_raw(key)
            if value:
                snapshot[key] = value

        version = BackupVersion(
            id=int(now.timestamp() * 1000),
            timestamp=now.strftime("%Y-%m-%d %H:%M:%S"),
            label=f"نسخة تلقائية قبل استيراد {now.date().isoformat()}",
            data=json.dumps(snapshot, ensure_ascii=False),
        )
        history = [version] + self.versions()
        self.store.save(HISTORY_KEY, [v.model_dump() for v in history[:self.slots]])

        self._replace_app_data(incoming)
        logger.info(f"Imported backup with {len(incoming)} key(s); archived version {version.id}")
        return version

    def restore(self, version_id) -> BackupVersion:
        """Bring back an archived version."""
        for version in self.versions():
            if str(version.id) == str(version_id):
                try:
                    data = json.loads(version.data)
                except json.JSONDecodeError as e:
                    raise BackupFormatError(f"Archived version {version_id} is corrupted: {e}")
                self._replace_app_data(data)
                logger.info(f"Restored archived version {version.id}")
                return version
        raise RecordNotFoundError(HISTORY_KEY, str(version_id))

    def _replace_app_data(self, data: Dict) -> None:
        for key in APP_KEYS:
            self.store.remove(key)
        for key, value in data.items():
            self.store.set_raw(key, value if isinstance(value, str) else json.dumps(value, ensure_ascii=False))
        self.workspace.reload()
