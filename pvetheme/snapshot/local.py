import json
import shutil
from datetime import datetime
from pathlib import Path

from pvetheme.errors import SnapshotConflict, SnapshotNotFound
from pvetheme.report import BackupReport
from pvetheme.snapshot.base import META_FILE, TEMPLATE_COPY, THEME_FILES_DIR, Snapshot, SnapshotStore
from pvetheme.themefiles import find_theme_files

ID_FORMAT = "%Y%m%d_%H%M%S"


class LocalSnapshotStore(SnapshotStore):
    """Snapshots as timestamped directories under one backups root.

        <root>/20250101_120000/
            index.html.tpl.original
            theme-files/pve-theme-active.css
            meta.json
    """

    def __init__(self, root, clock=datetime.now):
        self.root = Path(root).expanduser()
        self._clock = clock

    def create(self, layout):
        now = self._clock()
        snapshot_id = now.strftime(ID_FORMAT)
        snapshot_path = self.root / snapshot_id

        self.root.mkdir(parents=True, exist_ok=True)
        try:
            snapshot_path.mkdir()
        except FileExistsError:
            raise SnapshotConflict(
                f"Snapshot {snapshot_id} already exists. Wait a second and try again."
            )

        report = BackupReport(snapshot_id)

        if layout.template.is_file():
            try:
                shutil.copy2(layout.template, snapshot_path / TEMPLATE_COPY)
                report.template_saved = True
                report.template_bytes = layout.template.stat().st_size
                report.ok()
            except OSError as e:
                report.fail(f"{layout.template}: {e}")
        else:
            report.warn(f"{layout.template} not found; snapshot holds no template")

        theme_dir = snapshot_path / THEME_FILES_DIR
        theme_dir.mkdir()
        for f in find_theme_files(layout.images):
            try:
                shutil.copy2(f, theme_dir / f.name)
                report.theme_files.append(f.name)
                report.ok()
            except OSError as e:
                report.fail(f"{f}: {e}")

        meta = {
            "id": snapshot_id,
            "created": now.isoformat(timespec="seconds"),
            "source": str(layout.root),
            "template_saved": report.template_saved,
            "template_bytes": report.template_bytes,
            "theme_files": report.theme_files,
            "file_count": report.succeeded,
            "failed_count": report.failed,
            "success": report.success,
            "warnings": report.warnings,
        }
        (snapshot_path / META_FILE).write_text(json.dumps(meta, indent=2) + "\n")

        return report

    def list(self):
        if not self.root.is_dir():
            return
        entries = [
            entry.name for entry in self.root.iterdir()
            if entry.is_dir() and (entry / META_FILE).is_file()
        ]
        # IDs are zero-padded timestamps, so name order is time order
        yield from sorted(entries, reverse=True)

    def get(self, snapshot_id):
        snapshot_path = self.root / snapshot_id
        if not snapshot_id or snapshot_path.parent != self.root or not (snapshot_path / META_FILE).is_file():
            raise SnapshotNotFound(snapshot_id)
        try:
            return Snapshot.load(snapshot_path)
        except (json.JSONDecodeError, OSError):
            raise SnapshotNotFound(snapshot_id)

    def delete(self, snapshot_id):
        snapshot = self.get(snapshot_id)
        shutil.rmtree(snapshot.path)
