import os

from pvetheme.applier import active_theme_name, apply_theme
from pvetheme.catalog import create_catalog, sync_catalog
from pvetheme.config import Layout, load_config
from pvetheme.errors import FileOperationFailed, PreconditionFailure, ThemeManagerError
from pvetheme.log import write_log
from pvetheme.probe import probe
from pvetheme.report import InstallReport
from pvetheme import restore as restore_engine
from pvetheme.service import restart_proxy
from pvetheme.snapshot import create_snapshot_store
from pvetheme.template import is_patched, patch_file, read_template, unpatch_file


def check_root(config):
    """Raise PreconditionFailure unless running as root (when required)."""
    if config.get("require_root") and os.geteuid() != 0:
        raise PreconditionFailure("This command must be run as root (try sudo)")


class ThemeManager:
    """Executes theme operations against one console install.

    Every method returns data or a Report and raises ThemeManagerError
    subclasses on whole-operation failures; rendering is left to the caller.
    """

    def __init__(self, config=None, store=None, catalog=None):
        self.config = config if config is not None else load_config()
        self.layout = Layout(self.config)
        self.store = store or create_snapshot_store(self.config)
        self._catalog = catalog

    @property
    def catalog(self):
        if self._catalog is None:
            self._catalog = create_catalog(self.config)
        return self._catalog

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def probe(self):
        return probe(self.layout)

    def require_root_dir(self):
        if not self.probe().root_exists:
            raise PreconditionFailure(
                f"Proxmox VE not found at {self.layout.root}. Is this a Proxmox VE server?"
            )

    def require_ready(self):
        self.require_root_dir()
        if not self.probe().template_exists:
            raise PreconditionFailure(
                f"Required file not found: {self.layout.template}. "
                "Only backup and restore are available."
            )

    # ------------------------------------------------------------------
    # Read-only
    # ------------------------------------------------------------------

    def status(self):
        result = self.probe()
        snapshots = list(self.store.list())
        patched = False
        if result.template_exists:
            patched = is_patched(read_template(self.layout.template))

        active = None
        if self.layout.active_theme.is_file():
            try:
                active = active_theme_name(self.catalog, self.layout.active_theme) or "custom"
            except ThemeManagerError:
                active = "custom"

        return {
            "root": str(self.layout.root),
            "root_exists": result.root_exists,
            "template": str(self.layout.template),
            "template_exists": result.template_exists,
            "patched": patched,
            "active_theme": active,
            "snapshots": len(snapshots),
            "latest_snapshot": snapshots[0] if snapshots else None,
            "backup_dir": str(self.layout.backups),
            "catalog": self.config.get("catalog_url") or str(self.layout.themes_dir),
        }

    def list_themes(self):
        """(theme, is_active) pairs in catalog order."""
        active = active_theme_name(self.catalog, self.layout.active_theme)
        return [(theme, theme.name == active) for theme in self.catalog.themes]

    def preview(self, name):
        """Return (theme, css_text) without writing anything."""
        theme = self.catalog.get(name)
        return theme, self.catalog.read(name).decode("utf-8", "replace")

    # ------------------------------------------------------------------
    # Mutating
    # ------------------------------------------------------------------

    def _restart(self, report, restart):
        if not restart:
            report.warn("Skipped service restart")
            return
        ok, message = restart_proxy(self.config)
        if ok:
            report.restarted = True
        else:
            report.warn(f"Service restart failed: {message}")

    def _log_failure(self, report, error):
        write_log({**report.to_log(), "result": "failed", "error": str(error)}, self.config)

    def backup(self):
        self.require_root_dir()
        report = self.store.create(self.layout)
        write_log(report.to_log(), self.config)
        return report

    def install(self, name, backup=True, restart=True):
        """Snapshot, patch the template, copy the theme in, restart the proxy."""
        self.require_ready()
        self.catalog.get(name)
        report = InstallReport(name)

        if backup:
            backup_report = self.store.create(self.layout)
            report.snapshot_id = backup_report.snapshot_id
            for message in backup_report.warnings + backup_report.errors:
                report.warn(f"Backup: {message}")
            write_log(backup_report.to_log(), self.config)

        try:
            report.patched = patch_file(self.layout.template, self.layout.theme_href)
        except ThemeManagerError as e:
            self._log_failure(report, e)
            raise
        except OSError as e:
            self._log_failure(report, e)
            raise FileOperationFailed(f"Could not patch {self.layout.template}: {e}") from e
        if not report.patched:
            report.warn("Template already patched")
        report.ok()

        try:
            apply_theme(name, self.catalog, self.layout.active_theme)
        except OSError as e:
            # Don't leave the template loading a stylesheet that was never written
            if report.patched:
                unpatch_file(self.layout.template)
            self._log_failure(report, e)
            raise FileOperationFailed(f"Could not write {self.layout.active_theme}: {e}") from e
        report.ok()

        self._restart(report, restart)
        write_log(report.to_log(), self.config)
        return report

    def restore(self, snapshot_id=None, restart=True):
        """Restore a snapshot by ID, or the newest when snapshot_id is None."""
        self.require_root_dir()
        if snapshot_id:
            report = restore_engine.restore(self.layout, self.store, snapshot_id)
        else:
            report = restore_engine.restore_latest(self.layout, self.store)
        self._restart(report, restart)
        write_log(report.to_log(), self.config)
        return report

    def uninstall(self, restart=True):
        """Restore the newest snapshot, or clean the template in place if there is none."""
        self.require_root_dir()
        snapshot_id = next(iter(self.store.list()), None)
        if snapshot_id:
            report = restore_engine.restore(self.layout, self.store, snapshot_id)
        else:
            report = restore_engine.clean(self.layout)
            report.warn("No snapshot found; removed theme blocks from the template in place")
        report.action = "uninstall"
        self._restart(report, restart)
        write_log(report.to_log(), self.config)
        return report

    def sync(self):
        """Download the configured remote catalog into themes_dir."""
        if not self.config.get("catalog_url"):
            raise PreconditionFailure("No catalog_url configured. Set it with: pve-theme config catalog_url <url>")
        names = sync_catalog(self.catalog, self.layout.themes_dir)
        write_log({"event": "sync", "result": "ok", "themes": names}, self.config)
        return names

    def delete_snapshot(self, snapshot_id):
        self.store.delete(snapshot_id)
        write_log({"event": "delete", "result": "ok", "snapshot": snapshot_id}, self.config)
