import shutil

from pvetheme.errors import NoSnapshotsFound
from pvetheme.report import RestoreReport
from pvetheme.template import unpatch_file
from pvetheme.themefiles import find_theme_files


def remove_theme_files(layout, report):
    """Delete every theme-convention file in the serving directory."""
    for f in find_theme_files(layout.images):
        try:
            f.unlink()
            report.removed.append(f.name)
            report.ok()
        except OSError as e:
            report.fail(f"{f}: {e}")


def restore(layout, store, snapshot_id):
    """Put the snapshot's template back and remove injected theme files.

    A snapshot taken while a theme was installed holds a patched template.
    The loader block is stripped after copying, since the stylesheet it
    points at is deleted below.

    The snapshot is kept so it can be restored again. There is no rollback:
    a failure part-way leaves whatever was already copied or deleted.
    """
    snapshot = store.get(snapshot_id)
    report = RestoreReport(snapshot.id)

    if snapshot.has_template:
        try:
            shutil.copy2(snapshot.template_path, layout.template)
            if unpatch_file(layout.template):
                report.warn(f"Snapshot {snapshot.id} held a patched template; theme block removed")
            report.template_restored = True
            report.ok()
        except OSError as e:
            report.fail(f"{layout.template}: {e}")
    else:
        report.warn(f"Snapshot {snapshot.id} has no template copy; template left as is")

    remove_theme_files(layout, report)
    return report


def restore_latest(layout, store):
    for snapshot_id in store.list():
        return restore(layout, store, snapshot_id)
    raise NoSnapshotsFound()


def clean(layout):
    """Strip injected blocks from the live template in place, then remove theme files.

    Used when there is no snapshot to restore from.
    """
    report = RestoreReport()
    if layout.template.is_file():
        try:
            report.template_restored = unpatch_file(layout.template, legacy=True)
            report.ok()
        except OSError as e:
            report.fail(f"{layout.template}: {e}")
    else:
        report.warn(f"{layout.template} not found; nothing to clean")

    remove_theme_files(layout, report)
    return report
