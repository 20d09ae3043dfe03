import pytest

from conftest import SAMPLE_TEMPLATE
from pvetheme.errors import NoSnapshotsFound, SnapshotNotFound
from pvetheme.restore import clean, restore, restore_latest
from pvetheme.template import MARKER, patch_file


def _theme_up(layout):
    """Simulate an installed theme plus stale files from older installers."""
    patch_file(layout.template, layout.theme_href)
    layout.active_theme.write_text("body { background: navy; }")
    (layout.images / "solarized.css").write_text("/* old */")
    (layout.images / "dark.theme.css").write_text("/* old */")
    (layout.images / "logo.png").write_bytes(b"\x89PNG")


def test_restore_returns_template_byte_for_byte(layout, store):
    original = layout.template.read_bytes()
    snapshot_id = store.create(layout).snapshot_id
    _theme_up(layout)
    assert layout.template.read_bytes() != original

    report = restore(layout, store, snapshot_id)

    assert report.success
    assert report.template_restored
    assert layout.template.read_bytes() == original
    assert sorted(report.removed) == ["dark.theme.css", "pve-theme-active.css", "solarized.css"]
    assert not layout.active_theme.exists()
    assert (layout.images / "logo.png").exists()
    # Snapshot is kept for later restores
    assert list(store.list()) == [snapshot_id]


def test_restore_twice_from_same_snapshot(layout, store):
    snapshot_id = store.create(layout).snapshot_id
    _theme_up(layout)
    restore(layout, store, snapshot_id)
    _theme_up(layout)
    restore(layout, store, snapshot_id)
    assert layout.template.read_text() == SAMPLE_TEMPLATE


def test_restore_snapshot_without_template_warns(layout, store):
    saved = layout.template.read_text()
    layout.template.unlink()
    snapshot_id = store.create(layout).snapshot_id
    layout.template.write_text(saved)
    layout.active_theme.write_text("x")

    report = restore(layout, store, snapshot_id)

    assert report.success
    assert not report.template_restored
    assert report.warnings
    assert layout.template.read_text() == saved
    assert not layout.active_theme.exists()


def test_restore_unknown_snapshot(layout, store):
    with pytest.raises(SnapshotNotFound):
        restore(layout, store, "19700101_000000")


def test_restore_latest_picks_newest(layout, store):
    store.create(layout)
    patch_file(layout.template, layout.theme_href)
    newest = store.create(layout).snapshot_id

    report = restore_latest(layout, store)

    assert report.snapshot_id == newest
    # The newest snapshot holds a patched template; the loader block must not survive
    assert layout.template.read_text() == SAMPLE_TEMPLATE
    assert any("patched template" in w for w in report.warnings)


def test_restore_from_patched_snapshot_leaves_no_dangling_loader(layout, store):
    _theme_up(layout)
    snapshot_id = store.create(layout).snapshot_id
    assert MARKER in store.get(snapshot_id).template_path.read_text()

    report = restore(layout, store, snapshot_id)

    assert report.success
    assert report.template_restored
    assert MARKER not in layout.template.read_text()
    assert not layout.active_theme.exists()
    # The snapshot copy itself is untouched
    assert MARKER in store.get(snapshot_id).template_path.read_text()


def test_restore_latest_without_snapshots(layout, store):
    with pytest.raises(NoSnapshotsFound):
        restore_latest(layout, store)


def test_clean_strips_template_in_place(layout):
    _theme_up(layout)

    report = clean(layout)

    assert report.success
    assert report.template_restored
    assert layout.template.read_text() == SAMPLE_TEMPLATE
    assert not layout.active_theme.exists()
    assert not (layout.images / "solarized.css").exists()


def test_clean_without_template(layout):
    layout.template.unlink()
    layout.active_theme.write_text("x")
    report = clean(layout)
    assert report.warnings
    assert report.removed == ["pve-theme-active.css"]
