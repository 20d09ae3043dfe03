import functools
import http.server
import json
import threading

import pytest

from pvetheme.applier import active_theme_name, apply_theme
from pvetheme.catalog import (
    Catalog,
    _parse_index,
    LocalCatalog,
    RemoteCatalog,
    create_catalog,
    label_for,
    sync_catalog,
)
from pvetheme.config import BUILTIN_THEMES_DIR
from pvetheme.errors import CatalogError, ThemeNotFound

BUILTIN = ["modern-dark", "ocean-blue", "forest-green", "minimal-light"]


# ── Helpers ───────────────────────────────────────────────────────────────────

class _QuietHandler(http.server.SimpleHTTPRequestHandler):
    def log_message(self, *a): pass


@pytest.fixture
def served(tmp_path, monkeypatch):
    """Serve tmp_path/site over HTTP on a free port; yields (site_dir, base_url)."""
    for var in ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(var, raising=False)
    site = tmp_path / "site"
    (site / "themes").mkdir(parents=True)
    handler = functools.partial(_QuietHandler, directory=str(site))
    srv = http.server.HTTPServer(("127.0.0.1", 0), handler)
    t = threading.Thread(target=srv.serve_forever, daemon=True)
    t.start()
    try:
        yield site, f"http://127.0.0.1:{srv.server_address[1]}"
    finally:
        srv.shutdown()
        srv.server_close()


def _publish(site, themes):
    index = []
    for name, css in themes.items():
        (site / "themes" / f"{name}.css").write_text(css)
        index.append({"name": name, "label": name.upper()})
    (site / "themes" / "index.json").write_text(json.dumps(index))


# ── Local ─────────────────────────────────────────────────────────────────────

def test_builtin_catalog_order_and_labels():
    catalog = LocalCatalog(BUILTIN_THEMES_DIR)
    assert catalog.names() == BUILTIN
    assert catalog.get("ocean-blue").label == "Ocean Blue"
    assert catalog.get("ocean-blue").description
    assert b"proxmox-theme-dark" in catalog.read("ocean-blue")


def test_local_catalog_without_index(tmp_path):
    (tmp_path / "zeta_theme.css").write_text("z")
    (tmp_path / "alpha.css").write_text("a")
    (tmp_path / "notes.txt").write_text("ignored")

    catalog = LocalCatalog(tmp_path)

    assert catalog.names() == ["alpha", "zeta_theme"]
    assert catalog.get("zeta_theme").label == "Zeta Theme"
    assert catalog.read("alpha") == b"a"


def test_local_catalog_index_skips_missing_files_and_appends_unlisted(tmp_path):
    (tmp_path / "b.css").write_text("b")
    (tmp_path / "c.css").write_text("c")
    (tmp_path / "themes.json").write_text(json.dumps(["c", "missing", {"name": "b", "label": "Bee"}]))

    catalog = LocalCatalog(tmp_path)

    assert catalog.names() == ["c", "b"]
    assert catalog.get("b").label == "Bee"


def test_local_catalog_errors(tmp_path):
    with pytest.raises(CatalogError):
        LocalCatalog(tmp_path / "nope")
    (tmp_path / "themes.json").write_text("{not json")
    with pytest.raises(CatalogError):
        LocalCatalog(tmp_path)


def test_label_for():
    assert label_for("ocean-blue") == "Ocean Blue"
    assert label_for("minimal") == "Minimal"


# ── Applier ───────────────────────────────────────────────────────────────────

def test_apply_copies_exact_bytes(tmp_path):
    catalog = LocalCatalog(BUILTIN_THEMES_DIR)
    active = tmp_path / "images" / "pve-theme-active.css"
    active.parent.mkdir()
    active.write_text("previous theme")

    apply_theme("ocean-blue", catalog, active)

    assert active.read_bytes() == (BUILTIN_THEMES_DIR / "ocean-blue.css").read_bytes()
    assert active_theme_name(catalog, active) == "ocean-blue"


def test_apply_unknown_theme_leaves_active_untouched(tmp_path):
    catalog = LocalCatalog(BUILTIN_THEMES_DIR)
    active = tmp_path / "pve-theme-active.css"
    active.write_text("previous theme")

    with pytest.raises(ThemeNotFound) as exc:
        apply_theme("foo", catalog, active)

    assert "ocean-blue" in str(exc.value)
    assert active.read_text() == "previous theme"


def test_active_theme_name_unknown_or_missing(tmp_path):
    catalog = LocalCatalog(BUILTIN_THEMES_DIR)
    active = tmp_path / "pve-theme-active.css"
    assert active_theme_name(catalog, active) is None
    active.write_text("hand-edited")
    assert active_theme_name(catalog, active) is None


# ── Remote ────────────────────────────────────────────────────────────────────

def test_remote_catalog(served):
    site, url = served
    _publish(site, {"ocean-blue": "body{}", "night": "html{}"})

    catalog = RemoteCatalog(url + "/")

    assert catalog.names() == ["ocean-blue", "night"]
    assert catalog.get("night").label == "NIGHT"
    assert catalog.read("night") == b"html{}"
    with pytest.raises(ThemeNotFound):
        catalog.read("foo")


def test_remote_catalog_missing_index(served):
    _, url = served
    with pytest.raises(CatalogError) as exc:
        RemoteCatalog(url)
    assert "404" in str(exc.value)


def test_remote_catalog_bad_index(served):
    site, url = served
    (site / "themes" / "index.json").write_text('{"name": "not a list"}')
    with pytest.raises(CatalogError):
        RemoteCatalog(url)


def test_remote_theme_file_missing(served):
    site, url = served
    (site / "themes" / "index.json").write_text(json.dumps(["ghost"]))
    catalog = RemoteCatalog(url)
    with pytest.raises(CatalogError):
        catalog.read("ghost")


def test_sync_then_read_locally(served, tmp_path):
    site, url = served
    _publish(site, {"ocean-blue": "body{}", "night": "html{}"})
    target = tmp_path / "local-themes"

    written = sync_catalog(RemoteCatalog(url), target)

    assert written == ["ocean-blue", "night"]
    local = LocalCatalog(target)
    assert local.names() == ["ocean-blue", "night"]
    assert local.get("night").label == "NIGHT"
    assert local.read("ocean-blue") == b"body{}"


def test_create_catalog(config, served):
    _, url = served
    assert isinstance(create_catalog(config), LocalCatalog)
    with pytest.raises(CatalogError):
        create_catalog({**config, "catalog_url": url})


@pytest.mark.parametrize("name", ["../../escaped", "a/b", "..", ".hidden", "/etc/passwd", "x..y", "ok\n", ""])
def test_index_rejects_unsafe_names(name):
    with pytest.raises(CatalogError):
        _parse_index([name])
    with pytest.raises(CatalogError):
        _parse_index([{"name": name or 7}])


def test_sync_refuses_index_that_escapes_directory(served, tmp_path):
    site, url = served
    (site / "themes" / "index.json").write_text(json.dumps(["ocean-blue", "../../escaped"]))
    (site / "themes" / "ocean-blue.css").write_text("body{}")
    target = tmp_path / "a" / "b" / "themes"

    with pytest.raises(CatalogError):
        sync_catalog(RemoteCatalog(url), target)

    assert not (tmp_path / "a" / "escaped.css").exists()
    assert not target.exists()


def test_catalog_backends_must_implement_read():
    with pytest.raises(TypeError):
        Catalog([])

    class Partial(Catalog):
        pass

    with pytest.raises(TypeError):
        Partial([])
