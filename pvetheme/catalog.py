"""Theme catalogs.

A catalog is an ordered set of named stylesheets. LocalCatalog reads a
directory of *.css files; RemoteCatalog reads an index over HTTP:

    <catalog_url>/themes/index.json     [{"name": ..., "label": ..., "description": ...}, ...]
    <catalog_url>/themes/<name>.css

Either directory or index may list bare names instead of objects. An
optional themes.json beside local *.css files supplies labels and order.
"""

import json
import re
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from pathlib import Path

from pvetheme.errors import CatalogError, ThemeNotFound

INDEX_FILE = "themes.json"
REMOTE_INDEX = "themes/index.json"
_TIMEOUT = 15

# Names become file names and URL path segments
_VALID_NAME = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]*")


def label_for(name):
    """ocean-blue -> Ocean Blue"""
    return " ".join(part.capitalize() for part in name.replace("_", "-").split("-") if part)


class Theme:
    def __init__(self, name, label=None, description="", source=None):
        self.name = name
        self.label = label or label_for(name)
        self.description = description
        self.source = source

    def to_dict(self):
        return {"name": self.name, "label": self.label, "description": self.description}

    def __repr__(self):
        return f"Theme({self.name!r})"


def _parse_index(entries):
    """Normalize index entries (strings or dicts) into (name, label, description)."""
    if not isinstance(entries, list):
        raise CatalogError("Theme index must be a JSON list")
    parsed = []
    for entry in entries:
        if isinstance(entry, str):
            name, label, description = entry, None, ""
        elif isinstance(entry, dict) and entry.get("name"):
            name, label, description = entry["name"], entry.get("label"), entry.get("description", "")
        else:
            raise CatalogError(f"Invalid theme index entry: {entry!r}")
        if not isinstance(name, str) or not _VALID_NAME.fullmatch(name) or ".." in name:
            raise CatalogError(f"Invalid theme name in index: {name!r}")
        parsed.append((name, label, description))
    return parsed


class Catalog(ABC):
    """Base catalog: ordered themes plus a way to read their bytes."""

    def __init__(self, themes):
        self._themes = {t.name: t for t in themes}

    @property
    def themes(self):
        return list(self._themes.values())

    def names(self):
        return list(self._themes)

    def __contains__(self, name):
        return name in self._themes

    def __len__(self):
        return len(self._themes)

    def get(self, name):
        if name not in self._themes:
            raise ThemeNotFound(name, self.names())
        return self._themes[name]

    @abstractmethod
    def read(self, name):
        """Return the stylesheet bytes for name."""
        pass


class LocalCatalog(Catalog):

    def __init__(self, directory):
        self.directory = Path(directory)
        super().__init__(self._discover())

    def _discover(self):
        if not self.directory.is_dir():
            raise CatalogError(f"Themes directory {self.directory} not found")

        files = {f.stem: f for f in self.directory.glob("*.css") if f.is_file()}
        index_file = self.directory / INDEX_FILE
        themes = []

        if index_file.exists():
            try:
                entries = _parse_index(json.loads(index_file.read_text()))
            except json.JSONDecodeError as e:
                raise CatalogError(f"Invalid JSON in {index_file}: {e}")
            for name, label, description in entries:
                if name in files:
                    themes.append(Theme(name, label, description, source=files.pop(name)))

        # Anything not listed in the index follows, alphabetically
        for name in sorted(files):
            themes.append(Theme(name, source=files[name]))

        return themes

    def read(self, name):
        theme = self.get(name)
        try:
            return theme.source.read_bytes()
        except OSError as e:
            raise CatalogError(f"Could not read {theme.source}: {e}")


class RemoteCatalog(Catalog):

    def __init__(self, base_url, timeout=_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        super().__init__(self._discover())

    def _fetch(self, url):
        req = urllib.request.Request(url, headers={"User-Agent": "pve-theme"})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            raise CatalogError(f"{url}: HTTP {e.code}")
        except (urllib.error.URLError, OSError) as e:
            raise CatalogError(f"{url}: {e}")

    def _discover(self):
        url = f"{self.base_url}/{REMOTE_INDEX}"
        try:
            entries = _parse_index(json.loads(self._fetch(url)))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CatalogError(f"Invalid theme index at {url}: {e}")
        return [
            Theme(name, label, description, source=f"{self.base_url}/themes/{name}.css")
            for name, label, description in entries
        ]

    def read(self, name):
        return self._fetch(self.get(name).source)


def create_catalog(config):
    """Remote catalog when catalog_url is set, otherwise the local themes_dir."""
    if config.get("catalog_url"):
        return RemoteCatalog(config["catalog_url"])
    return LocalCatalog(Path(config["themes_dir"]).expanduser())


def sync_catalog(catalog, directory):
    """Download every theme in catalog into directory. Returns the names written."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    written = []
    for theme in catalog.themes:
        (directory / f"{theme.name}.css").write_bytes(catalog.read(theme.name))
        written.append(theme.name)
    (directory / INDEX_FILE).write_text(
        json.dumps([t.to_dict() for t in catalog.themes], indent=2) + "\n"
    )
    return written
