import json
from abc import ABC, abstractmethod
from pathlib import Path

from pvetheme.errors import NoSnapshotsFound

META_FILE = "meta.json"
TEMPLATE_COPY = "index.html.tpl.original"
THEME_FILES_DIR = "theme-files"


class Snapshot:
    """Read-only view of one snapshot directory."""

    def __init__(self, path, meta):
        self.path = Path(path)
        self.meta = meta

    @classmethod
    def load(cls, path):
        path = Path(path)
        return cls(path, json.loads((path / META_FILE).read_text()))

    @property
    def id(self):
        return self.meta.get("id", self.path.name)

    @property
    def created(self):
        return self.meta.get("created", "")

    @property
    def template_path(self):
        return self.path / TEMPLATE_COPY

    @property
    def has_template(self):
        return bool(self.meta.get("template_saved")) and self.template_path.is_file()

    @property
    def theme_files(self):
        """(name, path) pairs in the order they were recorded."""
        directory = self.path / THEME_FILES_DIR
        return [(name, directory / name) for name in self.meta.get("theme_files", [])]

    @property
    def success(self):
        return bool(self.meta.get("success"))

    def __repr__(self):
        return f"Snapshot({self.id!r})"


class SnapshotStore(ABC):
    """Base interface for snapshot backends.

    Implementations: LocalSnapshotStore.
    """

    @abstractmethod
    def create(self, layout):
        """Snapshot the template and theme files. Returns a BackupReport."""
        pass

    @abstractmethod
    def list(self):
        """Yield snapshot IDs newest-first. Re-scans on every call."""
        pass

    @abstractmethod
    def get(self, snapshot_id):
        """Return a Snapshot or raise SnapshotNotFound."""
        pass

    @abstractmethod
    def delete(self, snapshot_id):
        """Delete a snapshot by ID."""
        pass

    def latest(self):
        for snapshot_id in self.list():
            return self.get(snapshot_id)
        raise NoSnapshotsFound()

    def all(self):
        return [self.get(snapshot_id) for snapshot_id in self.list()]
