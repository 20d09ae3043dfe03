"""Exception types raised by the core operations.

The CLI catches ThemeManagerError (and OSError) and prints the message.
"""


class ThemeManagerError(Exception):
    fatal = False


class PreconditionFailure(ThemeManagerError):
    """The install root or template is missing, or we are not root."""


class SnapshotConflict(ThemeManagerError):
    """A snapshot with the same id already exists."""


class NotFound(ThemeManagerError):
    pass


class SnapshotNotFound(NotFound):
    def __init__(self, snapshot_id):
        super().__init__(f"Snapshot {snapshot_id} not found")
        self.snapshot_id = snapshot_id


class NoSnapshotsFound(NotFound):
    def __init__(self):
        super().__init__("No snapshots found. Run 'pve-theme backup' first.")


class ThemeNotFound(NotFound):
    def __init__(self, name, available=()):
        message = f"Theme {name!r} not found"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message)
        self.name = name


class TagNotFound(NotFound):
    """The template has no </head> to insert before; treated as malformed."""

    fatal = True

    def __init__(self, tag="</head>"):
        super().__init__(f"Could not find {tag} tag in template")
        self.tag = tag


class CatalogError(ThemeManagerError):
    """The theme catalog could not be read."""


class FileOperationFailed(ThemeManagerError):
    """A read or write on the install tree failed part-way through an operation."""
