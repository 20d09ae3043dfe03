from pvetheme.snapshot.base import Snapshot, SnapshotStore
from pvetheme.snapshot.local import LocalSnapshotStore


def create_snapshot_store(config, clock=None):
    """Create a snapshot store from config.

    Config keys:
        snapshot_backend: "local" (the only backend)
        backup_dir: root directory for snapshot folders
    """
    backend = config.get("snapshot_backend", "local")

    if backend == "local":
        root = config["backup_dir"]
        if clock is None:
            return LocalSnapshotStore(root)
        return LocalSnapshotStore(root, clock=clock)

    raise ValueError(f"Unknown snapshot backend: {backend!r}. Use 'local'.")
