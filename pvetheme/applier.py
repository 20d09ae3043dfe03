import hashlib
from pathlib import Path

from pvetheme.errors import CatalogError


def apply_theme(name, catalog, active_path):
    """Copy theme `name` from catalog over active_path.

    Raises ThemeNotFound before anything is written. Does not touch the
    template; the caller patches it to load active_path.
    """
    catalog.get(name)
    data = catalog.read(name)
    active_path = Path(active_path)
    active_path.parent.mkdir(parents=True, exist_ok=True)
    active_path.write_bytes(data)
    return len(data)


def active_theme_name(catalog, active_path):
    """Name of the catalog theme whose bytes match active_path, or None."""
    active_path = Path(active_path)
    if not active_path.is_file():
        return None
    digest = hashlib.sha256(active_path.read_bytes()).hexdigest()
    for theme in catalog.themes:
        try:
            if hashlib.sha256(catalog.read(theme.name)).hexdigest() == digest:
                return theme.name
        except CatalogError:
            continue
    return None
