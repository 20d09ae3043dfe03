from fnmatch import fnmatch
from pathlib import Path

# Files in the serving directory that belong to us. The last two are
# names used by earlier installers and are still cleaned up on restore.
THEME_FILE_PATTERNS = (
    "pve-theme-*.css",
    "*.theme.css",
    "solarized.css",
)


def is_theme_file(name, patterns=THEME_FILE_PATTERNS):
    return any(fnmatch(name, p) for p in patterns)


def find_theme_files(images_dir, patterns=THEME_FILE_PATTERNS):
    """Theme-convention files in images_dir, sorted by name."""
    images_dir = Path(images_dir)
    if not images_dir.is_dir():
        return []
    return sorted(
        (f for f in images_dir.iterdir() if f.is_file() and is_theme_file(f.name, patterns)),
        key=lambda f: f.name,
    )
