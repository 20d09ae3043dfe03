import json
import os
from pathlib import Path

from dotenv import dotenv_values

GLOBAL_CONFIG_FILE = Path.home() / ".pvetheme" / "config.json"
ENV_FILE = Path("/etc/default/pve-theme")
ENV_PREFIX = "PVETHEME_"

# Bundled themes shipped alongside the package
BUILTIN_THEMES_DIR = Path(__file__).parent / "themes"

DEFAULT_CONFIG = {
    "pve_root": "/usr/share/pve-manager",
    "template_name": "index.html.tpl",
    "images_subdir": "images",
    "active_theme_name": "pve-theme-active.css",
    "theme_href": "/pve2/images/pve-theme-active.css",
    "backup_dir": str(Path.home() / "pve-theme-backups"),
    "themes_dir": str(BUILTIN_THEMES_DIR),
    "catalog_url": "",
    "snapshot_backend": "local",
    "restart_command": ["systemctl", "restart", "pveproxy"],
    "require_root": True,
    "log_file": str(Path.home() / ".pvetheme" / "logs.jsonl"),
}

_BOOL_KEYS = {"require_root"}
_LIST_KEYS = {"restart_command"}


def _config_file():
    override = os.environ.get("PVETHEME_CONFIG")
    return Path(override) if override else GLOBAL_CONFIG_FILE


def load_global_config():
    """Load ~/.pvetheme/config.json (or $PVETHEME_CONFIG).

    String values are coerced like env values, so a hand-edited
    "require_root": "false" reads as False.
    """
    path = _config_file()
    if path.exists():
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError):
            return {}
        if isinstance(data, dict):
            return {key: coerce_value(key, value) for key, value in data.items()}
    return {}


def save_global_config(updates):
    """Merge updates into the global config file."""
    path = _config_file()
    existing = load_global_config()
    existing.update(updates)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(existing, indent=2) + "\n")
    return path


def coerce_value(key, value):
    """Turn a string from the environment or the command line into the key's type."""
    if not isinstance(value, str):
        return value
    if key in _BOOL_KEYS:
        return value.strip().lower() in ("1", "true", "yes", "on")
    if key in _LIST_KEYS:
        return value.split()
    return value


def _env_overrides(env):
    overrides = {}
    for name, value in env.items():
        if not name.startswith(ENV_PREFIX) or value is None:
            continue
        key = name[len(ENV_PREFIX):].lower()
        if key in DEFAULT_CONFIG:
            overrides[key] = coerce_value(key, value)
    return overrides


def load_config(env_file=None):
    # Merge order: defaults → global config → /etc/default/pve-theme → PVETHEME_* env
    config = {**DEFAULT_CONFIG, **load_global_config()}

    env_file = Path(env_file) if env_file else ENV_FILE
    if env_file.exists():
        config.update(_env_overrides(dotenv_values(env_file)))
    config.update(_env_overrides(os.environ))

    unknown = set(config) - set(DEFAULT_CONFIG)
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    return config


class Layout:
    """Concrete filesystem locations derived from a config dict.

    Every core operation takes a Layout instead of reading global paths,
    so tests can point the whole tool at a temporary directory.
    """

    def __init__(self, config):
        self.config = config
        self.root = Path(config["pve_root"])
        self.template = self.root / config["template_name"]
        self.images = self.root / config["images_subdir"]
        self.active_theme = self.images / config["active_theme_name"]
        self.theme_href = config["theme_href"]
        self.backups = Path(config["backup_dir"]).expanduser()
        self.themes_dir = Path(config["themes_dir"]).expanduser()

    def __repr__(self):
        return f"Layout(root={str(self.root)!r}, backups={str(self.backups)!r})"
