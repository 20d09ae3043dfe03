"""Audit logging.

Appends structured JSON entries to ~/.pvetheme/logs.jsonl (config key
log_file). Each entry records one operation (backup, install, restore,
uninstall) with timestamp, theme, snapshot ID, result and counts.
"""

import json
from datetime import datetime
from pathlib import Path

LOGS_FILE = Path.home() / ".pvetheme" / "logs.jsonl"


def logs_file(config=None):
    if config and config.get("log_file"):
        return Path(config["log_file"]).expanduser()
    return LOGS_FILE


def write_log(entry, config=None):
    """Append an audit log entry."""
    path = logs_file(config)
    path.parent.mkdir(parents=True, exist_ok=True)
    entry["timestamp"] = datetime.now().isoformat()
    with open(path, "a") as f:
        f.write(json.dumps(entry) + "\n")


def read_logs(config=None):
    """Return every parseable entry, oldest first."""
    path = logs_file(config)
    if not path.exists():
        return []
    entries = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return entries
