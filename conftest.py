"""Shared fixtures: a fake Proxmox VE tree under tmp_path and an isolated config."""

import os
import subprocess
from datetime import datetime, timedelta

import pytest

from pvetheme.config import BUILTIN_THEMES_DIR, DEFAULT_CONFIG, Layout
from pvetheme.manager import ThemeManager
from pvetheme.snapshot import LocalSnapshotStore

SAMPLE_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta http-equiv="Content-Type" content="text/html; charset=utf-8" />
    <title>[% nodename %] - Proxmox Virtual Environment</title>
    <link rel="stylesheet" type="text/css" href="/pve2/ext6/theme-crisp/resources/theme-crisp-all.css?ver=7.1.0" />
    <script type="text/javascript" src="/pve2/ext6/ext-all.js?ver=7.1.0"></script>
  </head>
  <body>
    <div id="pve-loading"></div>
  </body>
</html>
"""


class FakeClock:
    """Returns a strictly increasing time, one second per call."""

    def __init__(self, start=datetime(2025, 1, 1, 12, 0, 0), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now = current + self.step
        return current


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the real ~/.pvetheme and any PVETHEME_* overrides."""
    for name in list(os.environ):
        if name.startswith("PVETHEME_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("PVETHEME_CONFIG", str(tmp_path / "home" / "config.json"))
    monkeypatch.setattr("pvetheme.config.ENV_FILE", tmp_path / "no-such-env-file")


@pytest.fixture
def pve_root(tmp_path):
    root = tmp_path / "pve-manager"
    (root / "images").mkdir(parents=True)
    (root / "index.html.tpl").write_text(SAMPLE_TEMPLATE)
    return root


@pytest.fixture
def config(tmp_path, pve_root):
    return {
        **DEFAULT_CONFIG,
        "pve_root": str(pve_root),
        "backup_dir": str(tmp_path / "backups"),
        "themes_dir": str(BUILTIN_THEMES_DIR),
        "log_file": str(tmp_path / "logs.jsonl"),
        "require_root": False,
    }


@pytest.fixture
def layout(config):
    return Layout(config)


@pytest.fixture
def store(config):
    return LocalSnapshotStore(config["backup_dir"], clock=FakeClock())


@pytest.fixture
def restart_calls(monkeypatch):
    """Stub subprocess.run for the restart command; records each call."""
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr("pvetheme.service.subprocess.run", fake_run)
    return calls


@pytest.fixture
def manager(config, store, restart_calls):
    return ThemeManager(config, store=store)
