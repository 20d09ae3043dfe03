"""Theme-loader injection for the console's index.html.tpl.

The injected block is delimited by MARKER at the start and the first
</script> after it. parse_template() splits a template into
(prefix, block, suffix) so patch and unpatch are plain span operations:

    apply_patch:   prefix + suffix  ->  text[:head] + block + text[head:]
    remove_patch:  prefix + block + suffix  ->  prefix + suffix

Templates are handled as text decoded with surrogateescape, so arbitrary
bytes survive a read/write round trip unchanged.
"""

import os
import re
import shutil
import tempfile
from pathlib import Path

from pvetheme.errors import TagNotFound

MARKER = "<!-- pve-theme-manager -->"
SCRIPT_CLOSE = "</script>"

_HEAD_CLOSE = re.compile(r"</head\s*>", re.IGNORECASE)
_SCRIPT_BLOCK = re.compile(r"<script[^>]*>.*?</script>[ \t]*\r?\n?", re.IGNORECASE | re.DOTALL)

# Snippets that identify unmarked blocks left behind by older installers
LEGACY_TOKENS = ("pve-theme-active.css", "solarized.css", "updateThemeClass", "proxmox-theme-dark")

_LOADER_SCRIPT = """<script>
(function() {
    function updateThemeClass() {
        if (!document.body) {
            return;
        }
        var isDark = document.querySelector('link[href*="theme-crisp"]') ||
                     document.querySelector('link[href*="theme-gray"]') ||
                     document.querySelector('link[href*="theme-dark"]');
        if (isDark) {
            document.body.classList.add("proxmox-theme-dark");
        } else {
            document.body.classList.remove("proxmox-theme-dark");
        }
    }

    var observer = new MutationObserver(updateThemeClass);
    observer.observe(document.head, { childList: true, subtree: true });
    document.addEventListener("DOMContentLoaded", updateThemeClass);
    updateThemeClass();
})();
</script>
"""

ENCODING = "utf-8"
ERRORS = "surrogateescape"


class TemplateSpans:
    def __init__(self, prefix, block, suffix):
        self.prefix = prefix
        self.block = block
        self.suffix = suffix

    @property
    def patched(self):
        return bool(self.block)

    def join(self):
        return self.prefix + self.block + self.suffix


def build_block(href):
    """The marker, the stylesheet <link>, and the dark-mode observer script."""
    return f'{MARKER}\n<link rel="stylesheet" type="text/css" href="{href}">\n{_LOADER_SCRIPT}'


def parse_template(text):
    start = text.find(MARKER)
    if start == -1:
        return TemplateSpans(text, "", "")

    close = text.find(SCRIPT_CLOSE, start)
    end = start + len(MARKER) if close == -1 else close + len(SCRIPT_CLOSE)
    if text.startswith("\r\n", end):
        end += 2
    elif text.startswith("\n", end):
        end += 1
    return TemplateSpans(text[:start], text[start:end], text[end:])


def is_patched(text):
    return parse_template(text).patched


def apply_patch(text, href):
    """Insert the loader block before </head>. Returns (text, changed)."""
    if parse_template(text).patched:
        return text, False

    match = _HEAD_CLOSE.search(text)
    if match is None:
        raise TagNotFound("</head>")

    at = match.start()
    return text[:at] + build_block(href) + text[at:], True


def remove_patch(text):
    """Drop the marked block. Returns (text, changed)."""
    spans = parse_template(text)
    if not spans.patched:
        return text, False
    return spans.prefix + spans.suffix, True


def _strip_legacy_scripts(text):
    def _replace(match):
        chunk = match.group(0)
        if any(token in chunk for token in LEGACY_TOKENS):
            return ""
        return chunk

    return _SCRIPT_BLOCK.sub(_replace, text)


def strip_legacy(text):
    """Remove unmarked theme scripts injected by older installers. Returns (text, changed)."""
    spans = parse_template(text)
    prefix = _strip_legacy_scripts(spans.prefix)
    suffix = _strip_legacy_scripts(spans.suffix)
    cleaned = prefix + spans.block + suffix
    return cleaned, cleaned != text


# ── File helpers ──────────────────────────────────────────────────────────────

def read_template(path):
    return Path(path).read_bytes().decode(ENCODING, ERRORS)


def write_template(path, text):
    """Replace path with text via a temp file in the same directory."""
    path = Path(path)
    data = text.encode(ENCODING, ERRORS)
    with tempfile.NamedTemporaryFile(dir=path.parent, prefix=f".{path.name}.", delete=False) as f:
        f.write(data)
        tmp_path = Path(f.name)
    try:
        if path.exists():
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


def patch_file(path, href):
    """Patch the template on disk. The file is untouched unless the patch applies."""
    text, changed = apply_patch(read_template(path), href)
    if changed:
        write_template(path, text)
    return changed


def unpatch_file(path, legacy=False):
    text, changed = remove_patch(read_template(path))
    if legacy:
        text, legacy_changed = strip_legacy(text)
        changed = changed or legacy_changed
    if changed:
        write_template(path, text)
    return changed
