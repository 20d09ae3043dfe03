class Report:
    """Outcome of one operation: counts of what worked, what didn't, and why.

    Subclasses set `action` and add their own fields; the CLI prints
    summary() and the warnings, and writes to_log() to the audit log.
    """

    action = "operation"

    def __init__(self):
        self.succeeded = 0
        self.failed = 0
        self.warnings = []
        self.errors = []

    @property
    def success(self):
        return self.failed == 0

    def ok(self, count=1):
        self.succeeded += count

    def fail(self, message):
        self.failed += 1
        self.errors.append(message)

    def warn(self, message):
        self.warnings.append(message)

    def summary(self):
        status = "completed" if self.success else "completed with errors"
        line = f"{self.action.capitalize()} {status}: {self.succeeded} ok, {self.failed} failed"
        if self.warnings:
            line += f", {len(self.warnings)} warning(s)"
        return line

    def to_log(self):
        return {
            "event": self.action,
            "result": "ok" if self.success else "partial",
            "succeeded": self.succeeded,
            "failed": self.failed,
            "warnings": list(self.warnings),
        }


class BackupReport(Report):
    action = "backup"

    def __init__(self, snapshot_id):
        super().__init__()
        self.snapshot_id = snapshot_id
        self.template_saved = False
        self.template_bytes = 0
        self.theme_files = []

    def summary(self):
        return f"Snapshot {self.snapshot_id}: " + super().summary()

    def to_log(self):
        return {**super().to_log(), "snapshot": self.snapshot_id}


class RestoreReport(Report):
    action = "restore"

    def __init__(self, snapshot_id=None):
        super().__init__()
        self.snapshot_id = snapshot_id
        self.template_restored = False
        self.removed = []
        self.restarted = False

    def to_log(self):
        return {**super().to_log(), "snapshot": self.snapshot_id or ""}


class InstallReport(Report):
    action = "install"

    def __init__(self, theme):
        super().__init__()
        self.theme = theme
        self.snapshot_id = None
        self.patched = False
        self.restarted = False

    def to_log(self):
        return {**super().to_log(), "theme": self.theme, "snapshot": self.snapshot_id or ""}
