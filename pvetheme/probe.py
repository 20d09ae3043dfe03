class ProbeResult:
    def __init__(self, root_exists, template_exists):
        self.root_exists = root_exists
        self.template_exists = template_exists

    @property
    def ready(self):
        return self.root_exists and self.template_exists

    @property
    def restore_only(self):
        """Root found but no template: only backup/restore make sense."""
        return self.root_exists and not self.template_exists

    def __repr__(self):
        return f"ProbeResult(root_exists={self.root_exists}, template_exists={self.template_exists})"


def probe(layout):
    """Check whether the console install under layout.root looks usable."""
    return ProbeResult(
        root_exists=layout.root.is_dir(),
        template_exists=layout.template.is_file(),
    )
