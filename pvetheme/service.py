import subprocess

_TIMEOUT = 60


def restart_proxy(config):
    """Restart the console proxy so it serves the new files.

    Returns (ok, message). Failures are reported, never raised: by the time
    we get here the files are already in place and the operator can
    restart by hand.
    """
    cmd = list(config.get("restart_command") or [])
    if not cmd:
        return False, "No restart command configured"

    command_line = " ".join(cmd)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=_TIMEOUT)
    except FileNotFoundError:
        return False, f"{cmd[0]} not found. Run '{command_line}' manually."
    except subprocess.TimeoutExpired:
        return False, f"'{command_line}' timed out after {_TIMEOUT}s"

    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        message = f"'{command_line}' exited with {result.returncode}"
        if detail:
            message += f": {detail}"
        return False, message

    return True, f"Ran '{command_line}'"
