"""Shell command construction for remote build steps."""

import shlex

# Printed by the wrapper after each command; never shown to the user
CWD_MARKER = "__REMOTE_BUILD_CWD__="


def quote_path(path: str) -> str:
    """Safely quote a remote path for shell commands.

    A leading ``~`` or ``~/`` is left unquoted so the remote shell still
    expands it to the login user's home directory.

    Args:
        path: Remote path to quote

    Returns:
        Shell-safe quoted path
    """
    if path == "~":
        return "~"
    if path.startswith("~/"):
        rest = path[2:]
        return "~/" + shlex.quote(rest) if rest else "~/"
    return shlex.quote(path)


def quote_arg(arg: str) -> str:
    """Safely quote a shell argument."""
    return shlex.quote(arg)


def wrap_command(command: str, cwd: str | None) -> str:
    """Wrap a build command so it runs in ``cwd`` and reports where it ended.

    Each command runs in a fresh remote shell. The wrapper enters the
    tracked working directory first, runs the command in the same shell,
    then prints a newline and a marker line with the shell's final working
    directory, and exits with the command's own status. A command that
    exits the shell itself leaves the working directory unchanged.

    Args:
        command: Command text from the build file (may span lines)
        cwd: Remote working directory, or None for the login directory

    Returns:
        Shell script to execute remotely
    """
    lines = []
    if cwd:
        lines.append(f"cd {quote_path(cwd)} || exit $?")
    lines.append(command)
    lines.append("__rb_status=$?")
    lines.append(f"printf '\\n%s%s\\n' {quote_arg(CWD_MARKER)} \"$(pwd)\"")
    lines.append("exit $__rb_status")
    return "\n".join(lines)


def parse_marker(line: str) -> str | None:
    """Return the directory reported by a marker line.

    Only a whole line starting with the marker counts; build output that
    merely mentions it is left alone.

    Args:
        line: One line of remote stdout, without trailing newline

    Returns:
        Reported directory, or None for ordinary output
    """
    if not line.startswith(CWD_MARKER):
        return None
    return line[len(CWD_MARKER):].strip()


def sftp_path(path: str) -> str:
    """Translate a remote shell path into an SFTP path.

    SFTP does not expand ``~``; paths relative to the login directory are
    what it resolves against the home directory.
    """
    if path == "~":
        return "."
    if path.startswith("~/"):
        return path[2:] or "."
    return path


def strip_marker(output: str) -> tuple[str, str | None]:
    """Remove the trailing working-directory report from captured output.

    The wrapper prints a newline and then the marker line last, so only
    a final marker line is recognised and the command's own output comes
    back byte for byte.

    Args:
        output: Captured stdout of a wrapped command

    Returns:
        Tuple of (output without the report, reported directory or None)
    """
    body, separator, tail = output.rpartition("\n" + CWD_MARKER)
    if not separator or "\n" in tail.rstrip("\r\n"):
        return output, None
    return body, tail.strip()
