"""Build file loading.

A build file is TOML with ``[ssh]``, ``[compilation]`` and
``[[commands]]`` sections. It is layered over the default profile below:
keys the user sets win, the user's ``commands`` list replaces the default
one, and credentials are taken as a group from whichever side sets any.
"""

import copy
import logging
import tomllib
from pathlib import Path
from typing import Any

from remote_build.errors import ConfigurationError
from remote_build.models import BuildConfig, CommandSpec, CompilationConfig, ConnectionConfig

logger = logging.getLogger(__name__)

DEFAULT_BUILD_FILE_NAME = "Settings.toml"

DEFAULT_BUILD_FILE = """\
[ssh]
host = "localhost"
port = 22
username = "root"
password = "root"
# identity_file = "~/.ssh/id_ed25519"  # key-based authentication instead of password
# passphrase = ""                       # passphrase for identity_file, if any

[compilation]
local_project_root = "."                   # Local project root, absolute or relative to this file.
remote_project_root = "~/remote/project"   # Project root on the remote machine.
output_directory = "target/release"        # Build output, relative to both project roots.

[[commands]]
command = "cd ~/remote/project"
description = "Change directory to the project root."
execute_after_compilation = false

[[commands]]
command = "cargo build --release"
description = "Build the project."
execute_after_compilation = false
"""

CREDENTIAL_KEYS = ("password", "identity_file", "passphrase")

KNOWN_KEYS: dict[str, set[str]] = {
    "ssh": {"host", "port", "username", *CREDENTIAL_KEYS},
    "compilation": {"local_project_root", "remote_project_root", "output_directory"},
    "commands": {"command", "description", "execute_after_compilation"},
}


def load_build_config(path: str | Path) -> BuildConfig:
    """Load, merge and validate a build file.

    Args:
        path: Path to the TOML build file

    Returns:
        Validated build configuration

    Raises:
        ConfigurationError: If the file is missing, unreadable, not valid
            TOML, or describes an invalid build
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"Build file not found: {path}")

    try:
        with path.open("rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read build file {path}: {e}") from e

    logger.debug("Loaded build file %s", path)
    merged = merge_with_defaults(raw)
    return parse_build_config(merged, base_dir=path.resolve().parent)


def default_document() -> dict[str, Any]:
    """Return the default profile as a fresh dictionary."""
    return tomllib.loads(DEFAULT_BUILD_FILE)


def merge_with_defaults(raw: dict[str, Any]) -> dict[str, Any]:
    """Layer a user document over the default profile.

    Args:
        raw: Parsed user document

    Returns:
        Merged document (inputs are not modified)
    """
    merged = default_document()

    for section in ("ssh", "compilation"):
        user_table = raw.get(section, {})
        if not isinstance(user_table, dict):
            raise ConfigurationError("Expected a table", key=section)
        if section == "ssh" and any(key in user_table for key in CREDENTIAL_KEYS):
            for key in CREDENTIAL_KEYS:
                merged["ssh"].pop(key, None)
        merged[section].update(copy.deepcopy(user_table))

    if "commands" in raw:
        merged["commands"] = copy.deepcopy(raw["commands"])

    for key in raw:
        if key not in KNOWN_KEYS:
            logger.warning("Ignoring unknown build file section: %s", key)

    return merged


def parse_build_config(document: dict[str, Any], base_dir: Path) -> BuildConfig:
    """Turn a merged document into a validated BuildConfig.

    Args:
        document: Merged build document
        base_dir: Directory relative local paths are resolved against

    Returns:
        Validated build configuration

    Raises:
        ConfigurationError: If a key is missing, mistyped or invalid
    """
    ssh = document["ssh"]
    _warn_unknown(ssh, "ssh")
    connection = ConnectionConfig(
        host=_require_str(ssh, "host", "ssh"),
        port=_require_int(ssh, "port", "ssh"),
        username=_require_str(ssh, "username", "ssh"),
        password=_optional_str(ssh, "password", "ssh"),
        identity_file=_optional_path(ssh, "identity_file", "ssh"),
        passphrase=_optional_str(ssh, "passphrase", "ssh"),
    )

    compilation_table = document["compilation"]
    _warn_unknown(compilation_table, "compilation")
    local_root_text = _require_str(compilation_table, "local_project_root", "compilation")
    # Path("") is "."
    if not local_root_text.strip():
        raise ConfigurationError("Path cannot be empty", key="compilation.local_project_root")
    local_root = Path(local_root_text).expanduser()
    if not local_root.is_absolute():
        local_root = (base_dir / local_root).resolve()
    compilation = CompilationConfig(
        local_project_root=local_root,
        remote_project_root=_require_str(compilation_table, "remote_project_root", "compilation"),
        output_directory=_require_str(compilation_table, "output_directory", "compilation"),
    )

    commands_list = document.get("commands", [])
    if not isinstance(commands_list, list):
        raise ConfigurationError("Expected an array of tables", key="commands")

    commands = []
    for position, entry in enumerate(commands_list):
        section = f"commands[{position}]"
        if not isinstance(entry, dict):
            raise ConfigurationError("Expected a table", key=section)
        _warn_unknown(entry, "commands", section)
        commands.append(
            CommandSpec(
                command=_require_str(entry, "command", section),
                description=_optional_str(entry, "description", section) or "",
                execute_after_compilation=_optional_bool(
                    entry, "execute_after_compilation", section
                ),
            )
        )

    return BuildConfig(ssh=connection, compilation=compilation, commands=tuple(commands))


def write_default(path: str | Path) -> Path:
    """Write the default build file.

    Args:
        path: Destination path

    Returns:
        The written path

    Raises:
        ConfigurationError: If the file already exists
    """
    path = Path(path).expanduser()
    if path.exists():
        raise ConfigurationError(f"Refusing to overwrite existing file: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_BUILD_FILE, encoding="utf-8")
    logger.info("Wrote default build file to %s", path)
    return path


def _warn_unknown(table: dict[str, Any], kind: str, section: str | None = None) -> None:
    for key in table:
        if key not in KNOWN_KEYS[kind]:
            logger.warning("Ignoring unknown key %s.%s", section or kind, key)


def _require_str(table: dict[str, Any], key: str, section: str) -> str:
    if key not in table:
        raise ConfigurationError("Missing required key", key=f"{section}.{key}")
    value = table[key]
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Expected a string, got {type(value).__name__}", key=f"{section}.{key}"
        )
    return value


def _optional_str(table: dict[str, Any], key: str, section: str) -> str | None:
    if key not in table:
        return None
    return _require_str(table, key, section)


def _optional_path(table: dict[str, Any], key: str, section: str) -> str | None:
    value = _optional_str(table, key, section)
    if not value:
        return None
    return str(Path(value).expanduser())


def _require_int(table: dict[str, Any], key: str, section: str) -> int:
    if key not in table:
        raise ConfigurationError("Missing required key", key=f"{section}.{key}")
    value = table[key]
    # bool is an int subclass; TOML true/false is never a port
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"Expected an integer, got {type(value).__name__}", key=f"{section}.{key}"
        )
    return value


def _optional_bool(table: dict[str, Any], key: str, section: str) -> bool:
    value = table.get(key, False)
    if not isinstance(value, bool):
        raise ConfigurationError(
            f"Expected a boolean, got {type(value).__name__}", key=f"{section}.{key}"
        )
    return value
