"""Configuration module for remote builds.

- Config: Process-wide configuration (environment + known_hosts)
- Settings: Environment variable configuration
- HostKeyVerifier: known_hosts resolution
- load_build_config: TOML build file loader
"""

from remote_build.config.host_keys import HostKeyVerifier
from remote_build.config.loader import (
    DEFAULT_BUILD_FILE,
    DEFAULT_BUILD_FILE_NAME,
    load_build_config,
    write_default,
)
from remote_build.config.main import Config
from remote_build.config.settings import Settings

__all__ = [
    "Config",
    "DEFAULT_BUILD_FILE",
    "DEFAULT_BUILD_FILE_NAME",
    "HostKeyVerifier",
    "load_build_config",
    "Settings",
    "write_default",
]
