"""
Configuration read from environment variables.

Environment Variables:
    VC_CLI_ISSUER_DID: DID used as issuer / holder.
    VC_CLI_PRIVATE_KEY_PATH: Path to private-key.json.
    VC_CLI_OUTPUT_DIR: Base directory for generated files.
    VC_CLI_HTTP_TIMEOUT: Controller fetch timeout in seconds (default: 10).

Command-line options take precedence over these values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from vc_toolkit.errors import ConfigurationError

ISSUER_DID_ENV = "VC_CLI_ISSUER_DID"
PRIVATE_KEY_PATH_ENV = "VC_CLI_PRIVATE_KEY_PATH"
OUTPUT_DIR_ENV = "VC_CLI_OUTPUT_DIR"
HTTP_TIMEOUT_ENV = "VC_CLI_HTTP_TIMEOUT"

DEFAULT_HTTP_TIMEOUT = 10.0


def expand_path(filepath: str | Path) -> Path:
    """Expand ~ to the home directory."""
    return Path(filepath).expanduser()


def default_output_dir() -> Path:
    """~/Downloads/vc-cli when a Downloads folder exists, else ~/vc-cli."""
    home = Path.home()
    downloads = home / "Downloads"
    if downloads.is_dir():
        return downloads / "vc-cli"
    return home / "vc-cli"


@dataclass
class Settings:
    """Toolkit settings."""

    issuer_did: str | None = None
    private_key_path: Path | None = None
    output_dir: Path | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls) -> Settings:
        private_key_path = os.getenv(PRIVATE_KEY_PATH_ENV)
        output_dir = os.getenv(OUTPUT_DIR_ENV)
        timeout = os.getenv(HTTP_TIMEOUT_ENV)
        try:
            http_timeout = float(timeout) if timeout else DEFAULT_HTTP_TIMEOUT
        except ValueError:
            raise ConfigurationError(
                f"{HTTP_TIMEOUT_ENV} must be a number, got {timeout!r}"
            ) from None

        return cls(
            issuer_did=os.getenv(ISSUER_DID_ENV) or None,
            private_key_path=expand_path(private_key_path) if private_key_path else None,
            output_dir=expand_path(output_dir) if output_dir else None,
            http_timeout=http_timeout,
        )

    def resolve_output_dir(self, *subdirs: str) -> Path:
        return (self.output_dir or default_output_dir()).joinpath(*subdirs)
