"""Configuration management for Perennial."""

import os
from pathlib import Path

import tomli
from pydantic import BaseModel, Field, field_validator

RENEWAL_FILE_SUFFIX = ".renewal.json"


class PerennialConfig(BaseModel):
    """Main configuration for Perennial."""

    # Paths
    config_dir: Path = Field(
        default=Path("~/.local/share/perennial/renewals"),
        validate_default=True,
    )
    log_dir: Path = Field(
        default=Path("~/.local/share/perennial/logs"),
        validate_default=True,
    )

    # Secrets
    encrypt_secrets: bool = Field(default=True)
    secret_key: str | None = Field(default=None, validate_default=True)
    previous_secret_keys: list[str] = Field(default_factory=list)
    key_file: Path | None = None

    # Plugins
    plugin_entry_point_group: str = Field(default="perennial.plugins")

    @field_validator("config_dir", "log_dir", "key_file", mode="before")
    @classmethod
    def expand_paths(cls, v: Path | str | None) -> Path | None:
        """Expand user home directory in paths."""
        if v is None:
            return None
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser().resolve()

    @field_validator("secret_key", mode="after")
    @classmethod
    def secret_key_from_env(cls, v: str | None) -> str | None:
        """Fall back to the environment for the primary secret key."""
        if not v:
            v = os.getenv("PERENNIAL_SECRET_KEY") or None
        return v

    @property
    def resolved_key_file(self) -> Path:
        """Location of the generated key when no key is configured."""
        return self.key_file or self.config_dir / ".secret.key"

    @property
    def lock_file(self) -> Path:
        """Lock file guarding persist passes on the renewal directory."""
        return self.config_dir / ".perennial.lock"

    def renewal_file(self, renewal_id: str) -> Path:
        """Backing file for the renewal with the given id."""
        return self.config_dir / f"{renewal_id}{RENEWAL_FILE_SUFFIX}"


def load_config(config_path: Path | None = None) -> PerennialConfig:
    """Load configuration from file or defaults."""
    if config_path is None:
        # Check common config locations (user config first)
        possible_paths = [
            Path.home() / ".config" / "perennial" / "config.toml",
            Path.cwd() / "perennial.toml",
        ]

        for path in possible_paths:
            if path.exists():
                config_path = path
                break

    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            config_data = tomli.load(f)
        return PerennialConfig(**config_data)
    # Use defaults
    return PerennialConfig()


def create_sample_config(path: Path) -> None:
    """Create a sample configuration file."""
    sample_config = """# Perennial Configuration
# =======================

# ============================================================================
# STORAGE
# ============================================================================

config_dir = "~/.local/share/perennial/renewals"  # One <id>.renewal.json per renewal
log_dir = "~/.local/share/perennial/logs"         # Auto-created: log files

# ============================================================================
# SECRETS
# ============================================================================

encrypt_secrets = true                            # false stores secrets base64-encoded only
# secret_key = "..."                              # Fernet key; or set PERENNIAL_SECRET_KEY
# previous_secret_keys = []                       # Old keys, still accepted for reading
# key_file = "~/.local/share/perennial/renewals/.secret.key"

# After changing encrypt_secrets or rotating secret_key, run
# 'perennial encrypt' to rewrite every renewal under the new settings.

# ============================================================================
# PLUGINS
# ============================================================================

plugin_entry_point_group = "perennial.plugins"
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(sample_config)
