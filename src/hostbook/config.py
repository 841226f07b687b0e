"""Configuration models for hostbook."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, field_validator

CONFIG_FILE = "hostbook.yaml"
USER_CONFIG_PATH = Path.home() / ".config" / "hostbook" / CONFIG_FILE


class HostbookConfig(BaseModel):
    """Main hostbook configuration."""

    ssh_config: Path = Path("~/.ssh/config")
    indent: str = "  "
    backup: bool = True
    alias_collision: Literal["suffix", "reject"] = "suffix"

    @field_validator("indent")
    @classmethod
    def validate_indent(cls, v: str) -> str:
        if v.strip(" \t"):
            raise ValueError("indent may only contain spaces and tabs")
        return v

    @property
    def ssh_config_path(self) -> Path:
        return self.ssh_config.expanduser()


def find_config_file(cwd: Path | None = None) -> Path | None:
    """Locate hostbook.yaml in the working directory, then the user config dir."""
    local = (cwd or Path.cwd()) / CONFIG_FILE
    if local.exists():
        return local
    if USER_CONFIG_PATH.exists():
        return USER_CONFIG_PATH
    return None


def load_config(path: Path | None = None) -> HostbookConfig:
    """Load configuration from YAML file. Defaults when no file is found."""
    if path is None:
        path = find_config_file()
    if path is None:
        return HostbookConfig()

    with open(path) as f:
        data = yaml.safe_load(f)
    return HostbookConfig(**(data or {}))


def get_config_template() -> str:
    """Get the default configuration template."""
    return """# hostbook configuration

# SSH client config file to manage
ssh_config: ~/.ssh/config

# Indentation used for directives inside a Host block
indent: "  "

# Keep the previous file as <ssh_config>.bak on every save
backup: true

# What to do when a new or renamed host gets an alias that is already used:
#   suffix - append -2, -3, ... to the alias
#   reject - refuse to save
alias_collision: suffix
"""
