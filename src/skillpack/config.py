"""
config:
    Paths, file names and tunables for skillpack
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml

from skillpack.exceptions import ConfigurationError

# =============================================================================
# Paths
# =============================================================================

SKILLPACK_HOME = Path(os.environ.get("SKILLPACK_HOME", Path.home() / ".skillpack"))
TRACKER_FILE = SKILLPACK_HOME / "installed.json"
CONFIG_FILE = SKILLPACK_HOME / "config.yml"

# =============================================================================
# Bundle layout
# =============================================================================

METADATA_FILE = "metadata.toml"
METADATA_VERSION = "1.0"

SKILL_FILE = "SKILL.md"
AGENT_FILE = "AGENT.md"
COMMAND_FILE = "COMMAND.md"
RULE_FILE = "RULE.md"
HOOK_SCRIPT = "hook.sh"
PLUGIN_MANIFEST = ".claude-plugin/plugin.json"

# =============================================================================
# Native config markers
# =============================================================================

# Stable key carrying the asset name on every entry skillpack writes
MARKER_FIELD = "_artifact"

SYSTEM_HOOK_COMMAND = "skillpack install --hook-mode --client=claude-code"
LEGACY_INSTALL_PREFIXES = ("skillpack install", "skills install")
LEGACY_USAGE_PREFIXES = ("skillpack report-usage", "skills report-usage")

DEFAULTS: dict[str, Any] = {
    "instructions": {
        "heading": "## Shared Instructions",
        "end-marker": "---",
    },
    "clients": ["claude-code"],
}


def load_config(path: Optional[Path] = None) -> dict[str, Any]:
    """
    Load config.yml merged over DEFAULTS.

    A missing file yields the defaults. Nested mappings are merged one level deep.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    path = path or CONFIG_FILE
    merged: dict[str, Any] = {
        key: dict(value) if isinstance(value, dict) else list(value)
        for key, value in DEFAULTS.items()
    }
    if not path.exists():
        return merged

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config file {path}: expected a mapping")

    for key, value in data.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged
