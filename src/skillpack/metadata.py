"""
metadata:
    metadata.toml parsing, serialization and validation
"""

from __future__ import annotations

import logging
import re
import tomllib
from typing import Iterable, Optional

import tomli_w

from skillpack import bundle
from skillpack.config import METADATA_FILE
from skillpack.exceptions import ValidationError
from skillpack.models import (
    AGENT,
    ASSET_TYPES,
    CLAUDE_CODE_PLUGIN,
    COMMAND,
    HOOK,
    MCP,
    RULE,
    SKILL,
    AssetType,
    Metadata,
)

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
# Lenient semver: optional "v", 1-3 numeric parts, optional prerelease/build
VERSION_PATTERN = re.compile(
    r"^v?(0|[1-9]\d*)(\.(0|[1-9]\d*)){0,2}"
    r"(-[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?"
    r"(\+[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?$"
)
DEPENDENCY_PATTERN = re.compile(r"^([a-zA-Z0-9_-]+)([><=~!,.\d\s]*)$")

HOOK_EVENTS = (
    "session-start",
    "session-end",
    "pre-tool-use",
    "post-tool-use",
    "post-tool-use-failure",
    "user-prompt-submit",
    "stop",
    "subagent-start",
    "subagent-stop",
    "pre-compact",
)
MCP_TRANSPORTS = ("stdio", "sse", "http")


# =============================================================================
# Codec
# =============================================================================


def parse(data: str | bytes) -> Metadata:
    """Parse metadata.toml content. Accepts the legacy [artifact] table."""
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError(f"metadata is not valid UTF-8: {e}") from e
    try:
        document = tomllib.loads(data)
    except tomllib.TOMLDecodeError as e:
        raise ValidationError(f"failed to parse metadata: {e}") from e
    return Metadata.from_dict(document)


def dumps(metadata: Metadata) -> str:
    """Serialize metadata to TOML, always writing the [asset] table."""
    return tomli_w.dumps(metadata.to_dict())


def is_semver(version: str) -> bool:
    return bool(VERSION_PATTERN.match(version))


def parse_dependency(spec: str) -> tuple[str, str]:
    """
    Split a dependency string into (name, version constraint).

    Example: "code-review>=1.2" -> ("code-review", ">=1.2")
    """
    match = DEPENDENCY_PATTERN.match(spec.strip())
    if not match:
        raise ValidationError(f"invalid dependency: {spec}")
    return match.group(1), match.group(2).strip()


# =============================================================================
# Validation
# =============================================================================


def _types_list() -> str:
    return ", ".join(ASSET_TYPES)


def _require_prompt(metadata: Metadata, section) -> None:
    key = metadata.type.key
    if section is None:
        raise ValidationError(f"[{key}] section is required for {key} assets")
    if not section.prompt_file:
        raise ValidationError(f"{key}.prompt-file is required")


def _validate_hook(metadata: Metadata) -> None:
    hook = metadata.hook
    if hook is None:
        raise ValidationError("[hook] section is required for hook assets")
    if not hook.event:
        raise ValidationError("hook.event is required")
    if hook.event not in HOOK_EVENTS:
        raise ValidationError(
            f"invalid hook event: {hook.event} (must be one of: {', '.join(HOOK_EVENTS)})"
        )
    if hook.script_file and hook.command:
        raise ValidationError("script-file and command are mutually exclusive")
    if not hook.script_file and not hook.command:
        raise ValidationError("either script-file or command is required")
    _check_timeout(hook.timeout, "hook")


def _check_timeout(timeout: object, section: str) -> None:
    # bool is an int subclass; TOML true must not pass as 1
    if not isinstance(timeout, int) or isinstance(timeout, bool):
        raise ValidationError(f"{section}.timeout must be an integer, got {timeout!r}")
    if timeout < 0:
        raise ValidationError(f"{section}.timeout must be non-negative")


def _validate_mcp(metadata: Metadata) -> None:
    mcp = metadata.mcp
    if mcp is None:
        raise ValidationError("[mcp] section is required for mcp assets")
    if mcp.transport not in MCP_TRANSPORTS:
        raise ValidationError(
            f"invalid transport: {mcp.transport} (must be one of: {', '.join(MCP_TRANSPORTS)})"
        )
    if mcp.transport == "stdio":
        if not mcp.command:
            raise ValidationError("mcp.command is required for stdio transport")
        if not mcp.args:
            raise ValidationError("mcp.args is required for stdio transport")
        if mcp.url:
            raise ValidationError("mcp.url is not allowed for stdio transport")
    else:
        if not mcp.url:
            raise ValidationError(f"mcp.url is required for {mcp.transport} transport")
        if mcp.command:
            raise ValidationError(f"mcp.command is not allowed for {mcp.transport} transport")
        if mcp.args:
            raise ValidationError(f"mcp.args is not allowed for {mcp.transport} transport")
    _check_timeout(mcp.timeout, "mcp")


def validate(metadata: Metadata) -> None:
    """
    Check required fields and type-specific constraints.

    Raises:
        ValidationError: On the first problem found.
    """
    asset = metadata.asset
    if not asset.name:
        raise ValidationError("asset.name is required")
    if not NAME_PATTERN.match(asset.name):
        raise ValidationError(
            f"invalid asset name: {asset.name} (letters, digits, '-' and '_' only)"
        )
    if not asset.version:
        raise ValidationError("asset.version is required")
    if not is_semver(asset.version):
        raise ValidationError(f"invalid version: {asset.version} (must be semantic version)")
    if not asset.type.is_valid():
        raise ValidationError(
            f"invalid asset type: {asset.type.key} (must be one of: {_types_list()})"
        )

    for dep in asset.dependencies:
        parse_dependency(dep)

    asset_type = asset.type
    if asset_type == SKILL:
        _require_prompt(metadata, metadata.skill)
    elif asset_type == AGENT:
        _require_prompt(metadata, metadata.agent)
    elif asset_type == COMMAND:
        _require_prompt(metadata, metadata.command)
    elif asset_type == HOOK:
        _validate_hook(metadata)
    elif asset_type == MCP:
        _validate_mcp(metadata)
    # plugin and rule sections are optional


def validate_with_files(metadata: Metadata, files: Iterable[str]) -> None:
    """Validate metadata and check that every file it references is present."""
    validate(metadata)
    present = set(files)

    def require(path: str, what: str) -> None:
        if path not in present:
            raise ValidationError(f"{what} not found in bundle: {path}")

    asset_type = metadata.type
    if asset_type in (SKILL, AGENT, COMMAND):
        require(metadata.prompt_file(), "prompt file")
    elif asset_type == RULE:
        if rule_prompt_file(metadata, present) is None:
            require(metadata.prompt_file(), "prompt file")
    elif asset_type == HOOK and metadata.hook.script_file:
        require(metadata.hook.script_file, "hook script")
    elif asset_type == CLAUDE_CODE_PLUGIN:
        plugin = metadata.plugin
        if plugin is None or plugin.source != "marketplace":
            manifest = plugin.manifest_path if plugin else ".claude-plugin/plugin.json"
            require(manifest, "plugin manifest")


def validate_zip(data: bytes, expected_type: Optional[AssetType] = None) -> Metadata:
    """
    Validate a bundle archive and return its parsed metadata.

    Checks, in order: metadata.toml present, parseable, valid with the bundled
    files, and of the expected type.
    """
    files = bundle.list_files(data)
    if METADATA_FILE not in files:
        raise ValidationError(f"{METADATA_FILE} not found in zip")

    metadata = parse(bundle.read_file(data, METADATA_FILE))
    validate_with_files(metadata, files)

    if expected_type is not None and metadata.type != expected_type:
        raise ValidationError(
            f"asset type mismatch: expected {expected_type.key}, got {metadata.type.key}"
        )
    logger.debug("validated bundle %s@%s (%s)", metadata.name, metadata.version, metadata.type)
    return metadata


def rule_prompt_file(metadata: Metadata, files: Iterable[str]) -> Optional[str]:
    """The rule body's file in a bundle: the declared one, else RULE.md or rule.md."""
    present = set(files)
    if metadata.rule and metadata.rule.prompt_file:
        return metadata.rule.prompt_file if metadata.rule.prompt_file in present else None
    for candidate in ("RULE.md", "rule.md"):
        if candidate in present:
            return candidate
    return None
