"""
detectors:
    Asset type detection from bundle listings and usage detection from tool calls
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from skillpack.config import METADATA_VERSION
from skillpack.models import (
    AGENT,
    CLAUDE_CODE_PLUGIN,
    COMMAND,
    HOOK,
    MCP,
    RULE,
    SKILL,
    AgentConfig,
    AssetIdentity,
    AssetType,
    CommandConfig,
    HookConfig,
    MCPConfig,
    Metadata,
    PluginConfig,
    RuleConfig,
    SkillConfig,
)

# =============================================================================
# Type detection
# =============================================================================

# First matching row wins; bundles matching nothing are skills
DETECTION_TABLE: tuple[tuple[AssetType, tuple[str, ...]], ...] = (
    (SKILL, ("SKILL.md", "skill.md")),
    (AGENT, ("AGENT.md", "agent.md")),
    (COMMAND, ("COMMAND.md", "command.md")),
    (HOOK, ("hook.sh", "hook.py", "hook.js")),
    (MCP, ("package.json",)),
    (CLAUDE_CODE_PLUGIN, (".claude-plugin/plugin.json",)),
    (RULE, ("RULE.md", "rule.md")),
)


def _find(files: set[str], candidates: tuple[str, ...]) -> Optional[str]:
    for candidate in candidates:
        if candidate in files:
            return candidate
    return None


def detect_asset_type(files: Iterable[str]) -> AssetType:
    """Infer an asset type from the files in a bundle."""
    present = set(files)
    for asset_type, candidates in DETECTION_TABLE:
        if _find(present, candidates):
            return asset_type
    return SKILL


def detect_type(
    files: Iterable[str], name: str, version: str, asset_type: Optional[AssetType] = None
) -> Metadata:
    """Build metadata for a bundle that ships without metadata.toml."""
    present = set(files)
    asset_type = asset_type or detect_asset_type(present)
    candidates = dict(DETECTION_TABLE).get(asset_type, ())
    found = _find(present, candidates)

    metadata = Metadata(
        asset=AssetIdentity(name=name, version=version, type=asset_type),
        metadata_version=METADATA_VERSION,
    )
    if asset_type == SKILL:
        metadata.skill = SkillConfig(prompt_file=found or "SKILL.md")
    elif asset_type == AGENT:
        metadata.agent = AgentConfig(prompt_file=found or "AGENT.md")
    elif asset_type == COMMAND:
        metadata.command = CommandConfig(prompt_file=found or "COMMAND.md")
    elif asset_type == HOOK:
        metadata.hook = HookConfig(event="pre-tool-use", script_file=found or "hook.sh")
    elif asset_type == MCP:
        metadata.mcp = MCPConfig(transport="stdio", command="node", args=["index.js"])
    elif asset_type == CLAUDE_CODE_PLUGIN:
        metadata.plugin = PluginConfig()
    elif asset_type == RULE:
        metadata.rule = RuleConfig(prompt_file=found or "RULE.md")
    return metadata


# =============================================================================
# Usage detection
# =============================================================================


@dataclass(frozen=True)
class UsageMatcher:
    """Which tool call invokes an asset of a given type."""

    tool_name: str
    input_key: str
    normalize: Callable[[str], str] = str


def _mcp_server(tool_name: str) -> Optional[str]:
    # mcp__<server>__<tool>
    if not tool_name.startswith("mcp__"):
        return None
    server = tool_name[len("mcp__"):].split("__", 1)[0]
    return server or None


USAGE_MATCHERS: dict[str, UsageMatcher] = {
    SKILL.key: UsageMatcher("Skill", "skill"),
    AGENT.key: UsageMatcher("Task", "subagent_type"),
    COMMAND.key: UsageMatcher("SlashCommand", "command", lambda v: v.lstrip("/").split(" ", 1)[0]),
}


def detect_usage(asset_type: AssetType, tool_name: str, tool_input: dict[str, Any]) -> Optional[str]:
    """
    Return the asset name a tool call used, or None.

    Hooks, rules and plugins are never detected this way.
    """
    if asset_type == MCP:
        return _mcp_server(tool_name)
    matcher = USAGE_MATCHERS.get(asset_type.key)
    if matcher is None or tool_name != matcher.tool_name:
        return None
    value = tool_input.get(matcher.input_key)
    if not isinstance(value, str) or not value:
        return None
    return matcher.normalize(value) or None
