"""
models:
    Asset types, identity and type-specific configuration
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

CLIENT_IDS = ("claude-code", "cursor", "gemini", "codex", "github-copilot")

# Keys whose original spelling is folded into a canonical key on parse
LEGACY_TYPE_KEYS = {"mcp-remote": "mcp"}


# =============================================================================
# Asset type
# =============================================================================


@dataclass(frozen=True)
class AssetType:
    """An asset type. Two types are equal when their keys are equal."""

    key: str
    label: str = field(default="", compare=False)
    description: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.key

    def is_valid(self) -> bool:
        return self.key in ASSET_TYPES

    @classmethod
    def parse(cls, key: str) -> AssetType:
        """Look up a type by key; unknown keys round-trip but are not valid."""
        key = LEGACY_TYPE_KEYS.get(key, key)
        return ASSET_TYPES.get(key) or cls(key)


SKILL = AssetType("skill", "Skill", "Reusable instructions the assistant loads on demand")
AGENT = AssetType("agent", "Agent", "A named sub-agent with its own prompt")
COMMAND = AssetType("command", "Command", "A slash command")
HOOK = AssetType("hook", "Hook", "A command run on an assistant lifecycle event")
MCP = AssetType("mcp", "MCP Server", "A Model Context Protocol server definition")
RULE = AssetType("rule", "Rule", "Shared coding rules scoped by file globs")
CLAUDE_CODE_PLUGIN = AssetType(
    "claude-code-plugin", "Claude Code Plugin", "A bundled Claude Code plugin"
)

ASSET_TYPES: dict[str, AssetType] = {
    t.key: t for t in (SKILL, COMMAND, AGENT, HOOK, RULE, MCP, CLAUDE_CODE_PLUGIN)
}


# =============================================================================
# Helpers
# =============================================================================


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None or empty."""
    return {k: v for k, v in data.items() if v not in (None, "", [], {})}


def _str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _split_overrides(data: dict[str, Any]) -> tuple[dict[str, Any], dict[str, dict]]:
    """Separate per-client override tables from the rest of a section."""
    rest = dict(data)
    overrides = {}
    for client in CLIENT_IDS:
        if isinstance(rest.get(client), dict):
            overrides[client] = dict(rest.pop(client))
    return rest, overrides


# =============================================================================
# Type-specific configuration
# =============================================================================


@dataclass
class SkillConfig:
    prompt_file: str = ""
    triggers: list[str] = field(default_factory=list)
    requires: list[str] = field(default_factory=list)
    supported_languages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return _compact({
            "prompt-file": self.prompt_file,
            "triggers": self.triggers,
            "requires": self.requires,
            "supported-languages": self.supported_languages,
        })

    @classmethod
    def from_dict(cls, data: dict) -> SkillConfig:
        return cls(
            prompt_file=data.get("prompt-file", ""),
            triggers=_str_list(data.get("triggers")),
            requires=_str_list(data.get("requires")),
            supported_languages=_str_list(data.get("supported-languages")),
        )


@dataclass
class AgentConfig:
    prompt_file: str = ""
    triggers: list[str] = field(default_factory=list)
    requires: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return _compact({
            "prompt-file": self.prompt_file,
            "triggers": self.triggers,
            "requires": self.requires,
        })

    @classmethod
    def from_dict(cls, data: dict) -> AgentConfig:
        return cls(
            prompt_file=data.get("prompt-file", ""),
            triggers=_str_list(data.get("triggers")),
            requires=_str_list(data.get("requires")),
        )


@dataclass
class CommandConfig:
    prompt_file: str = ""
    aliases: list[str] = field(default_factory=list)
    requires_auth: bool = False
    dangerous: bool = False

    def to_dict(self) -> dict:
        data = _compact({"prompt-file": self.prompt_file, "aliases": self.aliases})
        if self.requires_auth:
            data["requires-auth"] = True
        if self.dangerous:
            data["dangerous"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict) -> CommandConfig:
        return cls(
            prompt_file=data.get("prompt-file", ""),
            aliases=_str_list(data.get("aliases")),
            requires_auth=bool(data.get("requires-auth", False)),
            dangerous=bool(data.get("dangerous", False)),
        )


@dataclass
class HookConfig:
    """A lifecycle hook: either a bundled script or an external command."""

    event: str = ""
    script_file: str = ""
    command: str = ""
    args: list[str] = field(default_factory=list)
    matcher: str = ""
    timeout: int = 0
    run_async: bool = False
    fail_on_error: bool = False
    # Per-client tables such as [hook.claude-code]
    overrides: dict[str, dict] = field(default_factory=dict)

    def client_overrides(self, client: str) -> dict:
        return dict(self.overrides.get(client, {}))

    def to_dict(self) -> dict:
        data = _compact({
            "event": self.event,
            "script-file": self.script_file,
            "command": self.command,
            "args": self.args,
            "matcher": self.matcher,
        })
        if self.timeout:
            data["timeout"] = self.timeout
        if self.run_async:
            data["async"] = True
        if self.fail_on_error:
            data["fail-on-error"] = True
        for client, table in self.overrides.items():
            data[client] = dict(table)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> HookConfig:
        rest, overrides = _split_overrides(data)
        return cls(
            event=rest.get("event", ""),
            script_file=rest.get("script-file", ""),
            command=rest.get("command", ""),
            args=_str_list(rest.get("args")),
            matcher=rest.get("matcher", ""),
            timeout=rest.get("timeout", 0),
            run_async=bool(rest.get("async", False)),
            fail_on_error=bool(rest.get("fail-on-error", False)),
            overrides=overrides,
        )


@dataclass
class MCPConfig:
    transport: str = "stdio"
    command: str = ""
    args: list[str] = field(default_factory=list)
    url: str = ""
    env: dict[str, str] = field(default_factory=dict)
    timeout: int = 0
    capabilities: list[str] = field(default_factory=list)

    @property
    def is_remote(self) -> bool:
        return self.transport in ("sse", "http")

    def to_dict(self) -> dict:
        data = _compact({
            "transport": self.transport,
            "command": self.command,
            "args": self.args,
            "url": self.url,
            "env": self.env,
        })
        if self.timeout:
            data["timeout"] = self.timeout
        if self.capabilities:
            data["capabilities"] = self.capabilities
        return data

    @classmethod
    def from_dict(cls, data: dict) -> MCPConfig:
        return cls(
            transport=data.get("transport") or "stdio",
            command=data.get("command", ""),
            args=_str_list(data.get("args")),
            url=data.get("url", ""),
            env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
            timeout=data.get("timeout", 0),
            capabilities=_str_list(data.get("capabilities")),
        )


@dataclass
class PluginConfig:
    manifest_file: str = ""
    auto_enable: Optional[bool] = None
    marketplace: str = ""
    source: str = ""

    @property
    def manifest_path(self) -> str:
        return self.manifest_file or ".claude-plugin/plugin.json"

    @property
    def enabled_on_install(self) -> bool:
        return True if self.auto_enable is None else self.auto_enable

    def to_dict(self) -> dict:
        data = _compact({
            "manifest-file": self.manifest_file,
            "marketplace": self.marketplace,
            "source": self.source,
        })
        if self.auto_enable is not None:
            data["auto-enable"] = self.auto_enable
        return data

    @classmethod
    def from_dict(cls, data: dict) -> PluginConfig:
        return cls(
            manifest_file=data.get("manifest-file", ""),
            auto_enable=data.get("auto-enable"),
            marketplace=data.get("marketplace", ""),
            source=data.get("source", ""),
        )


@dataclass
class RuleConfig:
    title: str = ""
    description: str = ""
    prompt_file: str = ""
    globs: list[str] = field(default_factory=list)
    overrides: dict[str, dict] = field(default_factory=dict)

    @property
    def prompt_path(self) -> str:
        return self.prompt_file or "RULE.md"

    @property
    def always_apply(self) -> bool:
        return bool(self.overrides.get("cursor", {}).get("always-apply", False))

    def to_dict(self) -> dict:
        data = _compact({
            "title": self.title,
            "description": self.description,
            "prompt-file": self.prompt_file,
            "globs": self.globs,
        })
        for client, table in self.overrides.items():
            data[client] = dict(table)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> RuleConfig:
        rest, overrides = _split_overrides(data)
        return cls(
            title=rest.get("title", ""),
            description=rest.get("description", ""),
            prompt_file=rest.get("prompt-file", ""),
            globs=_str_list(rest.get("globs")),
            overrides=overrides,
        )


# =============================================================================
# Identity + Metadata
# =============================================================================


@dataclass
class AssetIdentity:
    """The [asset] table of metadata.toml."""

    name: str
    version: str
    type: AssetType
    description: str = ""
    license: str = ""
    authors: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    homepage: str = ""
    repository: str = ""
    documentation: str = ""
    readme: str = ""
    dependencies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"name": self.name, "version": self.version, "type": self.type.key}
        data.update(_compact({
            "description": self.description,
            "license": self.license,
            "authors": self.authors,
            "keywords": self.keywords,
            "homepage": self.homepage,
            "repository": self.repository,
            "documentation": self.documentation,
            "readme": self.readme,
            "dependencies": self.dependencies,
        }))
        return data

    @classmethod
    def from_dict(cls, data: dict) -> AssetIdentity:
        return cls(
            name=data.get("name", ""),
            version=str(data.get("version", "")),
            type=AssetType.parse(data.get("type", "")),
            description=data.get("description", ""),
            license=data.get("license", ""),
            authors=_str_list(data.get("authors")),
            keywords=_str_list(data.get("keywords")),
            homepage=data.get("homepage", ""),
            repository=data.get("repository", ""),
            documentation=data.get("documentation", ""),
            readme=data.get("readme", ""),
            dependencies=_str_list(data.get("dependencies")),
        )


# TOML table name -> (Metadata attribute, config class)
TYPE_SECTIONS: dict[str, tuple[str, type]] = {
    "skill": ("skill", SkillConfig),
    "agent": ("agent", AgentConfig),
    "command": ("command", CommandConfig),
    "hook": ("hook", HookConfig),
    "mcp": ("mcp", MCPConfig),
    "claude-code-plugin": ("plugin", PluginConfig),
    "rule": ("rule", RuleConfig),
}


@dataclass
class Metadata:
    """Canonical description of one asset version (metadata.toml)."""

    asset: AssetIdentity
    metadata_version: str = ""
    skill: Optional[SkillConfig] = None
    agent: Optional[AgentConfig] = None
    command: Optional[CommandConfig] = None
    hook: Optional[HookConfig] = None
    mcp: Optional[MCPConfig] = None
    plugin: Optional[PluginConfig] = None
    rule: Optional[RuleConfig] = None
    custom: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.asset.name

    @property
    def version(self) -> str:
        return self.asset.version

    @property
    def type(self) -> AssetType:
        return self.asset.type

    @classmethod
    def stub(cls, name: str, version: str, asset_type: AssetType) -> Metadata:
        """Identity-only metadata, enough to remove or verify an install."""
        return cls(asset=AssetIdentity(name=name, version=version, type=asset_type))

    def prompt_file(self) -> str:
        """Declared prompt file for skill/agent/command/rule assets, else ''."""
        if self.type == SKILL and self.skill:
            return self.skill.prompt_file
        if self.type == AGENT and self.agent:
            return self.agent.prompt_file
        if self.type == COMMAND and self.command:
            return self.command.prompt_file
        if self.type == RULE:
            return self.rule.prompt_path if self.rule else "RULE.md"
        return ""

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        if self.metadata_version:
            data["metadata-version"] = self.metadata_version
        data["asset"] = self.asset.to_dict()
        for table, (attr, _) in TYPE_SECTIONS.items():
            section = getattr(self, attr)
            if section is not None:
                data[table] = section.to_dict()
        if self.custom:
            data["custom"] = dict(self.custom)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Metadata:
        identity = data.get("asset")
        if identity is None:
            identity = data.get("artifact", {})
        metadata = cls(
            asset=AssetIdentity.from_dict(identity),
            metadata_version=data.get("metadata-version", ""),
            custom=dict(data.get("custom") or {}),
        )
        for table, (attr, config_cls) in TYPE_SECTIONS.items():
            if isinstance(data.get(table), dict):
                setattr(metadata, attr, config_cls.from_dict(data[table]))
        return metadata
