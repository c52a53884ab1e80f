"""
claude_code:
    Claude Code handlers. Base is ~/.claude, {repo}/.claude or {repo}/{path}/.claude
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import skillpack.config as config
from skillpack import bundle as zips
from skillpack.clients.base import Client
from skillpack.exceptions import ConfigurationError
from skillpack.handlers import BaseHandler
from skillpack.handlers.dirasset import DirectoryAssetHandler, DirectoryAssetOps
from skillpack.handlers.fileasset import SingleFileHandler, SingleFileOps
from skillpack.handlers.hooks import extra_fields, map_event, resolve_command
from skillpack.handlers.mcp import build_entry
from skillpack.models import AGENT, CLAUDE_CODE_PLUGIN, COMMAND, HOOK, MCP, SKILL, PluginConfig
from skillpack.rules import RULES, bundle_rule
from skillpack.settings import (
    ClaudeSettings,
    HookCommand,
    MatcherGroup,
    MCPConfig,
    MCPServer,
    PluginInstall,
    PluginRegistry,
    SettingsFile,
    has_legacy_command,
    is_marked,
    make_entry,
    remove_marked,
    upsert_marked,
)

logger = logging.getLogger(__name__)

CLIENT_ID = "claude-code"

SETTINGS_FILE = "settings.json"
MCP_CONFIG_FILE = ".claude.json"
LEGACY_MCP_CONFIG_FILE = ".mcp.json"
INSTALLED_PLUGINS_FILE = "plugins/installed_plugins.json"
KNOWN_MARKETPLACES_FILE = "plugins/known_marketplaces.json"

# Marker value for skillpack's own SessionStart hook
SYSTEM_HOOK_NAME = "skillpack"

hook_ops = DirectoryAssetOps("hooks", HOOK)
mcp_ops = DirectoryAssetOps("mcp-servers", MCP)
plugin_ops = DirectoryAssetOps("plugins", CLAUDE_CODE_PLUGIN)


def _has_marked(section: dict, name: str) -> bool:
    return any(is_marked(entry, name) for entries in section.values() for entry in entries)


# =============================================================================
# Skills, agents, commands
# =============================================================================


class SkillHandler(DirectoryAssetHandler):
    client_id = CLIENT_ID
    ops = DirectoryAssetOps("skills", SKILL)


class AgentHandler(SingleFileHandler):
    client_id = CLIENT_ID
    ops = SingleFileOps("agents", AGENT)


class CommandHandler(SingleFileHandler):
    client_id = CLIENT_ID
    ops = SingleFileOps("commands", COMMAND)


# =============================================================================
# Hooks
# =============================================================================


class HookHandler(BaseHandler):
    """settings.json hooks: {Event: [{matcher?, hooks: [{type, command}], _artifact}]}"""

    client_id = CLIENT_ID

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        hook = metadata.hook
        overrides = hook.client_overrides(CLIENT_ID)
        event = map_event(CLIENT_ID, hook.event, overrides)
        settings = SettingsFile.load(base / SETTINGS_FILE, ClaudeSettings)
        hooks = settings.hooks()

        install_dir = hook_ops.asset_dir(base, self.name)
        if hook.script_file or zips.has_content_files(bundle):
            hook_ops.install(bundle, base, self.name)

        command = {
            "type": "command",
            "command": resolve_command(hook, install_dir, zips.list_files(bundle)),
        }
        if hook.timeout:
            command["timeout"] = hook.timeout
        command.update(extra_fields(overrides))

        group = MatcherGroup(hooks=[make_entry(HookCommand, command)])
        if hook.matcher:
            group.matcher = hook.matcher

        hooks[event] = upsert_marked(hooks.get(event, []), self.name, group)
        # An earlier version may have registered under another event
        remove_marked(hooks, self.name, exclude=[event])
        settings.save()
        logger.info("registered hook %s on %s", self.name, event)

    def remove(self, base: Path) -> None:
        path = base / SETTINGS_FILE
        if path.exists():
            settings = SettingsFile.load(path, ClaudeSettings)
            if remove_marked(settings.hooks(create=False), self.name):
                settings.prune("hooks")
                settings.save()
        hook_ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        path = base / SETTINGS_FILE
        if not path.exists():
            return False, "settings.json not found"
        if not _has_marked(SettingsFile.load(path, ClaudeSettings).hooks(create=False), self.name):
            return False, "hook not registered"
        if hook_ops.asset_dir(base, self.name).is_dir():
            return hook_ops.verify_installed(base, self.name, self.metadata.version)
        return True, "installed"

    def get_install_path(self) -> str:
        return f"hooks/{self.name}"


def install_system_hooks(base: Path) -> bool:
    """
    Register skillpack's own SessionStart hook in settings.json.

    Entries written before the marker existed are recognised by command
    prefix and replaced. Returns False if nothing needed to change.
    """
    settings = SettingsFile.load(base / SETTINGS_FILE, ClaudeSettings)
    hooks = settings.hooks()
    current = hooks.get("SessionStart", [])
    kept = [
        entry for entry in current
        if not has_legacy_command(entry, config.LEGACY_INSTALL_PREFIXES)
    ]
    group = MatcherGroup(hooks=[HookCommand(type="command", command=config.SYSTEM_HOOK_COMMAND)])
    updated = upsert_marked(kept, SYSTEM_HOOK_NAME, group)
    if updated == current:
        return False
    hooks["SessionStart"] = updated
    settings.save()
    logger.info("installed system hook in %s", settings.path)
    return True


def uninstall_system_hooks(base: Path) -> int:
    """Remove skillpack's own hooks, including pre-marker ones. Returns the count removed."""
    path = base / SETTINGS_FILE
    if not path.exists():
        return 0
    settings = SettingsFile.load(path, ClaudeSettings)
    removed = remove_marked(
        settings.hooks(create=False),
        SYSTEM_HOOK_NAME,
        legacy_prefixes=config.LEGACY_INSTALL_PREFIXES + config.LEGACY_USAGE_PREFIXES,
    )
    if removed:
        settings.prune("hooks")
        settings.save()
    return removed


# =============================================================================
# MCP servers
# =============================================================================


class MCPHandler(BaseHandler):
    """.claude.json mcpServers, with packaged servers extracted to mcp-servers/{name}."""

    client_id = CLIENT_ID

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        mcp = metadata.mcp
        install_dir: Optional[Path] = None
        if not mcp.is_remote and zips.has_content_files(bundle):
            install_dir = mcp_ops.install(bundle, base, self.name)

        entry = make_entry(MCPServer, build_entry(mcp, install_dir))
        entry.artifact = self.name
        settings = SettingsFile.load(base / MCP_CONFIG_FILE, MCPConfig)
        settings.mcp_servers()[self.name] = entry
        settings.save()
        logger.info("registered MCP server %s", self.name)

    def remove(self, base: Path) -> None:
        for filename in (MCP_CONFIG_FILE, LEGACY_MCP_CONFIG_FILE):
            path = base / filename
            if not path.exists():
                continue
            settings = SettingsFile.load(path, MCPConfig)
            servers = settings.mcp_servers(create=False)
            if self.name in servers:
                del servers[self.name]
                settings.prune("mcp_servers")
                settings.save()
        mcp_ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        if mcp_ops.asset_dir(base, self.name).is_dir():
            return mcp_ops.verify_installed(base, self.name, self.metadata.version)
        path = base / MCP_CONFIG_FILE
        if path.exists():
            servers = SettingsFile.load(path, MCPConfig).mcp_servers(create=False)
            if self.name in servers:
                return True, "installed"
        return False, "MCP server not registered"

    def get_install_path(self) -> str:
        return f"mcp-servers/{self.name}"


# =============================================================================
# Plugins
# =============================================================================

SSH_GIT_URL = re.compile(r"^git@[^:]+:(.+?)(?:\.git)?(?:#.*)?$")
HTTPS_GIT_URL = re.compile(r"^https?://[^/]+/(.+?)(?:\.git)?(?:#.*)?$")


def plugin_key(name: str, marketplace: str = "") -> str:
    return f"{name}@{marketplace}" if marketplace else name


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def extract_repo_identifier(identifier: str) -> str:
    """owner/repo from an SSH or HTTPS git URL or an owner/repo string, else ''."""
    for pattern in (SSH_GIT_URL, HTTPS_GIT_URL):
        match = pattern.match(identifier)
        if match:
            return match.group(1)
    if "/" in identifier:
        return identifier
    return ""


def resolve_marketplace_name(known_marketplaces: Path, identifier: str) -> str:
    """
    Resolve a marketplace identifier to its name in known_marketplaces.json.

    Accepts the registered name itself, owner/repo, or a git URL of the
    marketplace repository.

    Raises:
        ConfigurationError: If nothing matches or the file is unreadable.
    """
    try:
        with open(known_marketplaces, "r") as f:
            marketplaces = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"failed to read {known_marketplaces}: {e}") from e
    if not isinstance(marketplaces, dict):
        raise ConfigurationError(f"failed to read {known_marketplaces}: expected an object")

    if identifier in marketplaces:
        return identifier

    repo = extract_repo_identifier(identifier)
    if repo:
        for name, entry in marketplaces.items():
            source = entry.get("source") if isinstance(entry, dict) else None
            if isinstance(source, dict) and source.get("repo") == repo:
                return name

    available = ", ".join(sorted(marketplaces))
    raise ConfigurationError(f"marketplace {identifier!r} not found. Available: {available}")


def register_plugin(base: Path, name: str, marketplace: str, version: str, install_path: Path) -> None:
    registry = SettingsFile.load(base / INSTALLED_PLUGINS_FILE, PluginRegistry)
    registry.set_default("version", 2)
    now = _now()
    registry.section("plugins")[plugin_key(name, marketplace)] = [
        PluginInstall(
            scope="user",
            install_path=str(install_path),
            version=version,
            installed_at=now,
            last_updated=now,
            is_local=not marketplace,
        )
    ]
    registry.save()


def unregister_plugin(base: Path, name: str, marketplace: str) -> None:
    path = base / INSTALLED_PLUGINS_FILE
    if not path.exists():
        return
    registry = SettingsFile.load(path, PluginRegistry)
    plugins = registry.section("plugins", create=False)
    if plugins.pop(plugin_key(name, marketplace), None) is not None:
        registry.save()


def enable_plugin(base: Path, name: str, marketplace: str) -> None:
    settings = SettingsFile.load(base / SETTINGS_FILE, ClaudeSettings)
    settings.enabled_plugins()[plugin_key(name, marketplace)] = True
    settings.save()


def disable_plugin(base: Path, name: str, marketplace: str) -> None:
    path = base / SETTINGS_FILE
    if not path.exists():
        return
    settings = SettingsFile.load(path, ClaudeSettings)
    enabled = settings.enabled_plugins(create=False)
    if enabled.pop(plugin_key(name, marketplace), None) is not None:
        settings.prune("enabled_plugins")
        settings.save()


class PluginHandler(BaseHandler):
    """Bundled plugin: extracted, registered in installed_plugins.json and enabled."""

    client_id = CLIENT_ID

    @property
    def plugin(self) -> PluginConfig:
        return self.metadata.plugin or PluginConfig()

    def marketplace(self, base: Path) -> str:
        identifier = self.plugin.marketplace
        known = base / KNOWN_MARKETPLACES_FILE
        if identifier and known.exists():
            return resolve_marketplace_name(known, identifier)
        return identifier

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        self.metadata = metadata
        marketplace = self.marketplace(base)
        install_path = plugin_ops.install(bundle, base, self.name)
        register_plugin(base, self.name, marketplace, metadata.version, install_path)
        if self.plugin.enabled_on_install:
            enable_plugin(base, self.name, marketplace)
        logger.info("installed plugin %s", plugin_key(self.name, marketplace))

    def remove(self, base: Path) -> None:
        marketplace = self.marketplace(base)
        unregister_plugin(base, self.name, marketplace)
        disable_plugin(base, self.name, marketplace)
        plugin_ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        return plugin_ops.verify_installed(base, self.name, self.metadata.version)

    def get_install_path(self) -> str:
        return f"plugins/{self.name}"


# =============================================================================
# Rules
# =============================================================================


class RuleHandler(BaseHandler):
    """rules/{name}.md with description/paths frontmatter."""

    client_id = CLIENT_ID

    def rule_path(self, base: Path) -> Path:
        return base / "rules" / f"{self.name}.md"

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        rule, title = bundle_rule(bundle, metadata)
        path = self.rule_path(base)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(RULES.get(CLIENT_ID).generate(rule, title=title))

    def remove(self, base: Path) -> None:
        self.rule_path(base).unlink(missing_ok=True)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        if self.rule_path(base).exists():
            return True, "installed"
        return False, "rule file not found"

    def get_install_path(self) -> str:
        return f"rules/{self.name}.md"


CLIENT = Client(
    id=CLIENT_ID,
    display_name="Claude Code",
    handlers={
        "skill": SkillHandler,
        "agent": AgentHandler,
        "command": CommandHandler,
        "hook": HookHandler,
        "mcp": MCPHandler,
        "rule": RuleHandler,
        "claude-code-plugin": PluginHandler,
    },
)
