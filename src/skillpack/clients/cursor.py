"""
cursor:
    Cursor handlers. Base is ~/.cursor, {repo}/.cursor or {repo}/{path}/.cursor
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from skillpack import bundle as zips
from skillpack.clients.base import Client
from skillpack.handlers import BaseHandler
from skillpack.handlers.dirasset import DirectoryAssetHandler, DirectoryAssetOps
from skillpack.handlers.hooks import extra_fields, map_event, resolve_command
from skillpack.handlers.mcp import build_entry
from skillpack.models import HOOK, MCP, SKILL
from skillpack.rules import RULES, bundle_rule
from skillpack.settings import (
    CursorHooks,
    FlatHookEntry,
    MCPConfig,
    MCPServer,
    SettingsFile,
    is_marked,
    make_entry,
    remove_marked,
    upsert_marked,
)

logger = logging.getLogger(__name__)

CLIENT_ID = "cursor"

HOOKS_FILE = "hooks.json"
MCP_CONFIG_FILE = "mcp.json"
HOOKS_FORMAT_VERSION = 1

hook_ops = DirectoryAssetOps("hooks", HOOK)
mcp_ops = DirectoryAssetOps("mcp-servers", MCP)


class SkillHandler(DirectoryAssetHandler):
    client_id = CLIENT_ID
    ops = DirectoryAssetOps("skills", SKILL)


class CommandHandler(BaseHandler):
    """commands/{name}.md holding the prompt verbatim. Cursor keeps no version."""

    client_id = CLIENT_ID

    def command_path(self, base: Path) -> Path:
        return base / "commands" / f"{self.name}.md"

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        path = self.command_path(base)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(zips.read_file(bundle, metadata.prompt_file()))

    def remove(self, base: Path) -> None:
        self.command_path(base).unlink(missing_ok=True)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        if self.command_path(base).exists():
            return True, "installed"
        return False, "command file not found"

    def get_install_path(self) -> str:
        return f"commands/{self.name}.md"


class HookHandler(BaseHandler):
    """hooks.json: {"version": 1, "hooks": {event: [{_artifact, command, ...}]}}"""

    client_id = CLIENT_ID

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        hook = metadata.hook
        overrides = hook.client_overrides(CLIENT_ID)
        event = map_event(CLIENT_ID, hook.event, overrides)
        settings = SettingsFile.load(base / HOOKS_FILE, CursorHooks)
        settings.set_default("version", HOOKS_FORMAT_VERSION)
        hooks = settings.hooks()

        install_dir = hook_ops.asset_dir(base, self.name)
        if hook.script_file or zips.has_content_files(bundle):
            hook_ops.install(bundle, base, self.name)

        fields = {"command": resolve_command(hook, install_dir, zips.list_files(bundle))}
        if hook.timeout:
            fields["timeout"] = hook.timeout
        fields.update(extra_fields(overrides))

        entry = make_entry(FlatHookEntry, fields)
        hooks[event] = upsert_marked(hooks.get(event, []), self.name, entry)
        remove_marked(hooks, self.name, exclude=[event])
        settings.save()
        logger.info("registered hook %s on %s", self.name, event)

    def remove(self, base: Path) -> None:
        path = base / HOOKS_FILE
        if path.exists():
            settings = SettingsFile.load(path, CursorHooks)
            if remove_marked(settings.hooks(create=False), self.name):
                settings.save()
        hook_ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        path = base / HOOKS_FILE
        if path.exists():
            for entries in SettingsFile.load(path, CursorHooks).hooks(create=False).values():
                if any(is_marked(entry, self.name) for entry in entries):
                    return True, "installed"
        return False, "hook not registered"

    def get_install_path(self) -> str:
        return f"hooks/{self.name}"


class MCPHandler(BaseHandler):
    """mcp.json mcpServers."""

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

    def remove(self, base: Path) -> None:
        path = base / MCP_CONFIG_FILE
        if path.exists():
            settings = SettingsFile.load(path, MCPConfig)
            servers = settings.mcp_servers(create=False)
            if self.name in servers:
                del servers[self.name]
                settings.save()
        mcp_ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        path = base / MCP_CONFIG_FILE
        if path.exists():
            servers = SettingsFile.load(path, MCPConfig).mcp_servers(create=False)
            if self.name in servers:
                return True, "installed"
        return False, "MCP server not registered"

    def get_install_path(self) -> str:
        return f"mcp-servers/{self.name}"


class RuleHandler(BaseHandler):
    """rules/{name}.mdc with description/globs/alwaysApply frontmatter."""

    client_id = CLIENT_ID

    def rule_path(self, base: Path) -> Path:
        return base / "rules" / f"{self.name}.mdc"

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        rule, title = bundle_rule(bundle, metadata)
        always_apply = bool(metadata.rule and metadata.rule.always_apply)
        path = self.rule_path(base)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(RULES.get(CLIENT_ID).generate(rule, title=title, always_apply=always_apply))

    def remove(self, base: Path) -> None:
        self.rule_path(base).unlink(missing_ok=True)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        if self.rule_path(base).exists():
            return True, "installed"
        return False, "rule file not found"

    def get_install_path(self) -> str:
        return f"rules/{self.name}.mdc"


CLIENT = Client(
    id=CLIENT_ID,
    display_name="Cursor",
    handlers={
        "skill": SkillHandler,
        "command": CommandHandler,
        "hook": HookHandler,
        "mcp": MCPHandler,
        "rule": RuleHandler,
    },
)
