"""
gemini:
    Gemini CLI handlers.

The base is ~/.gemini for global installs and the repository (or path)
directory otherwise. Settings, hooks and commands live in the .gemini
directory under it. Rules and the skill index go in {base}/GEMINI.md.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

import tomli_w

import skillpack.config as config
from skillpack import bundle as zips
from skillpack import frontmatter as fm
from skillpack import instructions
from skillpack.clients.base import Client
from skillpack.handlers import BaseHandler
from skillpack.handlers.dirasset import DirectoryAssetOps
from skillpack.handlers.hooks import map_event, resolve_command
from skillpack.handlers.mcp import build_entry
from skillpack.models import HOOK, MCP
from skillpack.rules import RULES, bundle_rule
from skillpack.settings import (
    GeminiSettings,
    HookCommand,
    MatcherGroup,
    MCPServer,
    SettingsFile,
    make_entry,
)

logger = logging.getLogger(__name__)

CLIENT_ID = "gemini"

SETTINGS_FILE = "settings.json"
INSTRUCTIONS_FILE = "GEMINI.md"

# @./path and @/abs/path file references; a path ends at whitespace or a closing bracket
FILE_REFERENCE = re.compile(r"@(\.?/[^\s)\]}]+)")


def config_dir(base: Path) -> Path:
    """The .gemini directory for a base (the base itself for global installs)."""
    return base if base.name == ".gemini" else base / ".gemini"


def convert_prompt_syntax(text: str) -> str:
    """
    Rewrite Claude-style prompt tokens for Gemini.

    $ARGUMENTS -> {{args}}, @./file -> @{file}, @/abs/file -> @{/abs/file}
    """
    text = text.replace("$ARGUMENTS", "{{args}}")

    def file_ref(match: re.Match) -> str:
        path = match.group(1)
        if path.startswith("./"):
            path = path[2:]
        return "@{" + path + "}"

    return FILE_REFERENCE.sub(file_ref, text)


def _instruction_settings() -> tuple[str, str]:
    section = config.load_config()["instructions"]
    return section["heading"], section["end-marker"]


# =============================================================================
# Skills + commands (TOML custom commands)
# =============================================================================


class CommandHandler(BaseHandler):
    """.gemini/commands/{name}.toml with description and prompt."""

    client_id = CLIENT_ID

    def command_path(self, base: Path) -> Path:
        return config_dir(base) / "commands" / f"{self.name}.toml"

    def render(self, bundle: bytes) -> str:
        metadata = self.validate(bundle)
        text = zips.read_text(bundle, metadata.prompt_file())
        frontmatter, body = fm.parse(text)
        description = metadata.asset.description or str(frontmatter.get("description") or "")

        document = {}
        if description:
            document["description"] = description
        document["prompt"] = convert_prompt_syntax(body).strip() + "\n"
        return tomli_w.dumps(document, multiline_strings=True)

    def install(self, bundle: bytes, base: Path) -> None:
        content = self.render(bundle)
        path = self.command_path(base)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    def remove(self, base: Path) -> None:
        self.command_path(base).unlink(missing_ok=True)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        if self.command_path(base).exists():
            return True, "installed"
        return False, "command file not found"

    def get_install_path(self) -> str:
        return f".gemini/commands/{self.name}.toml"


class SkillHandler(CommandHandler):
    """A skill becomes a custom command plus an entry in the GEMINI.md skill index."""

    def index_entry(self) -> str:
        description = self.metadata.asset.description or "Installed skill"
        return f"{description}\n\nRun `/{self.name}` to load this skill."

    def install(self, bundle: bytes, base: Path) -> None:
        super().install(bundle, base)
        heading, end_marker = _instruction_settings()
        instructions.upsert_instruction_file(
            base / INSTRUCTIONS_FILE, self.name, self.index_entry(), heading, end_marker
        )

    def remove(self, base: Path) -> None:
        super().remove(base)
        heading, end_marker = _instruction_settings()
        instructions.remove_from_instruction_file(
            base / INSTRUCTIONS_FILE, self.name, heading, end_marker
        )


# =============================================================================
# Hooks
# =============================================================================


def _remove_named(hooks: dict[str, list[MatcherGroup]], name: str) -> int:
    """Remove hooks called name from every group; drop empty groups and events."""
    removed = 0
    for event in list(hooks):
        groups = []
        for group in hooks[event]:
            inner = group.hooks or []
            kept = [h for h in inner if h.name != name]
            removed += len(inner) - len(kept)
            if kept:
                group.hooks = kept
                groups.append(group)
            elif not inner:
                groups.append(group)
        if groups:
            hooks[event] = groups
        else:
            del hooks[event]
    return removed


class HookHandler(BaseHandler):
    """.gemini/settings.json hooks: {Event: [{matcher?, hooks: [{name, type, command}]}]}"""

    client_id = CLIENT_ID
    ops = DirectoryAssetOps("hooks", HOOK)

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        hook = metadata.hook
        event = map_event(CLIENT_ID, hook.event, hook.client_overrides(CLIENT_ID))
        gemini_dir = config_dir(base)
        settings = SettingsFile.load(gemini_dir / SETTINGS_FILE, GeminiSettings)
        hooks = settings.hooks()

        install_dir = self.ops.asset_dir(gemini_dir, self.name)
        if hook.script_file or zips.has_content_files(bundle):
            self.ops.install(bundle, gemini_dir, self.name)

        entry = HookCommand(
            name=self.name,
            type="command",
            command=resolve_command(hook, install_dir, zips.list_files(bundle)),
        )
        _remove_named(hooks, self.name)
        groups = hooks.setdefault(event, [])
        for group in groups:
            if (group.matcher or "") == hook.matcher:
                group.hooks = [*(group.hooks or []), entry]
                break
        else:
            group = MatcherGroup(hooks=[entry])
            if hook.matcher:
                group.matcher = hook.matcher
            groups.append(group)
        settings.save()
        logger.info("registered hook %s on %s", self.name, event)

    def remove(self, base: Path) -> None:
        gemini_dir = config_dir(base)
        path = gemini_dir / SETTINGS_FILE
        if path.exists():
            settings = SettingsFile.load(path, GeminiSettings)
            if _remove_named(settings.hooks(create=False), self.name):
                settings.prune("hooks")
                settings.save()
        self.ops.remove(gemini_dir, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        path = config_dir(base) / SETTINGS_FILE
        if path.exists():
            for groups in SettingsFile.load(path, GeminiSettings).hooks(create=False).values():
                for group in groups:
                    if any(h.name == self.name for h in group.hooks or []):
                        return True, "installed"
        return False, "hook not registered"

    def get_install_path(self) -> str:
        return f".gemini/hooks/{self.name}"


# =============================================================================
# MCP servers
# =============================================================================


class MCPHandler(BaseHandler):
    """.gemini/settings.json mcpServers. Remote http servers use httpUrl."""

    client_id = CLIENT_ID
    ops = DirectoryAssetOps("mcp-servers", MCP)

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        mcp = metadata.mcp
        gemini_dir = config_dir(base)
        install_dir: Optional[Path] = None
        if not mcp.is_remote and zips.has_content_files(bundle):
            install_dir = self.ops.install(bundle, gemini_dir, self.name)

        fields = build_entry(mcp, install_dir)
        fields.pop("type", None)
        if mcp.transport == "http":
            fields["httpUrl"] = fields.pop("url")
        entry = make_entry(MCPServer, fields)
        entry.artifact = self.name

        settings = SettingsFile.load(gemini_dir / SETTINGS_FILE, GeminiSettings)
        settings.mcp_servers()[self.name] = entry
        settings.save()

    def remove(self, base: Path) -> None:
        gemini_dir = config_dir(base)
        path = gemini_dir / SETTINGS_FILE
        if path.exists():
            settings = SettingsFile.load(path, GeminiSettings)
            servers = settings.mcp_servers(create=False)
            if self.name in servers:
                del servers[self.name]
                settings.prune("mcp_servers")
                settings.save()
        self.ops.remove(gemini_dir, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        path = config_dir(base) / SETTINGS_FILE
        if path.exists():
            servers = SettingsFile.load(path, GeminiSettings).mcp_servers(create=False)
            if self.name in servers:
                return True, "installed"
        return False, "MCP server not registered"

    def get_install_path(self) -> str:
        return f".gemini/mcp-servers/{self.name}"


# =============================================================================
# Rules (marker sections in GEMINI.md)
# =============================================================================


def _markers(name: str) -> tuple[str, str]:
    return f"<!-- skillpack:{name} -->", f"<!-- /skillpack:{name} -->"


class RuleHandler(BaseHandler):
    """A <!-- skillpack:{name} --> section of GEMINI.md."""

    client_id = CLIENT_ID

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        rule, title = bundle_rule(bundle, metadata)
        start, end = _markers(self.name)
        section = f"{start}\n## {title}\n\n{RULES.get(CLIENT_ID).generate(rule)}{end}"

        path = base / INSTRUCTIONS_FILE
        content = path.read_text() if path.exists() else ""
        if start in content and end in content:
            start_idx = content.index(start)
            end_idx = content.index(end) + len(end)
            content = content[:start_idx] + section + content[end_idx:]
        elif content.strip():
            content = content.rstrip("\n") + "\n\n" + section + "\n"
        else:
            content = section + "\n"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    def remove(self, base: Path) -> None:
        path = base / INSTRUCTIONS_FILE
        if not path.exists():
            return
        content = path.read_text()
        start, end = _markers(self.name)
        if start not in content or end not in content:
            return
        start_idx = content.index(start)
        end_idx = content.index(end) + len(end)
        content = re.sub(r"\n{3,}", "\n\n", content[:start_idx] + content[end_idx:]).strip("\n")
        if content:
            path.write_text(content + "\n")
        else:
            path.unlink()

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        path = base / INSTRUCTIONS_FILE
        if path.exists() and _markers(self.name)[0] in path.read_text():
            return True, "installed"
        return False, "rule section not found"

    def get_install_path(self) -> str:
        return INSTRUCTIONS_FILE


CLIENT = Client(
    id=CLIENT_ID,
    display_name="Gemini CLI",
    handlers={
        "skill": SkillHandler,
        "command": CommandHandler,
        "hook": HookHandler,
        "mcp": MCPHandler,
        "rule": RuleHandler,
    },
)
