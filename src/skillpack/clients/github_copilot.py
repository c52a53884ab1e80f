"""
github_copilot:
    GitHub Copilot handlers. Base is ~/.copilot or {repo}/.github; MCP servers
    go to the workspace .vscode/mcp.json
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml

from skillpack import bundle as zips
from skillpack import frontmatter as fm
from skillpack.clients.base import Client
from skillpack.handlers import BaseHandler
from skillpack.handlers.dirasset import DirectoryAssetHandler, DirectoryAssetOps
from skillpack.handlers.mcp import build_entry
from skillpack.models import MCP, SKILL, Metadata
from skillpack.rules import RULES, bundle_rule
from skillpack.settings import MCPServer, SettingsFile, VSCodeMCPConfig, make_entry

logger = logging.getLogger(__name__)

CLIENT_ID = "github-copilot"

MCP_CONFIG_FILE = "mcp.json"

mcp_ops = DirectoryAssetOps("mcp-servers", MCP)


def render_prompt(metadata: Metadata, body: str) -> str:
    """Prompt body with a description frontmatter block when the asset has one."""
    body = body.strip() + "\n"
    if not metadata.asset.description:
        return body
    header = yaml.dump({"description": metadata.asset.description},
                       default_flow_style=False, allow_unicode=True)
    return f"---\n{header}---\n\n{body}"


# =============================================================================
# Skills, prompts, agents
# =============================================================================


class SkillHandler(DirectoryAssetHandler):
    client_id = CLIENT_ID
    ops = DirectoryAssetOps("skills", SKILL)


class PromptFileHandler(BaseHandler):
    """{subdir}/{name}{suffix}, rendered from the bundle's prompt file."""

    client_id = CLIENT_ID
    subdir = ""
    suffix = ""
    missing = "file not found"

    def file_path(self, base: Path) -> Path:
        return base / self.subdir / f"{self.name}{self.suffix}"

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        _, body = fm.parse(zips.read_text(bundle, metadata.prompt_file()))
        path = self.file_path(base)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_prompt(metadata, body))

    def remove(self, base: Path) -> None:
        self.file_path(base).unlink(missing_ok=True)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        if self.file_path(base).exists():
            return True, "installed"
        return False, self.missing

    def get_install_path(self) -> str:
        return f"{self.subdir}/{self.name}{self.suffix}"


class CommandHandler(PromptFileHandler):
    subdir = "prompts"
    suffix = ".prompt.md"
    missing = "prompt file not found"


class AgentHandler(PromptFileHandler):
    subdir = "agents"
    suffix = ".agent.md"
    missing = "agent file not found"


# =============================================================================
# Rules
# =============================================================================


class RuleHandler(BaseHandler):
    """instructions/{name}.instructions.md with applyTo/description frontmatter."""

    client_id = CLIENT_ID

    def rule_path(self, base: Path) -> Path:
        return base / "instructions" / f"{self.name}.instructions.md"

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
        return False, "instructions file not found"

    def get_install_path(self) -> str:
        return f"instructions/{self.name}.instructions.md"


# =============================================================================
# MCP
# =============================================================================


class MCPHandler(BaseHandler):
    """
    .vscode/mcp.json "servers", keyed by asset name.

    VS Code validates this file against its own schema, so entries carry no
    marker field and no timeout.
    """

    client_id = CLIENT_ID

    def install(self, bundle: bytes, base: Path) -> None:
        metadata = self.validate(bundle)
        mcp = metadata.mcp
        install_dir: Optional[Path] = None
        if not mcp.is_remote and zips.has_content_files(bundle):
            install_dir = mcp_ops.install(bundle, base, self.name)

        fields = build_entry(mcp, install_dir)
        fields.pop("timeout", None)
        settings = SettingsFile.load(base / MCP_CONFIG_FILE, VSCodeMCPConfig)
        settings.section("servers")[self.name] = make_entry(MCPServer, fields)
        settings.save()
        logger.info("registered MCP server %s in %s", self.name, settings.path)

    def remove(self, base: Path) -> None:
        path = base / MCP_CONFIG_FILE
        if path.exists():
            settings = SettingsFile.load(path, VSCodeMCPConfig)
            servers = settings.section("servers", create=False)
            if self.name in servers:
                del servers[self.name]
                settings.save()
        mcp_ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        path = base / MCP_CONFIG_FILE
        if path.exists():
            servers = SettingsFile.load(path, VSCodeMCPConfig).section("servers", create=False)
            if self.name in servers:
                return True, "installed"
        return False, "MCP server not registered"

    def get_install_path(self) -> str:
        return f"mcp-servers/{self.name}"


CLIENT = Client(
    id=CLIENT_ID,
    display_name="GitHub Copilot",
    handlers={
        "skill": SkillHandler,
        "rule": RuleHandler,
        "command": CommandHandler,
        "agent": AgentHandler,
        "mcp": MCPHandler,
    },
)
