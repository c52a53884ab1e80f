"""
codex:
    Codex handlers. Base is ~/.codex, or {repo}/.codex with skills under {repo}/.agents
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from skillpack import bundle as zips
from skillpack.clients.base import Client
from skillpack.handlers import BaseHandler
from skillpack.handlers.dirasset import DirectoryAssetHandler, DirectoryAssetOps
from skillpack.handlers.mcp import build_entry
from skillpack.models import MCP, SKILL
from skillpack.settings import CodexConfig, CodexMCPServer, TomlSettingsFile, make_entry

logger = logging.getLogger(__name__)

CLIENT_ID = "codex"

CONFIG_FILE = "config.toml"

mcp_ops = DirectoryAssetOps("mcp-servers", MCP)


class SkillHandler(DirectoryAssetHandler):
    client_id = CLIENT_ID
    ops = DirectoryAssetOps("skills", SKILL)


class CommandHandler(BaseHandler):
    """commands/{name}.md holding the prompt verbatim."""

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


class MCPHandler(BaseHandler):
    """
    config.toml [[mcp]] tables, one per server, matched by name.

    Codex has no marker field; the name is the key. Other config keys and
    other servers are left as they were.
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
        fields["transport"] = fields.pop("type")
        entry = make_entry(CodexMCPServer, {"name": self.name, **fields})

        settings = TomlSettingsFile.load(base / CONFIG_FILE, CodexConfig)
        servers = [s for s in settings.model.mcp or [] if s.name != self.name]
        settings.model.mcp = [*servers, entry]
        settings.save()
        logger.info("registered MCP server %s in %s", self.name, settings.path)

    def remove(self, base: Path) -> None:
        path = base / CONFIG_FILE
        if path.exists():
            settings = TomlSettingsFile.load(path, CodexConfig)
            servers = settings.model.mcp or []
            kept = [s for s in servers if s.name != self.name]
            if len(kept) != len(servers):
                settings.model.mcp = kept or None
                settings.save()
        mcp_ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        if mcp_ops.asset_dir(base, self.name).is_dir():
            return True, "installed"
        path = base / CONFIG_FILE
        if path.exists():
            servers = TomlSettingsFile.load(path, CodexConfig).model.mcp or []
            if any(s.name == self.name for s in servers):
                return True, "installed"
        return False, "MCP server not registered"

    def get_install_path(self) -> str:
        return f"mcp-servers/{self.name}"


CLIENT = Client(
    id=CLIENT_ID,
    display_name="Codex",
    handlers={
        "skill": SkillHandler,
        "command": CommandHandler,
        "mcp": MCPHandler,
    },
)
