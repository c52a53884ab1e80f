"""
mcp:
    Native MCP server entries built from canonical [mcp] config
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from skillpack.models import MCPConfig


def _absolute_command(command: str, install_dir: Path) -> str:
    # "node" stays on PATH; "bin/server" is relative to the extracted bundle
    if os.path.isabs(command) or "/" not in command:
        return command
    return str(install_dir / command)


def _absolute_args(args: list[str], install_dir: Path) -> list[str]:
    return [
        arg if os.path.isabs(arg) or arg.startswith("-") else str(install_dir / arg)
        for arg in args
    ]


def build_entry(mcp: MCPConfig, install_dir: Optional[Path] = None) -> dict[str, Any]:
    """
    Build a server entry.

    With install_dir (a packaged server extracted from the bundle) relative
    command paths and args are anchored there. Without it the declared
    command and args are used as given.
    """
    if mcp.is_remote:
        entry: dict[str, Any] = {"type": mcp.transport, "url": mcp.url}
    elif install_dir is not None:
        entry = {
            "type": "stdio",
            "command": _absolute_command(mcp.command, install_dir),
            "args": _absolute_args(mcp.args, install_dir),
        }
    else:
        entry = {"type": "stdio", "command": mcp.command, "args": list(mcp.args)}

    if mcp.env:
        entry["env"] = dict(mcp.env)
    if mcp.timeout > 0:
        entry["timeout"] = mcp.timeout
    return entry
