"""
scope:
    Installation scopes and per-client base directory resolution
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from skillpack.exceptions import ConfigurationError
from skillpack.models import MCP, SKILL, AssetType

SSH_URL = re.compile(r"^(?:ssh://)?git@([^:/]+)[:/](.+)$")


class ScopeType(str, Enum):
    GLOBAL = "global"
    REPO = "repo"
    PATH = "path"


@dataclass
class InstallScope:
    """Where an install applies: everywhere, a repository, or a path inside one."""

    type: ScopeType = ScopeType.GLOBAL
    repo_root: str = ""
    repo_url: str = ""
    path: str = ""

    @classmethod
    def global_scope(cls) -> InstallScope:
        return cls(ScopeType.GLOBAL)

    @classmethod
    def repo(cls, repo_root: str, repo_url: str) -> InstallScope:
        return cls(ScopeType.REPO, repo_root, repo_url)

    @classmethod
    def for_path(cls, repo_root: str, repo_url: str, path: str) -> InstallScope:
        return cls(ScopeType.PATH, repo_root, repo_url, normalize_repo_path(path))

    @property
    def repository(self) -> str:
        return "" if self.type == ScopeType.GLOBAL else self.repo_url

    @property
    def scoped_path(self) -> str:
        return self.path if self.type == ScopeType.PATH else ""

    def root(self) -> Path:
        """Directory a repo or path scope applies to."""
        if not self.repo_root:
            raise ConfigurationError(
                f"{self.type.value}-scoped install requires a repository root"
            )
        root = Path(self.repo_root)
        if self.type == ScopeType.PATH and self.path:
            root = root / self.path
        return root


# =============================================================================
# Repository URLs and paths
# =============================================================================


def normalize_repo_url(url: str) -> str:
    """
    Reduce a git remote URL to a comparable host/owner/repo form.

    git@github.com:Owner/Repo.git and https://github.com/owner/repo both become
    github.com/owner/repo.
    """
    url = url.strip().lower()
    if not url:
        return ""
    url = url.removesuffix("/").removesuffix(".git")

    match = SSH_URL.match(url)
    if match:
        host, path = match.groups()
        return f"{host}/{path.strip('/')}"

    if "://" in url:
        parsed = urlparse(url)
        host = parsed.hostname or ""
        if host.startswith("www."):
            host = host[4:]
        return f"{host}/{parsed.path.strip('/')}".rstrip("/")

    return url


def match_repo_urls(a: str, b: str) -> bool:
    """True if two remote URLs name the same repository."""
    return normalize_repo_url(a) == normalize_repo_url(b)


def normalize_repo_path(path: str) -> str:
    """Clean a repository-relative path: forward slashes, no '.', no edges."""
    path = path.strip().replace("\\", "/")
    if not path:
        return ""
    cleaned = posixpath.normpath(path).strip("/")
    return "" if cleaned == "." else cleaned


def path_contains(ancestor: str, path: str) -> bool:
    """
    True if path equals ancestor or lies beneath it.

    services/api contains services/api/v2 but not services/api2.
    """
    ancestor = normalize_repo_path(ancestor)
    path = normalize_repo_path(path)
    if not ancestor:
        return True
    return path == ancestor or path.startswith(ancestor + "/")


# =============================================================================
# Base directory resolution
# =============================================================================


def _home(home: Optional[Path]) -> Path:
    return home if home is not None else Path.home()


def resolve_base(
    client_id: str,
    scope: InstallScope,
    home: Optional[Path] = None,
    asset_type: Optional[AssetType] = None,
) -> Path:
    """
    Map (client, scope) to the base directory assets install under.

    Most clients use one base for every asset type. Codex puts repository
    skills in .agents, and GitHub Copilot reads MCP servers from the
    workspace .vscode directory, so asset_type can change the answer.

    Pure: nothing is created or read.
    """
    if client_id == "claude-code":
        if scope.type == ScopeType.GLOBAL:
            return _home(home) / ".claude"
        return scope.root() / ".claude"
    if client_id == "cursor":
        if scope.type == ScopeType.GLOBAL:
            return _home(home) / ".cursor"
        return scope.root() / ".cursor"
    if client_id == "gemini":
        if scope.type == ScopeType.GLOBAL:
            return _home(home) / ".gemini"
        return scope.root()
    if client_id == "codex":
        if scope.type == ScopeType.GLOBAL:
            return _home(home) / ".codex"
        if asset_type == SKILL:
            return scope.root() / ".agents"
        return scope.root() / ".codex"
    if client_id == "github-copilot":
        if asset_type == MCP:
            if scope.type == ScopeType.GLOBAL:
                return _home(home) / ".vscode"
            # path scopes share the workspace-level mcp.json
            return InstallScope(ScopeType.REPO, scope.repo_root).root() / ".vscode"
        if scope.type == ScopeType.GLOBAL:
            return _home(home) / ".copilot"
        return scope.root() / ".github"
    raise ValueError(f"Unknown client: {client_id}")
