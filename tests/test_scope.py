"""Tests for scopes, repository URLs and base directory resolution."""

from pathlib import Path

import pytest

from skillpack.clients import get_client
from skillpack.exceptions import ConfigurationError
from skillpack.models import MCP, RULE, SKILL
from skillpack.scope import (
    InstallScope,
    ScopeType,
    match_repo_urls,
    normalize_repo_path,
    normalize_repo_url,
    path_contains,
    resolve_base,
)


class TestRepoUrls:
    """Tests for URL normalization."""

    @pytest.mark.parametrize("url", [
        "git@github.com:Acme/App.git",
        "https://github.com/acme/app",
        "https://github.com/acme/app.git/",
        "ssh://git@github.com/acme/app.git",
        "https://www.github.com/acme/app",
    ])
    def test_equivalent_forms(self, url):
        assert normalize_repo_url(url) == "github.com/acme/app"

    def test_match(self):
        assert match_repo_urls("git@github.com:acme/app.git", "https://github.com/acme/app")
        assert not match_repo_urls("https://github.com/acme/app", "https://github.com/acme/app2")


class TestRepoPaths:
    """Tests for path normalization and containment."""

    @pytest.mark.parametrize("raw,expected", [
        ("services/api", "services/api"),
        ("./services/api/", "services/api"),
        ("services\\api", "services/api"),
        (".", ""),
        ("", ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_repo_path(raw) == expected

    def test_containment_respects_separators(self):
        assert path_contains("services/api", "services/api")
        assert path_contains("services/api", "services/api/v2")
        assert not path_contains("services/api", "services/api2")
        assert path_contains("", "anything")


class TestResolveBase:
    """Tests for resolve_base()."""

    def test_global_bases(self, tmp_path):
        scope = InstallScope.global_scope()
        assert resolve_base("claude-code", scope, tmp_path) == tmp_path / ".claude"
        assert resolve_base("cursor", scope, tmp_path) == tmp_path / ".cursor"
        assert resolve_base("gemini", scope, tmp_path) == tmp_path / ".gemini"

    def test_repo_bases(self, tmp_path):
        scope = InstallScope.repo(str(tmp_path), "https://github.com/acme/app")
        assert resolve_base("claude-code", scope) == tmp_path / ".claude"
        assert resolve_base("gemini", scope) == tmp_path

    def test_path_bases(self, tmp_path):
        scope = InstallScope.for_path(str(tmp_path), "https://github.com/acme/app", "services/api")
        assert resolve_base("cursor", scope) == tmp_path / "services" / "api" / ".cursor"

    def test_codex_bases(self, tmp_path):
        assert resolve_base("codex", InstallScope.global_scope(), tmp_path) == tmp_path / ".codex"
        repo = InstallScope.repo(str(tmp_path), "https://github.com/acme/app")
        assert resolve_base("codex", repo, asset_type=SKILL) == tmp_path / ".agents"
        assert resolve_base("codex", repo, asset_type=MCP) == tmp_path / ".codex"

    def test_copilot_bases(self, tmp_path):
        home = tmp_path / "home"
        scope = InstallScope.global_scope()
        assert resolve_base("github-copilot", scope, home, RULE) == home / ".copilot"
        assert resolve_base("github-copilot", scope, home, MCP) == home / ".vscode"

        sub = InstallScope.for_path(str(tmp_path), "https://github.com/acme/app", "web")
        assert resolve_base("github-copilot", sub, asset_type=SKILL) == tmp_path / "web" / ".github"
        assert resolve_base("github-copilot", sub, asset_type=MCP) == tmp_path / ".vscode"

    def test_resolution_is_pure(self, tmp_path):
        resolve_base("claude-code", InstallScope.global_scope(), tmp_path)
        assert not (tmp_path / ".claude").exists()

    def test_repo_scope_requires_root(self):
        scope = InstallScope(ScopeType.REPO, repo_url="https://github.com/acme/app")
        with pytest.raises(ConfigurationError):
            resolve_base("claude-code", scope)

    def test_unknown_client(self):
        with pytest.raises(ValueError):
            resolve_base("vim", InstallScope.global_scope(), Path("/tmp"))

    def test_client_base_dir(self, tmp_path):
        client = get_client("cursor")
        assert client.base_dir(InstallScope.global_scope(), tmp_path) == tmp_path / ".cursor"


class TestInstallScope:
    """Tests for InstallScope."""

    def test_global_has_no_repository(self):
        scope = InstallScope.global_scope()
        assert scope.repository == ""
        assert scope.scoped_path == ""

    def test_repo_scope_ignores_path(self):
        scope = InstallScope(ScopeType.REPO, "/src", "https://x/y", "docs")
        assert scope.repository == "https://x/y"
        assert scope.scoped_path == ""
