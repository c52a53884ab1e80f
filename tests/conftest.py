"""Shared pytest fixtures for skillpack tests."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from skillpack import bundle


SKILL_METADATA = """\
metadata-version = "1.0"

[asset]
name = "code-review"
version = "1.2.0"
type = "skill"
description = "Reviews code for common mistakes"

[skill]
prompt-file = "SKILL.md"
"""

SKILL_PROMPT = """---
description: Reviews code for common mistakes
---

# Code Review

Review the diff in $ARGUMENTS and report problems.
"""

HOOK_METADATA = """\
[asset]
name = "lint-on-edit"
version = "0.3.0"
type = "hook"

[hook]
event = "post-tool-use"
script-file = "hook.sh"
matcher = "Edit|Write"
timeout = 30
"""

MCP_METADATA = """\
[asset]
name = "github"
version = "2.0.0"
type = "mcp"

[mcp]
transport = "stdio"
command = "npx"
args = ["-y", "@modelcontextprotocol/server-github"]

[mcp.env]
GITHUB_TOKEN = "${GITHUB_TOKEN}"
"""

RULE_METADATA = """\
[asset]
name = "python-style"
version = "1.0.0"
type = "rule"
description = "Python conventions"

[rule]
title = "Python Style"
globs = ["**/*.py"]
"""

RULE_PROMPT = """Use type hints on public functions.
Prefer pathlib over os.path.
"""


@pytest.fixture
def cli_runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_skillpack_home(tmp_path):
    """Point SKILLPACK_HOME and its files at a temp directory."""
    home = tmp_path / ".skillpack"
    home.mkdir()

    with (
        patch("skillpack.config.SKILLPACK_HOME", home),
        patch("skillpack.config.TRACKER_FILE", home / "installed.json"),
        patch("skillpack.config.CONFIG_FILE", home / "config.yml"),
    ):
        yield {
            "home": home,
            "tracker": home / "installed.json",
            "config": home / "config.yml",
        }


@pytest.fixture
def make_bundle():
    """Factory building bundle zip bytes from {path: content}."""
    def _make(files):
        return bundle.build(files)
    return _make


@pytest.fixture
def skill_bundle(make_bundle):
    return make_bundle({"metadata.toml": SKILL_METADATA, "SKILL.md": SKILL_PROMPT})


@pytest.fixture
def hook_bundle(make_bundle):
    return make_bundle({
        "metadata.toml": HOOK_METADATA,
        "hook.sh": "#!/bin/sh\nruff check .\n",
    })


@pytest.fixture
def mcp_bundle(make_bundle):
    return make_bundle({"metadata.toml": MCP_METADATA})


@pytest.fixture
def rule_bundle(make_bundle):
    return make_bundle({"metadata.toml": RULE_METADATA, "RULE.md": RULE_PROMPT})
