"""Tests for asset type and usage detection."""

import pytest

from skillpack import metadata as codec
from skillpack.detectors import detect_asset_type, detect_type, detect_usage
from skillpack.models import AGENT, CLAUDE_CODE_PLUGIN, COMMAND, HOOK, MCP, RULE, SKILL


class TestDetectAssetType:
    """Tests for detect_asset_type()."""

    @pytest.mark.parametrize("files,expected", [
        (["SKILL.md", "helpers/x.py"], SKILL),
        (["agent.md"], AGENT),
        (["COMMAND.md"], COMMAND),
        (["hook.py"], HOOK),
        (["package.json", "index.js"], MCP),
        ([".claude-plugin/plugin.json", "skills/a/SKILL.md"], CLAUDE_CODE_PLUGIN),
        (["RULE.md"], RULE),
        (["README.md"], SKILL),
    ])
    def test_detection_table(self, files, expected):
        assert detect_asset_type(files) == expected

    def test_first_row_wins(self):
        """A bundle with both SKILL.md and hook.sh is a skill."""
        assert detect_asset_type(["hook.sh", "SKILL.md"]) == SKILL


class TestDetectType:
    """Tests for detect_type() default metadata."""

    def test_skill_defaults_validate(self):
        metadata = detect_type(["skill.md"], "helper", "1.0.0")
        assert metadata.skill.prompt_file == "skill.md"
        codec.validate_with_files(metadata, ["skill.md"])

    def test_hook_defaults(self):
        metadata = detect_type(["hook.sh"], "guard", "0.1.0")
        assert metadata.hook.event == "pre-tool-use"
        assert metadata.hook.script_file == "hook.sh"
        codec.validate(metadata)

    def test_mcp_defaults(self):
        metadata = detect_type(["package.json", "index.js"], "srv", "1.0.0")
        assert metadata.mcp.command == "node"
        assert metadata.mcp.args == ["index.js"]
        codec.validate(metadata)

    def test_explicit_type(self):
        metadata = detect_type(["SKILL.md"], "x", "1.0.0", asset_type=RULE)
        assert metadata.type == RULE


class TestDetectUsage:
    """Tests for detect_usage()."""

    def test_skill(self):
        assert detect_usage(SKILL, "Skill", {"skill": "code-review"}) == "code-review"

    def test_agent(self):
        assert detect_usage(AGENT, "Task", {"subagent_type": "reviewer"}) == "reviewer"

    def test_command_strips_slash_and_arguments(self):
        assert detect_usage(COMMAND, "SlashCommand", {"command": "/deploy staging"}) == "deploy"

    def test_mcp_server_from_tool_name(self):
        assert detect_usage(MCP, "mcp__github__create_issue", {}) == "github"
        assert detect_usage(MCP, "Bash", {}) is None

    def test_wrong_tool(self):
        assert detect_usage(SKILL, "Task", {"skill": "x"}) is None

    def test_hooks_never_match(self):
        assert detect_usage(HOOK, "Skill", {"skill": "x"}) is None
