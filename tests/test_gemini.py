"""Tests for the Gemini CLI handlers."""

import json
import tomllib

import pytest

from skillpack import metadata as codec
from skillpack.clients import get_handler
from skillpack.clients.gemini import config_dir, convert_prompt_syntax
from skillpack.exceptions import UnsupportedHookEventError
from skillpack.scope import InstallScope, resolve_base


def _handler(data):
    return get_handler("gemini", codec.validate_zip(data))


class TestPromptConversion:
    """Tests for convert_prompt_syntax()."""

    def test_arguments(self):
        assert convert_prompt_syntax("Fix $ARGUMENTS now") == "Fix {{args}} now"

    def test_relative_file_reference(self):
        assert convert_prompt_syntax("See @./docs/guide.md for details") == "See @{docs/guide.md} for details"

    def test_absolute_file_reference(self):
        assert convert_prompt_syntax("Read @/etc/hosts") == "Read @{/etc/hosts}"

    def test_reference_ends_at_bracket(self):
        assert convert_prompt_syntax("(see @./a.md)") == "(see @{a.md})"

    def test_mentions_untouched(self):
        text = "Ping @alice or mail a@b.com"
        assert convert_prompt_syntax(text) == text


class TestConfigDir:
    """Tests for config_dir()."""

    def test_global(self, tmp_path):
        assert config_dir(tmp_path / ".gemini") == tmp_path / ".gemini"

    def test_repo(self, tmp_path):
        base = resolve_base("gemini", InstallScope.repo(str(tmp_path), "https://x/y"))
        assert config_dir(base) == tmp_path / ".gemini"


class TestCommandsAndSkills:
    """Tests for TOML custom commands and the skill index."""

    def test_skill_writes_toml_and_index(self, tmp_path, skill_bundle, mock_skillpack_home):
        base = tmp_path / ".gemini"
        handler = _handler(skill_bundle)
        handler.install(skill_bundle, base)

        command = tomllib.loads((base / "commands" / "code-review.toml").read_text())
        assert command["description"] == "Reviews code for common mistakes"
        assert command["prompt"] == "# Code Review\n\nReview the diff in {{args}} and report problems.\n"

        index = (base / "GEMINI.md").read_text()
        assert "## Shared Instructions" in index
        assert "### code-review" in index
        assert handler.verify_installed(base) == (True, "installed")

        handler.remove(base)
        assert not (base / "commands" / "code-review.toml").exists()
        assert not (base / "GEMINI.md").exists()

    def test_index_heading_from_config(self, tmp_path, skill_bundle, mock_skillpack_home):
        mock_skillpack_home["config"].write_text(
            "instructions:\n  heading: '# Skills'\n  end-marker: '<!-- end skills -->'\n"
        )
        base = tmp_path / ".gemini"
        _handler(skill_bundle).install(skill_bundle, base)

        index = (base / "GEMINI.md").read_text()
        assert index.startswith("# Skills\n\n## code-review\n")
        assert index.endswith("<!-- end skills -->\n")

    def test_command_without_description(self, tmp_path, make_bundle):
        data = make_bundle({
            "metadata.toml": '[asset]\nname = "deploy"\nversion = "1.0.0"\ntype = "command"\n'
                             '[command]\nprompt-file = "COMMAND.md"\n',
            "COMMAND.md": "Deploy $ARGUMENTS using @./deploy.md\n",
        })
        base = tmp_path / "repo"
        _handler(data).install(data, base)

        command = tomllib.loads((base / ".gemini" / "commands" / "deploy.toml").read_text())
        assert "description" not in command
        assert command["prompt"] == "Deploy {{args}} using @{deploy.md}\n"


class TestGeminiHooks:
    """Tests for settings.json hooks in Gemini's matcher-group shape."""

    def test_after_tool_install_and_remove(self, tmp_path, hook_bundle):
        base = tmp_path / ".gemini"
        handler = _handler(hook_bundle)
        handler.install(hook_bundle, base)

        settings = json.loads((base / "settings.json").read_text())
        groups = settings["hooks"]["AfterTool"]
        assert groups == [{
            "matcher": "Edit|Write",
            "hooks": [{
                "name": "lint-on-edit",
                "type": "command",
                "command": str(base / "hooks" / "lint-on-edit" / "hook.sh"),
            }],
        }]
        assert handler.verify_installed(base) == (True, "installed")

        handler.remove(base)
        settings = json.loads((base / "settings.json").read_text())
        assert "hooks" not in settings
        assert not (base / "hooks" / "lint-on-edit").exists()

    def test_reinstall_replaces_entry(self, tmp_path, hook_bundle):
        base = tmp_path / ".gemini"
        handler = _handler(hook_bundle)
        handler.install(hook_bundle, base)
        handler.install(hook_bundle, base)

        settings = json.loads((base / "settings.json").read_text())
        assert len(settings["hooks"]["AfterTool"][0]["hooks"]) == 1

    def test_joins_existing_group_and_keeps_user_hooks(self, tmp_path, hook_bundle):
        base = tmp_path / ".gemini"
        base.mkdir()
        user_hook = {"name": "audit", "type": "command", "command": "audit.sh"}
        (base / "settings.json").write_text(json.dumps({
            "theme": "dark",
            "hooks": {"AfterTool": [{"matcher": "Edit|Write", "hooks": [user_hook]}]},
        }))
        handler = _handler(hook_bundle)
        handler.install(hook_bundle, base)

        groups = json.loads((base / "settings.json").read_text())["hooks"]["AfterTool"]
        assert len(groups) == 1
        assert [h["name"] for h in groups[0]["hooks"]] == ["audit", "lint-on-edit"]

        handler.remove(base)
        settings = json.loads((base / "settings.json").read_text())
        assert settings["theme"] == "dark"
        assert settings["hooks"]["AfterTool"] == [{"matcher": "Edit|Write", "hooks": [user_hook]}]

    def test_unsupported_event(self, tmp_path, make_bundle):
        data = make_bundle({
            "metadata.toml": '[asset]\nname = "compact"\nversion = "1.0.0"\ntype = "hook"\n'
                             '[hook]\nevent = "pre-compact"\ncommand = "echo"\n',
        })
        with pytest.raises(UnsupportedHookEventError):
            _handler(data).install(data, tmp_path / ".gemini")
        assert not (tmp_path / ".gemini" / "settings.json").exists()


class TestGeminiMCP:
    """Tests for mcpServers in .gemini/settings.json."""

    def test_stdio_server(self, tmp_path, mcp_bundle):
        base = tmp_path / ".gemini"
        handler = _handler(mcp_bundle)
        handler.install(mcp_bundle, base)

        entry = json.loads((base / "settings.json").read_text())["mcpServers"]["github"]
        assert entry["command"] == "npx"
        assert entry["env"] == {"GITHUB_TOKEN": "${GITHUB_TOKEN}"}
        assert "type" not in entry
        assert handler.verify_installed(base) == (True, "installed")

        handler.remove(base)
        assert "mcpServers" not in json.loads((base / "settings.json").read_text())

    def test_http_server_uses_http_url(self, tmp_path, make_bundle):
        data = make_bundle({
            "metadata.toml": '[asset]\nname = "docs"\nversion = "1.0.0"\ntype = "mcp"\n'
                             '[mcp]\ntransport = "http"\nurl = "https://mcp.example.com/mcp"\n',
        })
        base = tmp_path / ".gemini"
        _handler(data).install(data, base)

        entry = json.loads((base / "settings.json").read_text())["mcpServers"]["docs"]
        assert entry["httpUrl"] == "https://mcp.example.com/mcp"
        assert "url" not in entry


class TestGeminiRules:
    """Tests for rule sections in GEMINI.md."""

    def test_rule_section_round_trip(self, tmp_path, rule_bundle):
        base = tmp_path / "repo"
        base.mkdir()
        (base / "GEMINI.md").write_text("# Project notes\n")
        handler = _handler(rule_bundle)

        handler.install(rule_bundle, base)
        text = (base / "GEMINI.md").read_text()
        assert text.startswith("# Project notes\n\n<!-- skillpack:python-style -->\n## Python Style\n")
        assert "Use type hints on public functions." in text
        assert text.endswith("<!-- /skillpack:python-style -->\n")
        assert handler.verify_installed(base) == (True, "installed")

        handler.install(rule_bundle, base)
        assert (base / "GEMINI.md").read_text() == text

        handler.remove(base)
        assert (base / "GEMINI.md").read_text() == "# Project notes\n"

    def test_remove_only_rule_deletes_file(self, tmp_path, rule_bundle):
        handler = _handler(rule_bundle)
        handler.install(rule_bundle, tmp_path)
        handler.remove(tmp_path)
        assert not (tmp_path / "GEMINI.md").exists()
