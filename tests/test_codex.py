"""Tests for the Codex handlers."""

import tomllib

import pytest

from skillpack import metadata as codec
from skillpack.clients import codex, get_handler
from skillpack.exceptions import SettingsError, UnsupportedAssetTypeError
from skillpack.models import HOOK, RULE, Metadata


def _handler(data):
    return get_handler("codex", codec.validate_zip(data))


def _config(base):
    return tomllib.loads((base / "config.toml").read_text())


class TestCodexHandlers:
    """Tests for Codex skills, commands and MCP servers."""

    @pytest.mark.parametrize("asset_type", [HOOK, RULE])
    def test_unsupported_types(self, asset_type):
        with pytest.raises(UnsupportedAssetTypeError):
            codex.CLIENT.get_handler(Metadata.stub("a", "1.0.0", asset_type))

    def test_skill_directory(self, tmp_path, skill_bundle):
        base = tmp_path / ".agents"
        handler = _handler(skill_bundle)
        handler.install(skill_bundle, base)
        assert (base / "skills" / "code-review" / "SKILL.md").exists()
        assert handler.verify_installed(base)[0]

    def test_command_file(self, tmp_path, make_bundle):
        data = make_bundle({
            "metadata.toml": '[asset]\nname = "deploy"\nversion = "1.0.0"\ntype = "command"\n'
                             '[command]\nprompt-file = "COMMAND.md"\n',
            "COMMAND.md": "Deploy $ARGUMENTS\n",
        })
        base = tmp_path / ".codex"
        handler = _handler(data)
        handler.install(data, base)

        assert (base / "commands" / "deploy.md").read_text() == "Deploy $ARGUMENTS\n"
        handler.remove(base)
        assert handler.verify_installed(base) == (False, "command file not found")

    def test_mcp_config_only(self, tmp_path, mcp_bundle):
        base = tmp_path / ".codex"
        handler = _handler(mcp_bundle)
        handler.install(mcp_bundle, base)

        assert _config(base)["mcp"] == [{
            "name": "github",
            "transport": "stdio",
            "command": "npx",
            "args": ["-y", "@modelcontextprotocol/server-github"],
            "env": {"GITHUB_TOKEN": "${GITHUB_TOKEN}"},
        }]
        assert handler.verify_installed(base) == (True, "installed")

        handler.remove(base)
        assert "mcp" not in _config(base)
        assert handler.verify_installed(base) == (False, "MCP server not registered")

    def test_mcp_remote(self, tmp_path, make_bundle):
        data = make_bundle({
            "metadata.toml": '[asset]\nname = "docs"\nversion = "1.0.0"\ntype = "mcp"\n'
                             '[mcp]\ntransport = "http"\nurl = "https://mcp.example.com"\n',
        })
        base = tmp_path / ".codex"
        _handler(data).install(data, base)
        assert _config(base)["mcp"] == [
            {"name": "docs", "transport": "http", "url": "https://mcp.example.com"},
        ]

    def test_mcp_packaged_server(self, tmp_path, make_bundle):
        data = make_bundle({
            "metadata.toml": '[asset]\nname = "local"\nversion = "1.0.0"\ntype = "mcp"\n'
                             '[mcp]\ntransport = "stdio"\ncommand = "node"\nargs = ["server.js"]\n',
            "server.js": "console.log('hi')\n",
        })
        base = tmp_path / ".codex"
        _handler(data).install(data, base)

        server = _config(base)["mcp"][0]
        assert server["args"] == [str(base / "mcp-servers" / "local" / "server.js")]
        assert (base / "mcp-servers" / "local" / "server.js").exists()

    def test_mcp_keeps_other_config(self, tmp_path, mcp_bundle):
        base = tmp_path / ".codex"
        base.mkdir()
        (base / "config.toml").write_text(
            'model = "o3"\n\n[[mcp]]\nname = "mine"\ncommand = "my-server"\n'
            '\n[[mcp]]\nname = "github"\ncommand = "stale"\n'
        )
        handler = _handler(mcp_bundle)
        handler.install(mcp_bundle, base)

        config = _config(base)
        assert config["model"] == "o3"
        assert [s["name"] for s in config["mcp"]] == ["mine", "github"]
        assert config["mcp"][1]["command"] == "npx"

        handler.remove(base)
        assert _config(base)["mcp"] == [{"name": "mine", "command": "my-server"}]

    def test_invalid_config_raises(self, tmp_path, mcp_bundle):
        base = tmp_path / ".codex"
        base.mkdir()
        (base / "config.toml").write_text("mcp = 3\n")
        with pytest.raises(SettingsError):
            _handler(mcp_bundle).install(mcp_bundle, base)
