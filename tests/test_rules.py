"""Tests for rule parsing, generation and conversion."""

import pytest

from skillpack import metadata as codec
from skillpack.rules import RULES, ParsedRule, bundle_rule, coerce_globs

CLAUDE_RULE = """---
description: API conventions
paths:
  - src/api/**/*.py
  - tests/api/**
---

Return JSON errors with a code field.
"""

CURSOR_RULE = """---
description: Frontend rules
globs: "*.tsx, *.ts"
alwaysApply: false
---

Prefer function components.
"""


class TestCoerceGlobs:
    """Tests for coerce_globs()."""

    def test_list(self):
        assert coerce_globs(["*.py", " *.md "]) == ["*.py", "*.md"]

    def test_single_string(self):
        assert coerce_globs("*.py") == ["*.py"]

    def test_comma_separated(self):
        assert coerce_globs("*.tsx, *.ts,") == ["*.tsx", "*.ts"]

    def test_missing_or_odd(self):
        assert coerce_globs(None) == []
        assert coerce_globs(42) == []


class TestClientFormats:
    """Tests for per-client parse and generate."""

    def test_claude_round_trip(self):
        caps = RULES.get("claude-code")
        rule = caps.parse(CLAUDE_RULE)
        assert rule.description == "API conventions"
        assert rule.globs == ["src/api/**/*.py", "tests/api/**"]
        assert rule.content.strip() == "Return JSON errors with a code field."

        again = caps.parse(caps.generate(rule))
        assert again.globs == rule.globs
        assert again.description == rule.description

    def test_claude_without_fields_has_no_frontmatter(self):
        text = RULES.get("claude-code").generate(ParsedRule(content="Be kind.\n"))
        assert text == "Be kind.\n"

    def test_cursor_round_trip_keeps_always_apply(self):
        caps = RULES.get("cursor")
        rule = caps.parse(CURSOR_RULE)
        assert rule.globs == ["*.tsx", "*.ts"]
        assert rule.client_fields == {"alwaysApply": False}

        text = caps.generate(rule)
        assert "alwaysApply: false\n" in text
        assert caps.parse(text).client_fields == {"alwaysApply": False}
        assert caps.parse(text).globs == ["*.tsx", "*.ts"]

    def test_cursor_single_glob_written_as_string(self):
        text = RULES.get("cursor").generate(ParsedRule(content="x", globs=["*.py"], description="d"))
        assert "globs: '*.py'\n" in text

    def test_cursor_without_globs_always_applies(self):
        text = RULES.get("cursor").generate(ParsedRule(content="x", description="d"))
        assert "alwaysApply: true\n" in text

    def test_copilot_instructions(self):
        caps = RULES.get("github-copilot")
        text = caps.generate(
            ParsedRule(content="Use pytest.\n", globs=["**/*.py", "tests/**"], description="Testing"),
            title="Testing",
        )
        assert text == (
            "---\napplyTo: '**/*.py,tests/**'\ndescription: Testing\n---\n\n"
            "# Testing\n\nUse pytest.\n"
        )
        rule = caps.parse(text)
        assert rule.globs == ["**/*.py", "tests/**"]
        assert rule.description == "Testing"

    def test_copilot_without_fields_has_no_frontmatter(self):
        text = RULES.get("github-copilot").generate(ParsedRule(content="Be kind.\n"))
        assert text == "Be kind.\n"

    def test_unknown_frontmatter_kept_for_same_client(self):
        caps = RULES.get("claude-code")
        rule = caps.parse("---\npaths: ['*.py']\nowner: platform\n---\n\nBody\n")
        assert rule.client_fields == {"owner": "platform"}
        assert "owner: platform" in caps.generate(rule)
        assert "owner" not in RULES.get("cursor").generate(rule)

    def test_gemini_plain_markdown(self):
        caps = RULES.get("gemini")
        assert caps.generate(ParsedRule(content="Use tabs.\n"), title="Style") == "# Style\n\nUse tabs.\n"
        assert caps.parse("---\nx: 1\n---\nBody").content == "---\nx: 1\n---\nBody"


class TestConversion:
    """Tests for RuleRegistry.convert()."""

    def test_cursor_to_claude(self):
        text = RULES.convert(CURSOR_RULE, ".cursor/rules/frontend.mdc", "claude-code")
        rule = RULES.get("claude-code").parse(text)
        assert rule.description == "Frontend rules"
        assert rule.globs == ["*.tsx", "*.ts"]
        assert "alwaysApply" not in text

    def test_claude_to_cursor(self):
        text = RULES.convert(CLAUDE_RULE, ".claude/rules/api.md", "cursor", title="API")
        assert text.startswith("---\ndescription: API conventions\n")
        assert "# API\n\nReturn JSON errors" in text

    def test_detect_by_content(self):
        rule = RULES.parse_rule_file("notes/api.md", CLAUDE_RULE)
        assert rule.client_name == "claude-code"

    def test_unknown_format_kept_raw(self):
        rule = RULES.parse_rule_file("notes/readme.md", "Just text\n")
        assert rule.client_name == ""
        assert rule.content == "Just text\n"

    def test_unknown_target(self):
        with pytest.raises(ValueError, match="Unknown client"):
            RULES.get("vim")


class TestRegistryDetection:
    """Tests for rule and instruction file detection."""

    @pytest.mark.parametrize("path, expected", [
        (".claude/rules/style.md", True),
        ("app/.cursor/rules/ui.mdc", True),
        (".cursor/rules/ui.md", False),
        ("docs/style.md", False),
    ])
    def test_is_rule_file(self, path, expected):
        assert RULES.is_rule_file(path) is expected

    def test_instruction_files(self):
        assert RULES.instruction_files() == ["CLAUDE.md", "AGENTS.md", "GEMINI.md", "AGENT.md"]
        assert RULES.is_instruction_file("sub\\dir\\GEMINI.md")
        assert RULES.is_importable_file("CLAUDE.md")
        assert not RULES.is_importable_file("README.md")

    def test_rules_directories(self):
        assert RULES.rules_directories() == [".claude/rules", ".cursor/rules", ".github/instructions"]


class TestBundleRule:
    """Tests for bundle_rule() precedence."""

    def test_table_wins(self, rule_bundle):
        rule, title = bundle_rule(rule_bundle, codec.validate_zip(rule_bundle))
        assert title == "Python Style"
        assert rule.globs == ["**/*.py"]
        assert rule.description == "Python conventions"

    def test_frontmatter_fills_gaps(self, make_bundle):
        data = make_bundle({
            "metadata.toml": '[asset]\nname = "api"\nversion = "1.0.0"\ntype = "rule"\n',
            "RULE.md": CLAUDE_RULE,
        })
        rule, title = bundle_rule(data, codec.validate_zip(data))
        assert title == "api"
        assert rule.description == "API conventions"
        assert rule.globs == ["src/api/**/*.py", "tests/api/**"]
        assert rule.content.strip() == "Return JSON errors with a code field."

    def test_cursor_fields_survive_bundling(self, make_bundle):
        data = make_bundle({
            "metadata.toml": '[asset]\nname = "ui"\nversion = "1.0.0"\ntype = "rule"\n'
                             '[rule]\nprompt-file = "ui.mdc"\n',
            "ui.mdc": CURSOR_RULE,
        })
        rule, _ = bundle_rule(data, codec.validate_zip(data))
        assert rule.client_name == "cursor"
        assert rule.client_fields == {"alwaysApply": False}
        assert "alwaysApply: false\n" in RULES.get("cursor").generate(rule)
