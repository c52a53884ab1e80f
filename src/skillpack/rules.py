"""
rules:
    Rule translation between canonical form and each client's markdown format.

Each client describes where its rules live, how to recognise one, how to parse
it into a ParsedRule and how to generate native text from one:

- claude-code: .claude/rules/*.md, frontmatter keys `description` and `paths`
- cursor:      .cursor/rules/*.mdc, frontmatter keys `description`, `globs`, `alwaysApply`
- copilot:     .github/instructions/*.instructions.md, keys `description` and `applyTo`
- gemini:      plain markdown in GEMINI.md / AGENTS.md, no frontmatter

Frontmatter keys a client does not know are kept in `client_fields` so a rule
parsed and regenerated for the same client loses nothing.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from skillpack import bundle as zips
from skillpack import frontmatter as fm
from skillpack import metadata as codec
from skillpack.exceptions import ValidationError
from skillpack.models import Metadata, RuleConfig


@dataclass
class ParsedRule:
    content: str
    globs: list[str] = field(default_factory=list)
    description: str = ""
    client_fields: dict[str, Any] = field(default_factory=dict)
    client_name: str = ""


def coerce_globs(value: Any) -> list[str]:
    """Accept a list, a single glob, or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [g.strip() for g in value.split(",") if g.strip()]
    if isinstance(value, list):
        return [str(g).strip() for g in value if str(g).strip()]
    return []


def _normalize(path: str) -> str:
    return path.replace("\\", "/")


def _dump(data: dict) -> str:
    return yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


# =============================================================================
# Capabilities
# =============================================================================


class BaseRuleCapabilities:
    """Shared parse logic for frontmatter-based rule formats."""

    client_name: str = ""
    rules_directory: str = ""
    file_extension: str = ".md"
    instruction_files: tuple[str, ...] = ()
    glob_key: str = ""
    known_fields: tuple[str, ...] = ("description",)

    def matches_path(self, path: str) -> bool:
        path = _normalize(path)
        return (
            bool(self.rules_directory)
            and f"{self.rules_directory}/" in path
            and path.endswith(self.file_extension)
        )

    def matches_content(self, path: str, content: str) -> bool:  # noqa: ARG002
        return False

    def parse(self, content: str) -> ParsedRule:
        data, body = fm.parse(content)
        if not data:
            return ParsedRule(content=content, client_name=self.client_name)

        rule = ParsedRule(
            content=body,
            globs=coerce_globs(data.get(self.glob_key)),
            description=str(data.get("description") or ""),
            client_name=self.client_name,
        )
        for key, value in data.items():
            if key not in self.known_fields:
                rule.client_fields[key] = value
        return rule

    def generate(self, rule: ParsedRule, title: str = "") -> str:
        raise NotImplementedError

    def _own_fields(self, rule: ParsedRule) -> dict[str, Any]:
        return dict(rule.client_fields) if rule.client_name == self.client_name else {}


class ClaudeRuleCapabilities(BaseRuleCapabilities):
    client_name = "claude-code"
    rules_directory = ".claude/rules"
    file_extension = ".md"
    instruction_files = ("CLAUDE.md", "AGENTS.md")
    glob_key = "paths"
    known_fields = ("paths", "description")

    def matches_content(self, path: str, content: str) -> bool:  # noqa: ARG002
        parts = fm.split(content)
        return parts is not None and "paths:" in parts[0]

    def generate(self, rule: ParsedRule, title: str = "") -> str:
        data: dict[str, Any] = {}
        if rule.description:
            data["description"] = rule.description
        if rule.globs:
            data["paths"] = list(rule.globs)
        data.update(self._own_fields(rule))

        body = rule.content.strip()
        if title and not body.startswith("#"):
            body = f"# {title}\n\n{body}"

        if not data:
            return body + "\n"
        return f"---\n{_dump(data)}---\n\n{body}\n"


class CursorRuleCapabilities(BaseRuleCapabilities):
    client_name = "cursor"
    rules_directory = ".cursor/rules"
    file_extension = ".mdc"
    glob_key = "globs"
    known_fields = ("globs", "description", "alwaysApply")

    def matches_content(self, path: str, content: str) -> bool:
        if _normalize(path).endswith(".mdc"):
            return True
        parts = fm.split(content)
        return parts is not None and "globs:" in parts[0]

    def parse(self, content: str) -> ParsedRule:
        rule = super().parse(content)
        data, _ = fm.parse(content)
        if isinstance(data.get("alwaysApply"), bool):
            rule.client_fields["alwaysApply"] = data["alwaysApply"]
        return rule

    def generate(self, rule: ParsedRule, title: str = "", always_apply: bool = False) -> str:
        own = self._own_fields(rule)
        explicit = own.pop("alwaysApply", None)
        if always_apply:
            explicit = True
        elif not isinstance(explicit, bool):
            explicit = None

        data: dict[str, Any] = {"description": rule.description}
        if explicit is not None:
            data["alwaysApply"] = explicit
        elif not rule.globs:
            data["alwaysApply"] = True
        if len(rule.globs) == 1:
            data["globs"] = rule.globs[0]
        elif rule.globs:
            data["globs"] = list(rule.globs)
        data.update(own)

        body = rule.content.strip()
        if title and not body.startswith("#"):
            body = f"# {title}\n\n{body}"
        return f"---\n{_dump(data)}---\n\n{body}\n"


class CopilotRuleCapabilities(BaseRuleCapabilities):
    client_name = "github-copilot"
    rules_directory = ".github/instructions"
    file_extension = ".instructions.md"
    glob_key = "applyTo"
    known_fields = ("applyTo", "description", "name")

    def matches_content(self, path: str, content: str) -> bool:  # noqa: ARG002
        parts = fm.split(content)
        return parts is not None and "applyTo:" in parts[0]

    def generate(self, rule: ParsedRule, title: str = "") -> str:
        data: dict[str, Any] = {}
        if rule.globs:
            data["applyTo"] = ",".join(rule.globs)
        if rule.description:
            data["description"] = rule.description
        data.update(self._own_fields(rule))

        body = rule.content.strip()
        if title and not body.startswith("#"):
            body = f"# {title}\n\n{body}"

        if not data:
            return body + "\n"
        return f"---\n{_dump(data)}---\n\n{body}\n"


class GeminiRuleCapabilities(BaseRuleCapabilities):
    client_name = "gemini"
    instruction_files = ("GEMINI.md", "AGENT.md", "AGENTS.md")

    def matches_path(self, path: str) -> bool:
        return posixpath.basename(_normalize(path)) in self.instruction_files

    def parse(self, content: str) -> ParsedRule:
        return ParsedRule(content=content, client_name=self.client_name)

    def generate(self, rule: ParsedRule, title: str = "") -> str:
        body = rule.content.strip()
        if title:
            return f"# {title}\n\n{body}\n"
        return body + "\n"


# =============================================================================
# Registry
# =============================================================================


class RuleRegistry:
    """Lookup over a fixed list of client rule capabilities."""

    def __init__(self, capabilities: list[BaseRuleCapabilities]):
        self._capabilities = list(capabilities)
        self._by_client = {c.client_name: c for c in self._capabilities}

    def get(self, client: str) -> BaseRuleCapabilities:
        if client not in self._by_client:
            raise ValueError(f"Unknown client: {client}. Supported: {list(self._by_client.keys())}")
        return self._by_client[client]

    def detect_from_path(self, path: str) -> Optional[BaseRuleCapabilities]:
        for caps in self._capabilities:
            if caps.matches_path(path):
                return caps
        return None

    def detect_from_content(self, path: str, content: str) -> Optional[BaseRuleCapabilities]:
        for caps in self._capabilities:
            if caps.matches_content(path, content):
                return caps
        return None

    def parse_rule_file(self, path: str, content: str) -> ParsedRule:
        """Parse with the client recognised by path, then by content, else keep raw text."""
        caps = self.detect_from_path(path) or self.detect_from_content(path, content)
        if caps is None:
            return ParsedRule(content=content)
        return caps.parse(content)

    def is_rule_file(self, path: str) -> bool:
        return any(c.rules_directory and c.matches_path(path) for c in self._capabilities)

    def is_instruction_file(self, path: str) -> bool:
        return posixpath.basename(_normalize(path)) in self.instruction_files()

    def is_importable_file(self, path: str) -> bool:
        return self.is_rule_file(path) or self.is_instruction_file(path)

    def rules_directories(self) -> list[str]:
        return [c.rules_directory for c in self._capabilities if c.rules_directory]

    def instruction_files(self) -> list[str]:
        seen: list[str] = []
        for caps in self._capabilities:
            for name in caps.instruction_files:
                if name not in seen:
                    seen.append(name)
        return seen

    def convert(self, content: str, source_path: str, target_client: str, title: str = "") -> str:
        """Re-express a rule file in another client's format."""
        rule = self.parse_rule_file(source_path, content)
        return self.get(target_client).generate(rule, title=title)


RULES = RuleRegistry([
    ClaudeRuleCapabilities(),
    CursorRuleCapabilities(),
    CopilotRuleCapabilities(),
    GeminiRuleCapabilities(),
])


def bundle_rule(data: bytes, metadata: Metadata) -> tuple[ParsedRule, str]:
    """
    Canonical rule and title for a rule bundle.

    Values from the [rule] table win. Anything it leaves unset is taken from
    the rule file's own frontmatter, then the asset description. Frontmatter
    keys only the file's own client understands are carried along for that
    client.
    """
    prompt = codec.rule_prompt_file(metadata, zips.list_files(data))
    if prompt is None:
        raise ValidationError(f"prompt file not found in bundle: {metadata.prompt_file()}")
    text = zips.read_text(data, prompt)

    parsed = RULES.parse_rule_file(prompt, text)
    if not parsed.client_name:
        data, body = fm.parse(text)
        parsed = ParsedRule(
            content=body,
            globs=coerce_globs(data.get("globs") or data.get("paths")),
            description=str(data.get("description") or ""),
        )
    cfg = metadata.rule or RuleConfig()
    rule = ParsedRule(
        content=parsed.content,
        globs=list(cfg.globs) or parsed.globs,
        description=cfg.description or parsed.description or metadata.asset.description,
        client_fields=dict(parsed.client_fields),
        client_name=parsed.client_name,
    )
    return rule, cfg.title or metadata.name
