"""
settings:
    Read-modify-write of client settings files with marked entries
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Iterable, Optional, TypeVar, Union

import pydantic
import tomli_w
from pydantic import BaseModel, ConfigDict, Field

from skillpack.config import MARKER_FIELD
from skillpack.exceptions import SettingsError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


# =============================================================================
# Entry models
# =============================================================================


class HookCommand(BaseModel):
    """One command inside a matcher group."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    name: Optional[str] = None
    command: Optional[str] = None
    timeout: Optional[int] = None


class MatcherGroup(BaseModel):
    """Claude Code and Gemini shape: {matcher?, hooks: [...], _artifact?}."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    matcher: Optional[str] = None
    hooks: Optional[list[HookCommand]] = None
    artifact: Optional[str] = Field(default=None, alias=MARKER_FIELD)

    def commands(self) -> list[str]:
        return [h.command for h in self.hooks or [] if h.command]


class FlatHookEntry(BaseModel):
    """Cursor shape: the command sits on the entry itself."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    command: Optional[str] = None
    timeout: Optional[int] = None
    artifact: Optional[str] = Field(default=None, alias=MARKER_FIELD)

    def commands(self) -> list[str]:
        return [self.command] if self.command else []


class MCPServer(BaseModel):
    """An mcpServers (or VS Code servers) entry."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: Optional[str] = None
    command: Optional[str] = None
    args: Optional[list[str]] = None
    url: Optional[str] = None
    http_url: Optional[str] = Field(default=None, alias="httpUrl")
    env: Optional[dict[str, str]] = None
    timeout: Optional[int] = None
    artifact: Optional[str] = Field(default=None, alias=MARKER_FIELD)


class PluginInstall(BaseModel):
    """One installation record in installed_plugins.json."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    scope: Optional[str] = None
    install_path: Optional[str] = Field(default=None, alias="installPath")
    version: Optional[str] = None
    installed_at: Optional[str] = Field(default=None, alias="installedAt")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")
    is_local: Optional[bool] = Field(default=None, alias="isLocal")


class CodexMCPServer(BaseModel):
    """A [[mcp]] table in Codex config.toml, keyed by its name field."""

    model_config = ConfigDict(extra="allow")

    name: str
    transport: Optional[str] = None
    command: Optional[str] = None
    args: Optional[list[str]] = None
    url: Optional[str] = None
    env: Optional[dict[str, str]] = None


Marked = Union[MatcherGroup, FlatHookEntry, MCPServer]


# =============================================================================
# File models
# =============================================================================
#
# Every file model allows extra keys, so settings skillpack does not manage
# survive a load/save cycle untouched.


class ClaudeSettings(BaseModel):
    """~/.claude/settings.json"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    hooks: Optional[dict[str, list[MatcherGroup]]] = None
    enabled_plugins: Optional[dict[str, bool]] = Field(default=None, alias="enabledPlugins")


class GeminiSettings(BaseModel):
    """.gemini/settings.json"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    hooks: Optional[dict[str, list[MatcherGroup]]] = None
    mcp_servers: Optional[dict[str, MCPServer]] = Field(default=None, alias="mcpServers")


class CursorHooks(BaseModel):
    """.cursor/hooks.json"""

    model_config = ConfigDict(extra="allow")

    version: Optional[int] = None
    hooks: Optional[dict[str, list[FlatHookEntry]]] = None


class MCPConfig(BaseModel):
    """.claude.json, .mcp.json and .cursor/mcp.json"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    mcp_servers: Optional[dict[str, MCPServer]] = Field(default=None, alias="mcpServers")


class VSCodeMCPConfig(BaseModel):
    """.vscode/mcp.json uses "servers" rather than "mcpServers"."""

    model_config = ConfigDict(extra="allow")

    servers: Optional[dict[str, MCPServer]] = None


class PluginRegistry(BaseModel):
    """plugins/installed_plugins.json"""

    model_config = ConfigDict(extra="allow")

    version: Optional[int] = None
    plugins: Optional[dict[str, list[PluginInstall]]] = None


class CodexConfig(BaseModel):
    """~/.codex/config.toml"""

    model_config = ConfigDict(extra="allow")

    mcp: Optional[list[CodexMCPServer]] = None


def make_entry(model: type[M], data: dict[str, Any]) -> M:
    """
    Build a typed entry from a plain dict.

    Raises:
        SettingsError: If data does not fit the entry's shape.
    """
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise SettingsError(f"invalid {model.__name__} entry: {e}") from e


# =============================================================================
# SettingsFile
# =============================================================================


class SettingsFile:
    """
    A client settings file validated into one of the file models.

    Top-level keys keep the order they had on disk; new ones are appended.
    Typed accessors return the model's sections, creating them on demand.
    """

    def __init__(self, path: Path, model: BaseModel, order: Iterable[str] = ()):
        self.path = path
        self.model = model
        self._order = list(order)

    @classmethod
    def load(cls, path: Path, schema: type[BaseModel]) -> SettingsFile:
        if not path.exists():
            return cls(path, schema())
        try:
            text = path.read_text()
            data = cls.decode(text) if text.strip() else {}
        except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise SettingsError(f"failed to parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise SettingsError(f"failed to parse {path}: expected an object")
        try:
            model = schema.model_validate(data)
        except pydantic.ValidationError as e:
            raise SettingsError(f"invalid {path}: {e}") from e
        return cls(path, model, data.keys())

    @staticmethod
    def decode(text: str) -> Any:
        return json.loads(text)

    @staticmethod
    def encode(data: dict[str, Any]) -> str:
        return json.dumps(data, indent=2) + "\n"

    def dump(self) -> dict[str, Any]:
        data = self.model.model_dump(by_alias=True, exclude_none=True)
        ordered = {key: data[key] for key in self._order if key in data}
        ordered.update((key, value) for key, value in data.items() if key not in ordered)
        return ordered

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.encode(self.dump()))
        logger.debug("wrote %s", self.path)

    # -------------------------------------------------------------------------
    # Typed sections
    # -------------------------------------------------------------------------

    def section(self, field: str, create: bool = True) -> dict[str, Any]:
        """The mapping stored in a model field, created if asked."""
        value = getattr(self.model, field)
        if value is None:
            value = {}
            if create:
                setattr(self.model, field, value)
        return value

    def hooks(self, create: bool = True) -> dict[str, list]:
        return self.section("hooks", create)

    def mcp_servers(self, create: bool = True) -> dict[str, MCPServer]:
        return self.section("mcp_servers", create)

    def enabled_plugins(self, create: bool = True) -> dict[str, bool]:
        return self.section("enabled_plugins", create)

    def set_default(self, field: str, value: Any) -> None:
        if getattr(self.model, field) is None:
            setattr(self.model, field, value)

    def prune(self, field: str) -> None:
        """Drop a section that has become empty."""
        if getattr(self.model, field) == {}:
            setattr(self.model, field, None)


class TomlSettingsFile(SettingsFile):
    """A SettingsFile stored as TOML (Codex config.toml)."""

    @staticmethod
    def decode(text: str) -> Any:
        return tomllib.loads(text)

    @staticmethod
    def encode(data: dict[str, Any]) -> str:
        return tomli_w.dumps(data)


# =============================================================================
# Marked entries
# =============================================================================


def is_marked(entry: Any, name: str) -> bool:
    return getattr(entry, "artifact", None) == name


def upsert_marked(entries: list, name: str, entry: Marked) -> list:
    """Replace every entry marked with name by a single new entry, in place of the first."""
    entry = entry.model_copy(update={"artifact": name})
    result = []
    placed = False
    for existing in entries:
        if is_marked(existing, name):
            if not placed:
                result.append(entry)
                placed = True
            continue
        result.append(existing)
    if not placed:
        result.append(entry)
    return result


def has_legacy_command(entry: Any, prefixes: Iterable[str]) -> bool:
    """True if an unmarked entry runs a command starting with a legacy prefix."""
    prefixes = tuple(prefixes)
    if not prefixes or getattr(entry, "artifact", None) is not None:
        return False
    return any(cmd.startswith(prefixes) for cmd in entry.commands())


def remove_marked(
    section: dict[str, list],
    name: str,
    legacy_prefixes: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> int:
    """
    Remove entries marked with name from every list in section.

    With legacy_prefixes, entries predating the marker are also removed when
    their command starts with one of the prefixes. Lists left empty are
    dropped. Keys in exclude are left alone. Returns the number of entries
    removed.
    """
    prefixes = tuple(legacy_prefixes)
    removed = 0
    skip = set(exclude)
    for key in list(section):
        if key in skip:
            continue
        entries = section[key]
        kept = [
            e for e in entries
            if not is_marked(e, name) and not has_legacy_command(e, prefixes)
        ]
        removed += len(entries) - len(kept)
        if kept:
            section[key] = kept
        else:
            del section[key]
    if removed:
        logger.debug("removed %d entries for %s", removed, name)
    return removed
