"""
hooks:
    Canonical hook events -> native event names, and hook command resolution
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from skillpack.exceptions import UnsupportedHookEventError
from skillpack.models import HookConfig

CLAUDE_EVENTS = {
    "session-start": "SessionStart",
    "session-end": "SessionEnd",
    "pre-tool-use": "PreToolUse",
    "post-tool-use": "PostToolUse",
    "post-tool-use-failure": "PostToolUseFailure",
    "user-prompt-submit": "UserPromptSubmit",
    "stop": "Stop",
    "subagent-start": "SubagentStart",
    "subagent-stop": "SubagentStop",
    "pre-compact": "PreCompact",
}

CURSOR_EVENTS = {
    "session-start": "sessionStart",
    "session-end": "sessionEnd",
    "pre-tool-use": "preToolUse",
    "post-tool-use": "postToolUse",
    "post-tool-use-failure": "postToolUseFailure",
    "user-prompt-submit": "beforeSubmitPrompt",
    "stop": "stop",
    "subagent-start": "subagentStart",
    "subagent-stop": "subagentStop",
    "pre-compact": "preCompact",
}

# Gemini has no subagent or compaction events; both tool outcomes land on AfterTool
GEMINI_EVENTS = {
    "session-start": "SessionStart",
    "session-end": "SessionEnd",
    "pre-tool-use": "PreToolUse",
    "post-tool-use": "AfterTool",
    "post-tool-use-failure": "AfterTool",
    "user-prompt-submit": "UserPromptSubmit",
    "stop": "Stop",
}

EVENT_MAPS = {
    "claude-code": CLAUDE_EVENTS,
    "cursor": CURSOR_EVENTS,
    "gemini": GEMINI_EVENTS,
}


def map_event(client: str, event: str, overrides: Optional[dict] = None) -> str:
    """
    Native event name for a canonical event.

    An "event" key in the client's override table wins over the map.

    Raises:
        UnsupportedHookEventError: If the client has no equivalent event.
    """
    if overrides and overrides.get("event"):
        return str(overrides["event"])
    native = EVENT_MAPS.get(client, {}).get(event)
    if native is None:
        raise UnsupportedHookEventError(client, event)
    return native


def extra_fields(overrides: dict) -> dict:
    """Override keys merged into the native entry (everything but "event")."""
    return {k: v for k, v in overrides.items() if k != "event"}


def resolve_command(hook: HookConfig, install_dir: Path, bundle_files: Iterable[str] = ()) -> str:
    """
    The command line the client should run.

    Script hooks run the extracted script by absolute path. Command hooks run
    command + args, with any arg naming a bundled file made absolute.
    """
    if hook.script_file:
        return str(install_dir / hook.script_file)

    files = set(bundle_files)
    parts = [hook.command]
    for arg in hook.args:
        parts.append(str(install_dir / arg) if arg in files else arg)
    return " ".join(parts)
