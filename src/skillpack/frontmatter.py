"""
frontmatter:
    YAML frontmatter helpers for markdown files
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml


def split(content: str) -> Optional[tuple[str, str]]:
    """
    Split content into (frontmatter text, body).

    Returns None when content does not open with '---' on its own line or the
    block is never closed. The body loses its leading newline.
    """
    if not content.startswith("---\n"):
        return None
    rest = content[4:]
    if rest.startswith("---"):
        end = 0
    else:
        end = rest.find("\n---")
        if end == -1:
            return None
        end += 1
    fm_text = rest[:end]
    body = rest[end + 3:]
    if body.startswith("\n"):
        body = body[1:]
    return fm_text, body


def parse(content: str) -> tuple[dict[str, Any], str]:
    """
    Parse frontmatter and return (metadata, body).

    Content without frontmatter, or with invalid YAML, returns ({}, content).
    """
    parts = split(content)
    if parts is None:
        return {}, content
    fm_text, body = parts
    try:
        data = yaml.safe_load(fm_text) or {}
    except yaml.YAMLError:
        return {}, content
    if not isinstance(data, dict):
        return {}, content
    return data, body


def get_description(path: Path) -> Optional[str]:
    """Read the description field from a markdown file's frontmatter."""
    if not path.exists():
        return None
    try:
        data, _ = parse(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError:
        return None
    description = data.get("description")
    return str(description) if description else None
