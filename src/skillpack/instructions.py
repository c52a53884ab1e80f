"""
instructions:
    Managed sections inside user-owned instruction files (GEMINI.md and friends)

A managed section starts at a heading line and ends at an end-marker line.
Each entry inside it is a sub-heading one level deeper, titled with the entry
name, followed by the entry content. Everything outside the section belongs to
the user and is left untouched.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_HEADING = "## Shared Instructions"
DEFAULT_END_MARKER = "---"


def _sub_heading(heading: str) -> str:
    level = len(heading) - len(heading.lstrip("#"))
    return "#" * (level + 1)


def _section_pattern(heading: str, end_marker: str) -> re.Pattern:
    return re.compile(
        rf"^{re.escape(heading)}\n.*?^{re.escape(end_marker)}$\n?",
        re.DOTALL | re.MULTILINE,
    )


def render_section(entries: dict[str, str], heading: str = DEFAULT_HEADING,
                   end_marker: str = DEFAULT_END_MARKER) -> str:
    sub = _sub_heading(heading)
    blocks = [f"{sub} {name}\n\n{entries[name].strip()}" for name in sorted(entries)]
    return f"{heading}\n\n" + "\n\n".join(blocks) + f"\n\n{end_marker}\n"


def extract_instructions(content: str, heading: str = DEFAULT_HEADING,
                         end_marker: str = DEFAULT_END_MARKER) -> dict[str, str]:
    """Return {name: content} for every entry in the managed section."""
    match = _section_pattern(heading, end_marker).search(content)
    if not match:
        return {}
    body = match.group(0)[len(heading):]
    body = body.rstrip("\n")
    if body.endswith(end_marker):
        body = body[: -len(end_marker)]

    sub = _sub_heading(heading)
    entries: dict[str, str] = {}
    parts = re.split(rf"^{re.escape(sub)} (.+)$", body, flags=re.MULTILINE)
    # parts: [preamble, name1, text1, name2, text2, ...]
    for i in range(1, len(parts) - 1, 2):
        entries[parts[i].strip()] = parts[i + 1].strip()
    return entries


def inject_instructions(content: str, entries: dict[str, str], heading: str = DEFAULT_HEADING,
                        end_marker: str = DEFAULT_END_MARKER) -> str:
    """Replace the managed section with entries, appending it if absent."""
    section = render_section(entries, heading, end_marker)
    pattern = _section_pattern(heading, end_marker)
    if pattern.search(content):
        return pattern.sub(lambda _: section, content, count=1)
    if not content.strip():
        return section
    return content.rstrip("\n") + "\n\n" + section


def remove_instruction(content: str, name: str, heading: str = DEFAULT_HEADING,
                       end_marker: str = DEFAULT_END_MARKER) -> str:
    """Drop one entry; the whole section goes when it was the last one."""
    entries = extract_instructions(content, heading, end_marker)
    if name not in entries:
        return content
    del entries[name]
    if entries:
        return inject_instructions(content, entries, heading, end_marker)

    result = _section_pattern(heading, end_marker).sub("", content, count=1)
    result = re.sub(r"\n{3,}", "\n\n", result).strip("\n")
    return result + "\n" if result else ""


def instruction_exists(content: str, name: str, heading: str = DEFAULT_HEADING,
                       end_marker: str = DEFAULT_END_MARKER) -> bool:
    return name in extract_instructions(content, heading, end_marker)


# =============================================================================
# File helpers
# =============================================================================


def upsert_instruction_file(path: Path, name: str, text: str, heading: str = DEFAULT_HEADING,
                            end_marker: str = DEFAULT_END_MARKER) -> None:
    content = path.read_text() if path.exists() else ""
    entries = extract_instructions(content, heading, end_marker)
    entries[name] = text
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(inject_instructions(content, entries, heading, end_marker))
    logger.debug("updated instruction %s in %s", name, path)


def remove_from_instruction_file(path: Path, name: str, heading: str = DEFAULT_HEADING,
                                 end_marker: str = DEFAULT_END_MARKER) -> bool:
    """Remove an entry; deletes the file if nothing else is left. Returns True if removed."""
    if not path.exists():
        return False
    content = path.read_text()
    if not instruction_exists(content, name, heading, end_marker):
        return False
    updated = remove_instruction(content, name, heading, end_marker)
    if updated.strip():
        path.write_text(updated)
    else:
        path.unlink()
    return True
