"""
bundle:
    Helpers for asset bundle zip archives
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

from skillpack.config import METADATA_FILE
from skillpack.exceptions import BundleError, ValidationError


def _open(data: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise BundleError(f"invalid bundle archive: {e}") from e


def list_files(data: bytes) -> list[str]:
    """List file members of a bundle, excluding directory entries."""
    with _open(data) as zf:
        return [name for name in zf.namelist() if not name.endswith("/")]


def read_file(data: bytes, name: str) -> bytes:
    """Read one member of a bundle."""
    with _open(data) as zf:
        try:
            return zf.read(name)
        except KeyError as e:
            raise BundleError(f"{name} not found in bundle") from e


def read_text(data: bytes, name: str) -> str:
    """Read one member of a bundle as UTF-8 text."""
    try:
        return read_file(data, name).decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(f"{name} is not valid UTF-8: {e}") from e


def has_content_files(data: bytes) -> bool:
    """True if the bundle carries any file besides metadata.toml."""
    return any(name != METADATA_FILE for name in list_files(data))


def safe_extract(data: bytes, dest: Path) -> list[Path]:
    """
    Extract a bundle into dest, rejecting members that escape it.

    Returns the extracted file paths.
    """
    dest.mkdir(parents=True, exist_ok=True)
    dest_resolved = dest.resolve()
    extracted: list[Path] = []
    with _open(data) as zf:
        for member in zf.namelist():
            member_path = (dest / member).resolve()
            if member_path != dest_resolved and not member_path.is_relative_to(dest_resolved):
                raise BundleError(f"Zip Slip attack detected: {member}")
        for member in zf.infolist():
            target = dest / member.filename
            if member.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(member) as src, open(target, "wb") as out:
                out.write(src.read())
            # Preserve the executable bit for hook scripts
            mode = (member.external_attr >> 16) & 0o777
            if mode:
                target.chmod(mode)
            extracted.append(target)
    return extracted


def build(files: dict[str, str | bytes]) -> bytes:
    """Pack a mapping of archive path -> content into bundle bytes."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            if name.endswith((".sh", ".py", ".js")):
                info = zipfile.ZipInfo(name)
                info.external_attr = 0o755 << 16
                info.compress_type = zipfile.ZIP_DEFLATED
                zf.writestr(info, content)
            else:
                zf.writestr(name, content)
    return buf.getvalue()


def add_file(data: bytes, name: str, content: str | bytes) -> bytes:
    """Return a copy of the bundle with one member added or replaced."""
    buf = io.BytesIO()
    with _open(data) as src, zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as out:
        for member in src.infolist():
            if member.filename != name:
                out.writestr(member, src.read(member))
        out.writestr(name, content)
    return buf.getvalue()
