"""
fileasset:
    Single-file strategy: {base}/{subdir}/{name}{ext} plus a sidecar metadata file
"""

from __future__ import annotations

import logging
from pathlib import Path

from skillpack import bundle as zips
from skillpack import metadata as codec
from skillpack.config import METADATA_FILE
from skillpack.exceptions import SkillpackError, ValidationError
from skillpack.handlers import BaseHandler
from skillpack.handlers.dirasset import InstalledAssetInfo, PromptContent
from skillpack.models import AssetType

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = "-metadata.toml"


class SingleFileOps:
    """Install an asset's prompt as one file, tracking its version in a sidecar."""

    def __init__(self, subdir: str, expected_type: AssetType, ext: str = ".md"):
        self.subdir = subdir
        self.expected_type = expected_type
        self.ext = ext

    def file_path(self, base: Path, name: str) -> Path:
        return base / self.subdir / f"{name}{self.ext}"

    def sidecar_path(self, base: Path, name: str) -> Path:
        return base / self.subdir / f"{name}{SIDECAR_SUFFIX}"

    def install(self, bundle: bytes, base: Path, name: str) -> Path:
        metadata = codec.validate_zip(bundle, self.expected_type)
        prompt = zips.read_file(bundle, metadata.prompt_file())

        dest = self.file_path(base, name)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(prompt)
        self.sidecar_path(base, name).write_bytes(zips.read_file(bundle, METADATA_FILE))
        logger.debug("wrote %s", dest)
        return dest

    def remove(self, base: Path, name: str) -> None:
        for path in (self.file_path(base, name), self.sidecar_path(base, name)):
            if path.exists():
                path.unlink()
                logger.debug("removed %s", path)

    def verify_installed(self, base: Path, name: str, version: str) -> tuple[bool, str]:
        if not self.file_path(base, name).exists():
            return False, "file not found"
        sidecar = self.sidecar_path(base, name)
        if not sidecar.exists():
            return True, "installed (no version info)"
        try:
            installed = codec.parse(sidecar.read_bytes())
        except ValidationError as e:
            return False, str(e)
        if installed.version != version:
            return False, f"version mismatch: installed {installed.version}, expected {version}"
        return True, "installed"

    def scan_installed(self, base: Path) -> list[InstalledAssetInfo]:
        root = base / self.subdir
        if not root.is_dir():
            return []
        found = []
        for path in sorted(root.glob(f"*{self.ext}")):
            name = path.name[: -len(self.ext)]
            sidecar = self.sidecar_path(base, name)
            version, description = "", ""
            if sidecar.exists():
                try:
                    metadata = codec.parse(sidecar.read_bytes())
                except ValidationError:
                    continue
                if metadata.type != self.expected_type:
                    continue
                version, description = metadata.version, metadata.asset.description
            found.append(
                InstalledAssetInfo(
                    name=name,
                    version=version,
                    type=self.expected_type.key,
                    description=description,
                    install_path=path,
                )
            )
        return found

    def read_prompt_content(self, base: Path, name: str) -> PromptContent:
        path = self.file_path(base, name)
        if not path.exists():
            raise SkillpackError(f"asset not found: {name}")
        version, description = "", ""
        sidecar = self.sidecar_path(base, name)
        if sidecar.exists():
            metadata = codec.parse(sidecar.read_bytes())
            version, description = metadata.version, metadata.asset.description
        return PromptContent(
            content=path.read_text(),
            base_dir=path.parent,
            description=description,
            version=version,
        )


class SingleFileHandler(BaseHandler):
    """Handler whose whole job is a SingleFileOps."""

    ops: SingleFileOps

    def install(self, bundle: bytes, base: Path) -> None:
        self.ops.install(bundle, base, self.name)

    def remove(self, base: Path) -> None:
        self.ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        return self.ops.verify_installed(base, self.name, self.metadata.version)

    def get_install_path(self) -> str:
        return f"{self.ops.subdir}/{self.name}{self.ops.ext}"
